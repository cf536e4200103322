"""
Travelling salesman problem.

An individual is a permutation of city indices describing a closed tour. Fitness is
the negated sum of squared edge lengths, which penalises long edges more than the plain
tour length and keeps everything in exact integer arithmetic.

Mutation operators:
- Block shift: move a cyclic block of cities forward by ``shift`` positions
- Reversal: reverse a cyclic segment of the tour (2-opt move)
- Swap: exchange two cities
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import numpy as np

from ..evolutionary.individual import EvoIndividual, EvoIndividualData
from ..utils.config import ConfigError
from ..utils.geometry import Coord
from ..utils.visualization import plot_tour

logger = logging.getLogger(__name__)

DEFAULT_N_CITIES = 500
DEFAULT_SCREEN_WIDTH = 1000
DEFAULT_SCREEN_HEIGHT = 1000
DEFAULT_SHIFT_PROB = 0.4
DEFAULT_REV_PROB = 0.4

# Cities are kept this far from the screen edges
CITY_MARGIN = 5


class SalesmanInitType(str, Enum):
    """How initial tours are built."""

    NAIVE = "naive"
    NOISE = "noise"
    INSERTION = "insertion"
    GREEDY = "greedy"

    @classmethod
    def from_string(cls, name: str) -> "SalesmanInitType":
        normalized = name.strip().lower()
        for init_type in cls:
            if init_type.value == normalized:
                return init_type
        raise ValueError(
            f"Unknown init type: {name!r}. Options: {[t.value for t in cls]}"
        )


DEFAULT_INIT_TYPE = SalesmanInitType.GREEDY


@dataclass(eq=False)
class SalesmanIndividualData(EvoIndividualData):
    """
    City layout and operator probabilities.

    Attributes:
        coords: Integer city coordinates, shape ``(n_cities, 2)``
        screen_width: Width of the area the cities live in
        screen_height: Height of the area the cities live in
        shift_prob: Probability of a block shift per mutation
        rev_prob: Probability of a segment reversal per mutation
        init_type: Initial tour construction
    """
    coords: np.ndarray
    screen_width: int = DEFAULT_SCREEN_WIDTH
    screen_height: int = DEFAULT_SCREEN_HEIGHT
    shift_prob: float = DEFAULT_SHIFT_PROB
    rev_prob: float = DEFAULT_REV_PROB
    init_type: SalesmanInitType = DEFAULT_INIT_TYPE

    def __post_init__(self):
        self.coords = np.asarray(self.coords, dtype=np.int64).reshape(-1, 2)
        if len(self.coords) < 1:
            raise ValueError("Salesman problem needs at least one city")
        if not isinstance(self.init_type, SalesmanInitType):
            self.init_type = SalesmanInitType.from_string(self.init_type)

    @classmethod
    def random(
        cls,
        n_cities: int,
        screen_width: int = DEFAULT_SCREEN_WIDTH,
        screen_height: int = DEFAULT_SCREEN_HEIGHT,
        rng: Optional[np.random.Generator] = None,
        **kwargs: Any
    ) -> "SalesmanIndividualData":
        """Place ``n_cities`` uniformly at random, away from the screen edges."""
        if screen_width <= 2 * CITY_MARGIN or screen_height <= 2 * CITY_MARGIN:
            raise ValueError(
                f"Screen {screen_width}x{screen_height} too small for a {CITY_MARGIN}px margin"
            )
        rng = rng if rng is not None else np.random.default_rng()
        xs = rng.integers(CITY_MARGIN, screen_width - CITY_MARGIN, size=n_cities)
        ys = rng.integers(CITY_MARGIN, screen_height - CITY_MARGIN, size=n_cities)
        return cls(np.column_stack([xs, ys]), screen_width, screen_height, **kwargs)

    @classmethod
    def from_config(cls, config: Any, rng: Optional[np.random.Generator] = None) -> "SalesmanIndividualData":
        n_cities = config.get_uint("n_cities", DEFAULT_N_CITIES)
        if n_cities < 1:
            raise ConfigError("n_cities", "must be at least 1")
        data = cls.random(
            n_cities,
            config.get_uint("screen_width", DEFAULT_SCREEN_WIDTH),
            config.get_uint("screen_height", DEFAULT_SCREEN_HEIGHT),
            rng=rng,
            shift_prob=config.get_float("shift_prob", DEFAULT_SHIFT_PROB),
            rev_prob=config.get_float("rev_prob", DEFAULT_REV_PROB),
            init_type=config.get_enum("init_type", SalesmanInitType, DEFAULT_INIT_TYPE),
        )
        logger.info(
            f"Generated {n_cities} cities on {data.screen_width}x{data.screen_height}, "
            f"init={data.init_type.value}"
        )
        return data

    @property
    def n_cities(self) -> int:
        return len(self.coords)

    @property
    def cities(self) -> List[Coord]:
        return [Coord(int(x), int(y)) for x, y in self.coords]


def reverse_part(genom: np.ndarray, frm: int, to: int) -> None:
    """
    Reverse the cyclic segment ``frm..=to`` in place.

    When ``to < frm`` the segment wraps past the end of the tour.
    """
    length = len(genom)
    if to <= frm:
        to += length

    i, j = frm, to
    while i <= j:
        a, b = i % length, j % length
        genom[a], genom[b] = genom[b], genom[a]
        i += 1
        j -= 1


def shift_multiple(genom: np.ndarray, frm: int, to: int, shift: int) -> None:
    """
    Move the cyclic block ``frm..=to`` forward by ``shift`` positions in place.

    The ``shift`` cities that followed the block end up in front of it.
    """
    length = len(genom)
    block_len = to + 1 + length - frm if to < frm else to + 1 - frm

    block = [genom[(frm + k) % length] for k in range(block_len)]

    i_from = frm
    i_to = (to + 1) % length
    for _ in range(shift):
        genom[i_from], genom[i_to] = genom[i_to], genom[i_from]
        i_from = (i_from + 1) % length
        i_to = (i_to + 1) % length

    for k, city in enumerate(block):
        genom[(i_from + k) % length] = city


class SalesmanIndividual(EvoIndividual):
    """Closed tour through every city exactly once."""

    def __init__(self, genom: Union[np.ndarray, List[int]], fitness: float = 0.0):
        self.genom = np.asarray(genom, dtype=np.int64)
        self.fitness = fitness

    def __repr__(self) -> str:
        return f"SalesmanIndividual(n_cities={len(self.genom)}, fitness={self.fitness:.1f})"

    # ------------------------------------------------------------------ construction

    @classmethod
    def new_randomised(cls, data: SalesmanIndividualData, rng: np.random.Generator) -> "SalesmanIndividual":
        if data.init_type is SalesmanInitType.NAIVE:
            return cls.new_random_naive(data, rng)
        if data.init_type is SalesmanInitType.NOISE:
            return cls.new_random_noise(data, rng)
        if data.init_type is SalesmanInitType.INSERTION:
            return cls.new_random_insertion(data, rng)
        return cls.new_random_greedy_joining(data, rng)

    @classmethod
    def new_random_naive(cls, data: SalesmanIndividualData, rng: np.random.Generator) -> "SalesmanIndividual":
        """Nearest-neighbour tour from a random starting city."""
        coords = data.coords
        n = len(coords)
        visited = np.zeros(n, dtype=bool)
        genom = np.empty(n, dtype=np.int64)

        current = int(rng.integers(n))
        genom[0] = current
        visited[current] = True

        for i in range(1, n):
            distances = np.sum((coords - coords[current]) ** 2, axis=1).astype(float)
            distances[visited] = np.inf
            current = int(np.argmin(distances))
            genom[i] = current
            visited[current] = True

        return cls(genom)

    @classmethod
    def new_random_noise(cls, data: SalesmanIndividualData, rng: np.random.Generator) -> "SalesmanIndividual":
        """Uniformly shuffled tour."""
        return cls(rng.permutation(data.n_cities))

    @classmethod
    def new_random_insertion(cls, data: SalesmanIndividualData, rng: np.random.Generator) -> "SalesmanIndividual":
        """Insert cities in random order, each at its cheapest position."""
        cities = data.cities
        order = [int(c) for c in rng.permutation(len(cities))]
        genom = order[:3]

        for city in order[3:]:
            c = cities[city]
            # Closing edge between the last and the first city
            best_cost = (
                Coord.distance_euclid(cities[genom[0]], c)
                + Coord.distance_euclid(c, cities[genom[-1]])
            )
            best_pos = len(genom)
            for j in range(len(genom) - 1):
                cost = (
                    Coord.distance_euclid(cities[genom[j]], c)
                    + Coord.distance_euclid(c, cities[genom[j + 1]])
                )
                if cost < best_cost:
                    best_cost = cost
                    best_pos = j + 1
            genom.insert(best_pos, city)

        return cls(genom)

    @classmethod
    def new_random_greedy_joining(cls, data: SalesmanIndividualData, rng: np.random.Generator) -> "SalesmanIndividual":
        """
        Join path fragments greedily.

        Starting from one fragment per city, a random fragment is repeatedly joined to the
        fragment whose loose end is closest to one of its own ends, until one path is left.
        """
        coords = data.coords
        paths: List[List[int]] = [[i] for i in range(len(coords))]

        while len(paths) > 1:
            selected = int(rng.integers(len(paths)))
            firsts = coords[[path[0] for path in paths]]
            lasts = coords[[path[-1] for path in paths]]

            # Append selected after path i / append path i after selected
            to_dist = np.sum((lasts - coords[paths[selected][0]]) ** 2, axis=1).astype(float)
            from_dist = np.sum((firsts - coords[paths[selected][-1]]) ** 2, axis=1).astype(float)
            to_dist[selected] = np.inf
            from_dist[selected] = np.inf

            choice = int(np.argmin(np.column_stack([to_dist, from_dist]).ravel()))
            other, append_selected = choice // 2, choice % 2 == 0

            if append_selected:
                paths[other].extend(paths[selected])
                del paths[selected]
            else:
                paths[selected].extend(paths[other])
                del paths[other]

        return cls(paths[0])

    # ------------------------------------------------------------------ operators

    def clone(self) -> "SalesmanIndividual":
        return SalesmanIndividual(self.genom.copy(), self.fitness)

    def mutate(
        self,
        data: SalesmanIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> None:
        length = len(self.genom)
        if length < 2:
            return

        if length >= 3 and rng.random() < data.shift_prob:
            shift_multiple(
                self.genom,
                int(rng.integers(0, length - 1)),
                int(rng.integers(0, length - 1)),
                int(rng.integers(1, length - 1)),
            )

        if rng.random() < data.rev_prob:
            reverse_part(
                self.genom,
                int(rng.integers(0, length - 1)),
                int(rng.integers(0, length - 1)),
            )

        if rng.random() < mut_prob:
            i = int(rng.integers(0, length))
            j = int(rng.integers(0, length))
            if i != j:
                self.genom[i], self.genom[j] = self.genom[j], self.genom[i]

    def mutate_into(
        self,
        target: "SalesmanIndividual",
        data: SalesmanIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> "SalesmanIndividual":
        np.copyto(target.genom, self.genom)
        target.fitness = self.fitness
        target.mutate(data, rng, mut_prob, mut_amount)
        return target

    def crossover_into(
        self,
        other: "SalesmanIndividual",
        target: "SalesmanIndividual",
        data: SalesmanIndividualData,
        rng: np.random.Generator,
    ) -> "SalesmanIndividual":
        """
        Walk both parents from a random cut point, taking at each position a parent's
        city that is still unused (random when both are), or the lowest unused city
        when neither is. The child is always a valid permutation.
        """
        length = len(self.genom)
        if length < 2:
            np.copyto(target.genom, self.genom)
            return target

        child = target.genom
        used = np.zeros(length, dtype=bool)
        cross_point = int(rng.integers(0, length - 1))

        for k in range(length):
            i = (cross_point + k) % length
            mine = self.genom[i]
            theirs = other.genom[i]

            if used[mine] and used[theirs]:
                city = int(np.argmin(used))
            elif used[mine]:
                city = theirs
            elif used[theirs]:
                city = mine
            else:
                city = mine if rng.random() < 0.5 else theirs

            child[i] = city
            used[city] = True

        return target

    # ------------------------------------------------------------------ evaluation

    def _edges(self, data: SalesmanIndividualData) -> np.ndarray:
        tour = data.coords[self.genom]
        return np.roll(tour, -1, axis=0) - tour

    def count_fitness(self, data: SalesmanIndividualData) -> None:
        self.fitness = -float(np.sum(self._edges(data) ** 2))

    def tour_length(self, data: SalesmanIndividualData) -> float:
        """Euclidean length of the closed tour."""
        return float(np.sum(np.sqrt(np.sum(self._edges(data) ** 2, axis=1))))

    def get_visuals(self, data: SalesmanIndividualData) -> Tuple[float, float]:
        edges = self._edges(data).astype(float)
        lengths = np.sqrt(np.sum(edges ** 2, axis=1))
        safe = np.where(lengths > 0.0, lengths, 1.0)
        directions = np.abs(edges) / safe[:, None]
        return (float(directions[:, 0].sum()), float(directions[:, 1].sum()))

    def draw(self, data: SalesmanIndividualData, output_path: Union[str, Path]) -> None:
        plot_tour(data.coords, self.genom, data.screen_width, data.screen_height, output_path)
