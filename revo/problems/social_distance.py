"""
Social distancing problem: spread points so each one keeps a required distance to its
nearest neighbour while the whole group stays close to the centre of the box.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import numpy as np

from ..evolutionary.individual import EvoIndividual, EvoIndividualData
from ..utils.geometry import Coord
from ..utils.visualization import plot_points

logger = logging.getLogger(__name__)

DEFAULT_SCREEN_WIDTH = 400
DEFAULT_SCREEN_HEIGHT = 400
DEFAULT_N_POINTS = 50
DEFAULT_REQUIRED_DISTANCE = 20

POINT_MARGIN = 5


@dataclass
class DistanceIndividualData(EvoIndividualData):
    screen_width: int = DEFAULT_SCREEN_WIDTH
    screen_height: int = DEFAULT_SCREEN_HEIGHT
    n_points: int = DEFAULT_N_POINTS
    required_distance: int = DEFAULT_REQUIRED_DISTANCE

    def __post_init__(self):
        if self.screen_width <= 2 * POINT_MARGIN or self.screen_height <= 2 * POINT_MARGIN:
            raise ValueError(
                f"Screen {self.screen_width}x{self.screen_height} too small for a {POINT_MARGIN}px margin"
            )
        if self.n_points < 1:
            raise ValueError(f"n_points must be at least 1, got {self.n_points}")

    @classmethod
    def from_config(cls, config: Any, rng: Optional[np.random.Generator] = None) -> "DistanceIndividualData":
        data = cls(
            screen_width=config.get_uint("screen_width", DEFAULT_SCREEN_WIDTH),
            screen_height=config.get_uint("screen_height", DEFAULT_SCREEN_HEIGHT),
            n_points=config.get_uint("n_points", DEFAULT_N_POINTS),
            required_distance=config.get_uint("required_distance", DEFAULT_REQUIRED_DISTANCE),
        )
        logger.info(
            f"Social distance: {data.n_points} points on {data.screen_width}x{data.screen_height}, "
            f"required distance {data.required_distance}"
        )
        return data

    @property
    def center(self) -> Coord:
        return Coord(self.screen_width // 2, self.screen_height // 2)


class DistanceIndividual(EvoIndividual):
    """Set of ``n_points`` integer points inside the box."""

    def __init__(self, coords: Union[np.ndarray, List[Tuple[int, int]]], fitness: float = 0.0):
        self.coords = np.asarray(coords, dtype=np.int64).reshape(-1, 2)
        self.fitness = fitness

    def __repr__(self) -> str:
        return f"DistanceIndividual(n_points={len(self.coords)}, fitness={self.fitness:.1f})"

    @classmethod
    def new_randomised(cls, data: DistanceIndividualData, rng: np.random.Generator) -> "DistanceIndividual":
        xs = rng.integers(POINT_MARGIN, data.screen_width - POINT_MARGIN, size=data.n_points)
        ys = rng.integers(POINT_MARGIN, data.screen_height - POINT_MARGIN, size=data.n_points)
        return cls(np.column_stack([xs, ys]))

    def clone(self) -> "DistanceIndividual":
        return DistanceIndividual(self.coords.copy(), self.fitness)

    def mutate(
        self,
        data: DistanceIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> None:
        """
        Jitter each point with probability ``mut_prob`` by up to ``mut_amount`` per axis.

        A move that would leave ``[0, screen]`` on an axis is applied in the opposite
        direction instead.
        """
        mutated = rng.random(len(self.coords)) < mut_prob
        if not mutated.any():
            return

        deltas = np.trunc(rng.uniform(-mut_amount, mut_amount, size=(int(mutated.sum()), 2)))
        deltas = deltas.astype(np.int64)
        bounds = np.array([data.screen_width, data.screen_height])

        current = self.coords[mutated]
        moved = current + deltas
        outside = (moved < 0) | (moved > bounds)
        self.coords[mutated] = np.where(outside, current - deltas, moved)

    def crossover(
        self,
        other: "DistanceIndividual",
        data: DistanceIndividualData,
        rng: np.random.Generator,
    ) -> "DistanceIndividual":
        """Blend every point with its own random ratio, truncating to integers."""
        ratio = rng.random((len(self.coords), 1))
        blended = self.coords * ratio + other.coords * (1.0 - ratio)
        return DistanceIndividual(blended.astype(np.int64))

    def count_fitness(self, data: DistanceIndividualData) -> None:
        n = len(self.coords)
        center = np.array(data.center.as_tuple())
        centre_penalty = float(np.sum((self.coords - center) ** 2)) / n

        if n < 2:
            self.fitness = -centre_penalty
            return

        diffs = self.coords[:, None, :] - self.coords[None, :, :]
        squared = np.sum(diffs ** 2, axis=-1)
        np.fill_diagonal(squared, np.iinfo(np.int64).max)
        nearest = squared.min(axis=1)

        required = data.required_distance * data.required_distance
        self.fitness = -float(np.sum(np.abs(nearest - required))) - centre_penalty

    def get_visuals(self, data: DistanceIndividualData) -> Tuple[float, float]:
        totals = self.coords.sum(axis=0)
        return (float(totals[0]), float(totals[1]))

    def draw(self, data: DistanceIndividualData, output_path: Union[str, Path]) -> None:
        plot_points(
            self.coords, data.screen_width, data.screen_height, output_path,
            radius=data.required_distance / 2,
        )
