"""
Rectangle packing with shelf layouts.

An individual is a placement order over the rectangles, a rotation flag per rectangle
and a row length. Rectangles are laid out left to right in that order and a new row
(shelf) starts once the current one reaches ``row_len`` pixels. Fitness is the negated
bounding-box area, scaled up slightly for elongated layouts.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import numpy as np

from ..evolutionary.individual import EvoIndividual, EvoIndividualData
from ..utils.config import ConfigError
from ..utils.visualization import plot_rectangles

logger = logging.getLogger(__name__)

DEFAULT_N_RECTS = 50
DEFAULT_RECT_MIN = 10
DEFAULT_RECT_MAX = 80
DEFAULT_SCREEN_WIDTH = 1000
DEFAULT_SCREEN_HEIGHT = 1000
DEFAULT_SWAP_PROB = 0.4
DEFAULT_REVERSE_PROB = 0.1
DEFAULT_HEIGHT_CHANGE_PROB = 0.5
DEFAULT_HEIGHT_CHANGE_AMOUNT = 5

# Penalty per unit of aspect ratio above 1 (1.0 for a square layout)
ASPECT_PENALTY = 0.01

Placements = np.ndarray  # shape (n, 4): x, y, w, h


def random_rect_sizes(
    n_rects: int,
    rect_min: int,
    rect_max: int,
    rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """
    Draw rectangle sizes with both sides uniform in ``[rect_min, rect_max]``.

    Returns:
        ``int64`` array of shape ``(n_rects, 2)`` holding ``(w, h)`` rows
    """
    if n_rects < 1:
        raise ConfigError("n_rects", f"must be at least 1, got {n_rects}")
    if not 1 <= rect_min <= rect_max:
        raise ConfigError("rect_min", f"need 1 <= rect_min <= rect_max, got {rect_min}, {rect_max}")
    rng = rng if rng is not None else np.random.default_rng()
    return rng.integers(rect_min, rect_max + 1, size=(n_rects, 2)).astype(np.int64)


def layout_density(sizes: np.ndarray, width: int, height: int) -> float:
    """Share of the bounding box covered by rectangles, in percent."""
    if width <= 0 or height <= 0:
        return 0.0
    return 100.0 * float(np.prod(sizes, axis=1).sum()) / (width * height)


@dataclass(eq=False)
class PackerIndividualData(EvoIndividualData):
    """
    Rectangle sizes and operator probabilities.

    Attributes:
        sizes: ``(w, h)`` per rectangle, shape ``(n_rects, 2)``
        screen_width: Width of the rendered image area
        screen_height: Height of the rendered image area
        swap_prob: Per-position probability of swapping with a random position
        reverse_prob: Probability of reversing a random part of the order
        height_change_prob: Probability of changing the row length
        height_change_amount: Maximal row length change
    """
    sizes: np.ndarray
    screen_width: int = DEFAULT_SCREEN_WIDTH
    screen_height: int = DEFAULT_SCREEN_HEIGHT
    swap_prob: float = DEFAULT_SWAP_PROB
    reverse_prob: float = DEFAULT_REVERSE_PROB
    height_change_prob: float = DEFAULT_HEIGHT_CHANGE_PROB
    height_change_amount: int = DEFAULT_HEIGHT_CHANGE_AMOUNT

    def __post_init__(self):
        self.sizes = np.asarray(self.sizes, dtype=np.int64).reshape(-1, 2)
        if len(self.sizes) < 1:
            raise ValueError("Packer needs at least one rectangle")

    @classmethod
    def from_config(cls, config: Any, rng: Optional[np.random.Generator] = None) -> "PackerIndividualData":
        sizes = random_rect_sizes(
            config.get_uint("n_rects", DEFAULT_N_RECTS),
            config.get_uint("rect_min", DEFAULT_RECT_MIN),
            config.get_uint("rect_max", DEFAULT_RECT_MAX),
            rng,
        )
        data = cls(
            sizes,
            screen_width=config.get_uint("screen_width", DEFAULT_SCREEN_WIDTH),
            screen_height=config.get_uint("screen_height", DEFAULT_SCREEN_HEIGHT),
            swap_prob=config.get_float("swap_prob", DEFAULT_SWAP_PROB),
            reverse_prob=config.get_float("reverse_prob", DEFAULT_REVERSE_PROB),
            height_change_prob=config.get_float("height_change_prob", DEFAULT_HEIGHT_CHANGE_PROB),
            height_change_amount=config.get_uint("height_change_amount", DEFAULT_HEIGHT_CHANGE_AMOUNT),
        )
        logger.info(
            f"Generated {data.n_rects} rectangles, total area {data.total_area}, "
            f"max row length {data.max_width}"
        )
        return data

    @property
    def n_rects(self) -> int:
        return len(self.sizes)

    @property
    def total_area(self) -> int:
        return int(np.prod(self.sizes, axis=1).sum())

    @property
    def max_width(self) -> int:
        """Length of a single row holding every rectangle on its longer side."""
        return int(self.sizes.max(axis=1).sum())


class PackerIndividual(EvoIndividual):
    """Placement order, rotation flags and row length of a shelf layout."""

    def __init__(
        self,
        order: Union[np.ndarray, List[int]],
        rotations: Union[np.ndarray, List[bool]],
        row_len: int,
        fitness: float = 0.0
    ):
        self.order = np.asarray(order, dtype=np.int64)
        self.rotations = np.asarray(rotations, dtype=bool)
        self.row_len = int(row_len)
        self.fitness = fitness

    def __repr__(self) -> str:
        return (
            f"PackerIndividual(n_rects={len(self.order)}, row_len={self.row_len}, "
            f"fitness={self.fitness:.1f})"
        )

    @classmethod
    def new_randomised(cls, data: PackerIndividualData, rng: np.random.Generator) -> "PackerIndividual":
        n = data.n_rects
        return cls(
            rng.permutation(n),
            rng.random(n) < 0.5,
            int(rng.integers(1, data.max_width + 1)),
        )

    def clone(self) -> "PackerIndividual":
        return PackerIndividual(self.order.copy(), self.rotations.copy(), self.row_len, self.fitness)

    # ------------------------------------------------------------------ layout

    def rotated_sizes(self, data: PackerIndividualData) -> np.ndarray:
        """``(w, h)`` per rectangle with rotations applied, indexed by rectangle."""
        return np.where(self.rotations[:, None], data.sizes[:, ::-1], data.sizes)

    def compute_layout(self, data: PackerIndividualData) -> Tuple[Placements, int, int]:
        """
        Lay the rectangles out in shelves.

        Returns:
            Tuple of (placements in ``order``, total width, total height)
        """
        sizes = self.rotated_sizes(data)
        placements = np.zeros((len(self.order), 4), dtype=np.int64)

        cur_x = cur_y = row_height = width = 0
        for i, rect in enumerate(self.order):
            w, h = int(sizes[rect, 0]), int(sizes[rect, 1])
            if i > 0 and cur_x >= self.row_len:
                cur_x = 0
                cur_y += row_height
                row_height = 0

            placements[i] = (cur_x, cur_y, w, h)
            cur_x += w
            row_height = max(row_height, h)
            width = max(width, cur_x)

        return placements, width, cur_y + row_height

    # ------------------------------------------------------------------ operators

    def mutate(
        self,
        data: PackerIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> None:
        """
        Flip rotations with ``mut_prob``, swap order positions with ``swap_prob``,
        reverse a random slice of the order with ``reverse_prob`` and nudge the row
        length with ``height_change_prob``.
        """
        n = len(self.order)
        if n < 2:
            return

        for i in range(n):
            if rng.random() < mut_prob:
                self.rotations[i] = not self.rotations[i]
            if rng.random() < data.swap_prob:
                j = int(rng.integers(n))
                if j == i:
                    j = (j + 1) % n
                self.order[i], self.order[j] = self.order[j], self.order[i]

        if rng.random() < data.reverse_prob:
            start = int(rng.integers(0, n - 1))
            end = int(rng.integers(start + 1, n))
            self.order[start:end + 1] = self.order[start:end + 1][::-1].copy()

        if rng.random() < data.height_change_prob and data.height_change_amount > 0:
            amount = data.height_change_amount
            delta = int(rng.integers(-amount, amount))
            self.row_len = min(max(self.row_len + delta, 1), data.max_width)

    def mutate_into(
        self,
        target: "PackerIndividual",
        data: PackerIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> "PackerIndividual":
        np.copyto(target.order, self.order)
        np.copyto(target.rotations, self.rotations)
        target.row_len = self.row_len
        target.fitness = self.fitness
        target.mutate(data, rng, mut_prob, mut_amount)
        return target

    def crossover(
        self,
        other: "PackerIndividual",
        data: PackerIndividualData,
        rng: np.random.Generator,
    ) -> "PackerIndividual":
        """
        Order crossover on the placement order, uniform crossover on rotations and a
        random blend of the row lengths.

        A slice of this parent's order is kept in place. The remaining positions are
        filled after the slice, wrapping around, with the other parent's rectangles in
        their order of appearance.
        """
        n = len(self.order)
        if n < 2:
            return self.clone()

        start = int(rng.integers(0, n))
        end = int(rng.integers(start, n))

        child = np.empty(n, dtype=np.int64)
        used = np.zeros(n, dtype=bool)
        child[start:end + 1] = self.order[start:end + 1]
        used[self.order[start:end + 1]] = True

        pos = (end + 1) % n
        for rect in other.order:
            if not used[rect]:
                child[pos] = rect
                used[rect] = True
                pos = (pos + 1) % n

        rotations = np.where(rng.random(n) < 0.5, self.rotations, other.rotations)
        ratio = rng.random()
        row_len = int(self.row_len * ratio + other.row_len * (1.0 - ratio))

        return PackerIndividual(child, rotations, max(row_len, 1))

    # ------------------------------------------------------------------ evaluation

    def count_fitness(self, data: PackerIndividualData) -> None:
        _, width, height = self.compute_layout(data)
        if width == 0 or height == 0:
            self.fitness = float("-inf")
            return

        aspect = max(width, height) / min(width, height)
        self.fitness = -float(width * height) * (1.0 + ASPECT_PENALTY * (aspect - 1.0))

    def density(self, data: PackerIndividualData) -> float:
        _, width, height = self.compute_layout(data)
        return layout_density(data.sizes, width, height)

    def get_visuals(self, data: PackerIndividualData) -> Tuple[float, float]:
        """
        Two layout features: permutation smoothness plus rotation share, and the
        normalised row length plus the mean position of rotated rectangles.
        """
        n = len(self.order)
        max_adjacent = max((n - 1) ** 2, 1)
        smoothness = 1.0 - float(np.abs(np.diff(self.order)).sum()) / max_adjacent

        rotated = np.flatnonzero(self.rotations)
        rot_ratio = len(rotated) / n
        rot_center = float(rotated.mean()) / max(n - 1, 1) if len(rotated) else 0.5
        row_norm = self.row_len / data.max_width if data.max_width > 0 else 0.0

        return (smoothness + 0.5 * rot_ratio, row_norm + 0.5 * rot_center)

    def draw(self, data: PackerIndividualData, output_path: Union[str, Path]) -> None:
        placements, width, height = self.compute_layout(data)
        plot_rectangles(placements, width, height, output_path)
