"""
Rectangle packing with free placement.

Every rectangle carries its own top-left corner and rotation flag. The layout is
shifted so its bounding box starts at the origin, and fitness is the negated
bounding-box area plus a penalty for the total pairwise overlap area.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import numpy as np

from ..evolutionary.individual import EvoIndividual, EvoIndividualData
from ..utils.visualization import plot_rectangles
from .packer import (
    DEFAULT_N_RECTS,
    DEFAULT_RECT_MAX,
    DEFAULT_RECT_MIN,
    DEFAULT_SCREEN_HEIGHT,
    DEFAULT_SCREEN_WIDTH,
    Placements,
    layout_density,
    random_rect_sizes,
)

logger = logging.getLogger(__name__)

DEFAULT_MOVE_PROB = 0.4
DEFAULT_ROT_PROB = 0.2
DEFAULT_SWAP_PROB = 0.05
DEFAULT_MOVE_AMOUNT = 20
DEFAULT_OVERLAP_PENALTY = 1.0

# Gaussian moves are clipped to this many standard deviations
MAX_JUMP_SIGMAS = 3.0


def pairwise_overlaps(placements: Placements) -> np.ndarray:
    """
    Intersections of every rectangle pair.

    Args:
        placements: ``(x, y, w, h)`` rows

    Returns:
        ``(x, y, w, h)`` rows, one per overlapping pair ``i < j``
    """
    rects = np.asarray(placements, dtype=np.int64).reshape(-1, 4)
    x1, y1 = rects[:, 0], rects[:, 1]
    x2, y2 = x1 + rects[:, 2], y1 + rects[:, 3]

    left = np.maximum(x1[:, None], x1[None, :])
    top = np.maximum(y1[:, None], y1[None, :])
    right = np.minimum(x2[:, None], x2[None, :])
    bottom = np.minimum(y2[:, None], y2[None, :])

    i, j = np.triu_indices(len(rects), k=1)
    overlapping = (right[i, j] > left[i, j]) & (bottom[i, j] > top[i, j])
    i, j = i[overlapping], j[overlapping]
    return np.column_stack([
        left[i, j], top[i, j], right[i, j] - left[i, j], bottom[i, j] - top[i, j]
    ])


def overlap_area(placements: Placements) -> float:
    """Sum of intersection areas over all rectangle pairs."""
    overlaps = pairwise_overlaps(placements)
    return float((overlaps[:, 2] * overlaps[:, 3]).sum())


@dataclass(eq=False)
class FreePackerIndividualData(EvoIndividualData):
    """
    Rectangle sizes and mutation parameters.

    Attributes:
        sizes: ``(w, h)`` per rectangle, shape ``(n_rects, 2)``
        screen_width: Width of the area initial positions are scattered over
        screen_height: Height of that area
        move_prob: Per-rectangle probability of a Gaussian move
        rot_prob: Per-rectangle probability of flipping its rotation
        swap_prob: Per-rectangle probability of swapping placement with another one
        move_amount: Standard deviation of a move, in pixels
        overlap_penalty: Weight of the total overlap area in the fitness
    """
    sizes: np.ndarray
    screen_width: int = DEFAULT_SCREEN_WIDTH
    screen_height: int = DEFAULT_SCREEN_HEIGHT
    move_prob: float = DEFAULT_MOVE_PROB
    rot_prob: float = DEFAULT_ROT_PROB
    swap_prob: float = DEFAULT_SWAP_PROB
    move_amount: int = DEFAULT_MOVE_AMOUNT
    overlap_penalty: float = DEFAULT_OVERLAP_PENALTY

    def __post_init__(self):
        self.sizes = np.asarray(self.sizes, dtype=np.int64).reshape(-1, 2)
        if len(self.sizes) < 1:
            raise ValueError("Packer needs at least one rectangle")

    @classmethod
    def from_config(cls, config: Any, rng: Optional[np.random.Generator] = None) -> "FreePackerIndividualData":
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
            move_prob=config.get_float("move_prob", DEFAULT_MOVE_PROB),
            rot_prob=config.get_float("rot_prob", DEFAULT_ROT_PROB),
            swap_prob=config.get_float("swap_prob", DEFAULT_SWAP_PROB),
            move_amount=config.get_uint("move_amount", DEFAULT_MOVE_AMOUNT),
            overlap_penalty=config.get_float("overlap_penalty", DEFAULT_OVERLAP_PENALTY),
        )
        logger.info(
            f"Generated {data.n_rects} rectangles for free placement, "
            f"overlap penalty {data.overlap_penalty}"
        )
        return data

    @property
    def n_rects(self) -> int:
        return len(self.sizes)


class FreePackerIndividual(EvoIndividual):
    """Corner position and rotation flag for every rectangle."""

    def __init__(self, xs, ys, rotations, fitness: float = 0.0):
        self.xs = np.asarray(xs, dtype=float)
        self.ys = np.asarray(ys, dtype=float)
        self.rotations = np.asarray(rotations, dtype=bool)
        if not len(self.xs) == len(self.ys) == len(self.rotations):
            raise ValueError("xs, ys and rotations must have the same length")
        self.fitness = fitness

    def __repr__(self) -> str:
        return f"FreePackerIndividual(n_rects={len(self.xs)}, fitness={self.fitness:.1f})"

    @classmethod
    def new_randomised(cls, data: FreePackerIndividualData, rng: np.random.Generator) -> "FreePackerIndividual":
        """Scatter the rectangles roughly inside the screen with random rotations."""
        rotations = rng.random(data.n_rects) < 0.5
        sizes = np.where(rotations[:, None], data.sizes[:, ::-1], data.sizes)
        max_x = np.maximum(data.screen_width - sizes[:, 0], 0)
        max_y = np.maximum(data.screen_height - sizes[:, 1], 0)
        xs = rng.integers(0, max_x + 1)
        ys = rng.integers(0, max_y + 1)
        return cls(xs, ys, rotations)

    def clone(self) -> "FreePackerIndividual":
        return FreePackerIndividual(self.xs.copy(), self.ys.copy(), self.rotations.copy(), self.fitness)

    def compute_layout(self, data: FreePackerIndividualData) -> Tuple[Placements, int, int]:
        """
        Shift the layout to the origin and round it to whole pixels.

        Returns:
            Tuple of (placements per rectangle, total width, total height)
        """
        sizes = np.where(self.rotations[:, None], data.sizes[:, ::-1], data.sizes)
        min_x, min_y = self.xs.min(), self.ys.min()
        max_x = (self.xs + sizes[:, 0]).max()
        max_y = (self.ys + sizes[:, 1]).max()

        width = max(int(np.ceil(max_x - min_x)), 1)
        height = max(int(np.ceil(max_y - min_y)), 1)

        placements = np.column_stack([
            np.maximum(np.round(self.xs - min_x), 0).astype(np.int64),
            np.maximum(np.round(self.ys - min_y), 0).astype(np.int64),
            sizes,
        ])
        return placements, width, height

    def mutate(
        self,
        data: FreePackerIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> None:
        """
        Per rectangle: a clipped Gaussian move with ``move_prob``, a rotation flip with
        ``rot_prob`` and a placement swap with ``swap_prob``. The engine-level
        ``mut_prob`` and ``mut_amount`` are not used by this problem.
        """
        n = len(self.xs)
        sigma = float(data.move_amount)
        max_jump = MAX_JUMP_SIGMAS * sigma

        for i in range(n):
            if rng.random() < data.move_prob and sigma > 0.0:
                dx, dy = np.clip(rng.normal(0.0, sigma, size=2), -max_jump, max_jump)
                self.xs[i] += dx
                self.ys[i] += dy

            if rng.random() < data.rot_prob:
                self.rotations[i] = not self.rotations[i]

            if rng.random() < data.swap_prob and n > 1:
                j = int(rng.integers(n))
                if j == i:
                    j = (j + 1) % n
                for values in (self.xs, self.ys, self.rotations):
                    values[i], values[j] = values[j], values[i]

    def crossover(
        self,
        other: "FreePackerIndividual",
        data: FreePackerIndividualData,
        rng: np.random.Generator,
    ) -> "FreePackerIndividual":
        """Interpolate every corner with its own random weight and mix rotations uniformly."""
        n = len(self.xs)
        alpha = rng.random(n)
        use_self = rng.random(n) < 0.5
        weight = np.where(use_self, alpha, 1.0 - alpha)

        xs = weight * self.xs + (1.0 - weight) * other.xs
        ys = weight * self.ys + (1.0 - weight) * other.ys
        rotations = np.where(rng.random(n) < 0.5, self.rotations, other.rotations)
        return FreePackerIndividual(xs, ys, rotations)

    def count_fitness(self, data: FreePackerIndividualData) -> None:
        placements, width, height = self.compute_layout(data)
        self.fitness = -(float(width * height) + data.overlap_penalty * overlap_area(placements))

    def density(self, data: FreePackerIndividualData) -> float:
        _, width, height = self.compute_layout(data)
        return layout_density(data.sizes, width, height)

    def get_visuals(self, data: FreePackerIndividualData) -> Tuple[float, float]:
        placements, width, height = self.compute_layout(data)
        rects = placements.astype(float)
        t = np.arange(len(rects), dtype=float)
        fx, fy = rects[:, 0] / width, rects[:, 1] / height
        fw, fh = rects[:, 2] / width, rects[:, 3] / height
        sign = np.where(self.rotations, 1.0, -1.0)

        a = np.sin(fx + 1.3 * fw + 0.2 * t).sum() + np.sin(sign * 2.0 + 0.3 * t).sum()
        b = np.cos(fy + 0.7 * fh - 0.3 * t).sum() + np.cos(sign * 2.0 - 0.5 * t).sum()
        return (float(a), float(b))

    def draw(self, data: FreePackerIndividualData, output_path: Union[str, Path]) -> None:
        placements, width, height = self.compute_layout(data)
        plot_rectangles(placements, width, height, output_path, overlaps=pairwise_overlaps(placements))
