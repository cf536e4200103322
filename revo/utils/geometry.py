"""
Integer point helpers shared by the example problems.
"""

import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Coord:
    """Point on an integer screen grid."""
    x: int
    y: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @staticmethod
    def distance_euclid(first: "Coord", second: "Coord") -> int:
        """Squared Euclidean distance (no square root, exact for integers)."""
        dx = second.x - first.x
        dy = second.y - first.y
        return dx * dx + dy * dy

    @staticmethod
    def distance_manhattan(first: "Coord", second: "Coord") -> int:
        return abs(second.x - first.x) + abs(second.y - first.y)

    @staticmethod
    def normalized_direction(first: "Coord", second: "Coord") -> Tuple[float, float]:
        """
        Unit vector pointing from ``first`` to ``second``.

        Returns:
            ``(dx, dy)``; ``(0.0, 0.0)`` when both points coincide
        """
        if first == second:
            return (0.0, 0.0)
        d = math.sqrt(Coord.distance_euclid(first, second))
        return ((second.x - first.x) / d, (second.y - first.y) / d)
