"""
Neighbourhood topology for the toroidal population grid.

Cells are stored row-major, so cell ``i`` sits at ``x = i % width``, ``y = i // width``.
Both axes wrap around: the left neighbour of the first column is the last column and the
upper neighbour of the first row is the last row.
"""

from typing import Tuple

NEIGHBOURHOOD_SIZE = 5


def l5_neighbours(i: int, width: int, height: int) -> Tuple[int, int, int, int, int]:
    """
    Return the L5 ("plus"-shaped) neighbourhood of cell ``i``.

    Args:
        i: Flat row-major cell index in ``[0, width * height)``
        width: Grid width
        height: Grid height

    Returns:
        ``(center, left, right, up, down)``. The centre cell is always included so a
        tournament may keep the current individual. On grids narrower than 3 cells
        some entries repeat.

    Example:
        >>> l5_neighbours(0, 5, 5)
        (0, 4, 1, 20, 5)
    """
    x = i % width
    y = i // width

    row = y * width
    left = row + (x + width - 1) % width
    right = row + (x + 1) % width
    up = ((y + height - 1) % height) * width + x
    down = ((y + 1) % height) * width + x

    return (i, left, right, up, down)
