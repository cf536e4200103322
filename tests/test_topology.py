"""
Test suite for the toroidal L5 neighbourhood.
"""

import pytest

from revo.evolutionary.topology import l5_neighbours, NEIGHBOURHOOD_SIZE


class TestL5Neighbours:
    """Neighbour indices on a 5x5 grid, ordered (center, left, right, up, down)."""

    @pytest.mark.parametrize("i, expected", [
        (0, (0, 4, 1, 20, 5)),
        (4, (4, 3, 0, 24, 9)),
        (20, (20, 24, 21, 15, 0)),
        (24, (24, 23, 20, 19, 4)),
        (12, (12, 11, 13, 7, 17)),
        (22, (22, 21, 23, 17, 2)),
    ])
    def test_known_cells(self, i, expected):
        """Corners wrap on both axes; interior cells do not wrap."""
        assert l5_neighbours(i, 5, 5) == expected

    def test_center_is_first(self):
        """The cell itself is always the first candidate."""
        for i in range(12):
            assert l5_neighbours(i, 4, 3)[0] == i

    def test_size(self):
        """Neighbourhood always has exactly five entries."""
        assert len(l5_neighbours(7, 6, 4)) == NEIGHBOURHOOD_SIZE

    def test_all_indices_in_range(self):
        """Every neighbour lies inside the grid for non-square grids."""
        width, height = 7, 3
        for i in range(width * height):
            assert all(0 <= n < width * height for n in l5_neighbours(i, width, height))

    def test_neighbour_relation_is_symmetric(self):
        """If b is the right neighbour of a, a is the left neighbour of b (and likewise up/down)."""
        width, height = 6, 4
        for i in range(width * height):
            _, left, right, up, down = l5_neighbours(i, width, height)
            assert l5_neighbours(right, width, height)[1] == i
            assert l5_neighbours(left, width, height)[2] == i
            assert l5_neighbours(down, width, height)[3] == i
            assert l5_neighbours(up, width, height)[4] == i

    def test_single_cell_grid(self):
        """On a 1x1 grid every neighbour is the cell itself."""
        assert l5_neighbours(0, 1, 1) == (0, 0, 0, 0, 0)

    def test_narrow_grid_repeats(self):
        """On a 2-wide grid left and right coincide."""
        _, left, right, _, _ = l5_neighbours(0, 2, 2)
        assert left == right == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
