"""
Test suite for the population diversity image.

Tests cover:
- Rank normalization (ordering, ties, degenerate sizes)
- Lab to sRGB conversion on reference colours
- Full rasterisation pipeline
"""

import numpy as np
import pytest

from revo.evolutionary.diversity import (
    A_RANGE,
    L_RANGE,
    lab_to_rgb,
    normalize_lab_rank_based,
    prepare_lab_data,
    rank_normalize,
    render_lab_grid,
    visualise_population,
)

from conftest import MockIndividual, MockIndividualData


class TestRankNormalize:
    """Test rank-based normalisation of one channel."""

    def test_ranks_spread_evenly(self):
        """k-th smallest value maps to min + k * step."""
        result = rank_normalize(np.array([3.0, 1.0, 2.0]), 0.0, 10.0)
        np.testing.assert_allclose(result, [10.0, 0.0, 5.0])

    def test_extremes_hit_range_ends(self):
        """Smallest value maps to min_val and largest to max_val."""
        values = np.array([5.0, -2.0, 40.0, 7.0, 0.5])
        result = rank_normalize(values, 10.0, 90.0)
        assert result[np.argmin(values)] == 10.0
        assert result[np.argmax(values)] == pytest.approx(90.0)

    def test_ties_share_output(self):
        """Equal inputs give equal outputs, taking the first rank of the group."""
        result = rank_normalize(np.array([1.0, 1.0, 2.0]), 0.0, 10.0)
        np.testing.assert_allclose(result, [0.0, 0.0, 10.0])

    def test_near_ties_within_epsilon(self):
        """Values closer than epsilon count as tied."""
        result = rank_normalize(np.array([1.0, 1.0 + 1e-12, 5.0]), 0.0, 2.0)
        assert result[0] == result[1] == 0.0
        assert result[2] == pytest.approx(2.0)

    def test_order_preserved(self):
        """Sorting the output recovers the order of the input."""
        rng = np.random.default_rng(0)
        values = rng.normal(size=50)
        result = rank_normalize(values, -128.0, 128.0)
        np.testing.assert_array_equal(np.argsort(result, kind="stable"), np.argsort(values, kind="stable"))
        assert result.min() >= -128.0
        assert result.max() <= 128.0 + 1e-9

    def test_all_equal_collapse_to_min(self):
        """A uniform channel maps every value to min_val."""
        result = rank_normalize(np.full(4, 3.0), -128.0, 128.0)
        np.testing.assert_array_equal(result, np.full(4, -128.0))

    def test_single_value(self):
        """A population of one maps to min_val."""
        np.testing.assert_array_equal(rank_normalize(np.array([42.0]), 10.0, 90.0), [10.0])

    def test_empty(self):
        """Empty input gives empty output."""
        assert rank_normalize(np.array([]), 0.0, 1.0).shape == (0,)

    def test_nan_rejected(self):
        """NaN values cannot be ranked."""
        with pytest.raises(ValueError):
            rank_normalize(np.array([1.0, np.nan]), 0.0, 1.0)


class TestLabToRgb:
    """Test colour conversion on well-known reference colours."""

    def test_white(self):
        """L=100 with no chroma is white."""
        np.testing.assert_array_equal(lab_to_rgb(np.array([100.0, 0.0, 0.0])), [255, 255, 255])

    def test_black(self):
        """L=0 is black."""
        np.testing.assert_array_equal(lab_to_rgb(np.array([0.0, 0.0, 0.0])), [0, 0, 0])

    def test_mid_grey(self):
        """L=50 with no chroma is a neutral grey around 119."""
        rgb = lab_to_rgb(np.array([50.0, 0.0, 0.0])).astype(int)
        assert rgb.max() - rgb.min() <= 1
        assert 117 <= rgb[0] <= 120

    def test_output_clipped(self):
        """Out-of-gamut colours are clipped into 0..255."""
        rgb = lab_to_rgb(np.array([[90.0, 128.0, -128.0], [10.0, -128.0, 128.0]]))
        assert rgb.dtype == np.uint8
        assert rgb.shape == (2, 3)


class TestPipeline:
    """Test the full population rasterisation."""

    def test_prepare_lab_data(self):
        """Triples are (fitness, visual_a, visual_b) in grid order."""
        individuals = [MockIndividual(value=i, fitness=float(i), visuals=(i - 1.0, i + 1.0)) for i in range(3)]
        lab = prepare_lab_data(individuals, MockIndividualData())
        np.testing.assert_array_equal(lab, [[0, -1, 1], [1, 0, 2], [2, 1, 3]])

    def test_normalize_channels_independently(self):
        """Each channel is mapped onto its own range."""
        lab = np.array([[0.0, 5.0, 1.0], [1.0, 4.0, 1.0]])
        normalized = normalize_lab_rank_based(lab)
        np.testing.assert_allclose(normalized[:, 0], [L_RANGE[0], L_RANGE[1]])
        np.testing.assert_allclose(normalized[:, 1], [A_RANGE[1], A_RANGE[0]])
        np.testing.assert_allclose(normalized[:, 2], [-128.0, -128.0])

    def test_render_shape(self):
        """Pixel [y, x] holds cell y * width + x."""
        lab = np.zeros((6, 3))
        lab[5] = [100.0, 0.0, 0.0]
        image = render_lab_grid(lab, width=3, height=2)
        assert image.shape == (2, 3, 3)
        np.testing.assert_array_equal(image[1, 2], [255, 255, 255])
        np.testing.assert_array_equal(image[0, 0], [0, 0, 0])

    def test_render_wrong_size(self):
        """Mismatched triple count is rejected."""
        with pytest.raises(ValueError):
            render_lab_grid(np.zeros((5, 3)), width=3, height=2)

    def test_visualise_population_identical_cells(self):
        """A population of clones renders as a single colour."""
        individuals = [MockIndividual(fitness=1.0, visuals=(2.0, 3.0)) for _ in range(6)]
        image = visualise_population(individuals, MockIndividualData(), 2, 3)
        assert image.shape == (3, 2, 3)
        assert (image == image[0, 0]).all()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
