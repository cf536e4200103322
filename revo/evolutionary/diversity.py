"""
Population diversity visualisation.

Every individual becomes one pixel. Its fitness drives CIE-Lab lightness (L) and its two
visual scalars drive the a/b chroma channels. Each channel is rank-normalised across the
whole population, so the full colour range is used whenever the population is diverse.
The result is converted to sRGB.
"""

from typing import Iterable, Tuple

import numpy as np

from .individual import EvoIndividual, EvoIndividualData

L_RANGE: Tuple[float, float] = (10.0, 90.0)
A_RANGE: Tuple[float, float] = (-128.0, 128.0)
B_RANGE: Tuple[float, float] = (-128.0, 128.0)

TIE_EPSILON = 1e-9

# CIE D65 reference white
_WHITE_X = 0.95047
_WHITE_Z = 1.08883
_LAB_EPSILON = 216.0 / 24389.0
_LAB_KAPPA = 24389.0 / 27.0

_XYZ_TO_LINEAR_RGB = np.array([
    [3.2404542, -1.5371385, -0.4985314],
    [-0.9692660, 1.8760108, 0.0415560],
    [0.0556434, -0.2040259, 1.0572252],
])


def prepare_lab_data(individuals: Iterable[EvoIndividual], data: EvoIndividualData) -> np.ndarray:
    """
    Collect raw ``(fitness, visual_a, visual_b)`` triples.

    Returns:
        Array of shape ``(n, 3)``, row ``i`` belonging to grid cell ``i``
    """
    rows = []
    for individual in individuals:
        a, b = individual.get_visuals(data)
        rows.append((individual.get_fitness(), a, b))
    return np.array(rows, dtype=float).reshape(-1, 3)


def rank_normalize(
    values: np.ndarray,
    min_val: float,
    max_val: float,
    eps: float = TIE_EPSILON
) -> np.ndarray:
    """
    Map values onto ``[min_val, max_val]`` by rank.

    The k-th smallest value goes to ``min_val + k * (max_val - min_val) / (n - 1)``.
    Values within ``eps`` of the first value of their tie group all receive that
    group's output, so equal inputs always map to equal outputs. A population of
    size 1, or one where every value is equal, collapses to ``min_val``.

    Args:
        values: 1-D array of channel values
        min_val: Lower end of the target range
        max_val: Upper end of the target range
        eps: Tolerance under which two values count as tied

    Returns:
        Normalised array in the original order
    """
    values = np.asarray(values, dtype=float)
    n = len(values)
    result = np.empty(n, dtype=float)
    if n == 0:
        return result

    if np.isnan(values).any():
        raise ValueError("Cannot rank-normalise NaN values")

    step = (max_val - min_val) / (n - 1 if n > 1 else 1)
    order = np.argsort(values, kind="stable")

    last_val = values[order[0]]
    last_norm = min_val
    result[order[0]] = last_norm

    for rank in range(1, n):
        index = order[rank]
        value = values[index]
        if abs(value - last_val) >= eps:
            last_val = value
            last_norm = min_val + rank * step
        result[index] = last_norm

    return result


def normalize_lab_rank_based(lab: np.ndarray) -> np.ndarray:
    """Rank-normalise the L, a and b columns independently."""
    lab = np.asarray(lab, dtype=float)
    normalized = np.empty_like(lab)
    for channel, (low, high) in enumerate((L_RANGE, A_RANGE, B_RANGE)):
        normalized[:, channel] = rank_normalize(lab[:, channel], low, high)
    return normalized


def lab_to_rgb(lab: np.ndarray) -> np.ndarray:
    """
    Convert CIE-Lab (D65) colours to 8-bit sRGB.

    Args:
        lab: Array of shape ``(..., 3)``

    Returns:
        ``uint8`` array of the same leading shape
    """
    lab = np.asarray(lab, dtype=float)
    l, a, b = lab[..., 0], lab[..., 1], lab[..., 2]

    fy = (l + 16.0) / 116.0
    fx = a / 500.0 + fy
    fz = fy - b / 200.0

    fx3 = fx ** 3
    fz3 = fz ** 3
    x = np.where(fx3 > _LAB_EPSILON, fx3, (116.0 * fx - 16.0) / _LAB_KAPPA) * _WHITE_X
    y = np.where(l > _LAB_KAPPA * _LAB_EPSILON, fy ** 3, l / _LAB_KAPPA)
    z = np.where(fz3 > _LAB_EPSILON, fz3, (116.0 * fz - 16.0) / _LAB_KAPPA) * _WHITE_Z

    linear = np.stack([x, y, z], axis=-1) @ _XYZ_TO_LINEAR_RGB.T
    linear = np.clip(linear, 0.0, None)
    srgb = np.where(
        linear > 0.0031308,
        1.055 * np.power(linear, 1.0 / 2.4) - 0.055,
        12.92 * linear,
    )
    return np.rint(np.clip(srgb, 0.0, 1.0) * 255.0).astype(np.uint8)


def render_lab_grid(lab: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Lay row-major Lab triples out on the grid and convert them to RGB.

    Returns:
        ``uint8`` array of shape ``(height, width, 3)``; pixel ``[y, x]`` is cell ``y * width + x``
    """
    lab = np.asarray(lab, dtype=float)
    if lab.shape != (width * height, 3):
        raise ValueError(
            f"Expected {width * height} Lab triples for a {width}x{height} grid, got {lab.shape}"
        )
    return lab_to_rgb(lab.reshape(height, width, 3))


def visualise_population(
    individuals: Iterable[EvoIndividual],
    data: EvoIndividualData,
    width: int,
    height: int
) -> np.ndarray:
    """Full pipeline: collect triples, rank-normalise each channel, rasterise."""
    lab = normalize_lab_rank_based(prepare_lab_data(individuals, data))
    return render_lab_grid(lab, width, height)
