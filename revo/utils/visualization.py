"""
Visualization utilities for revo.

Population rasters are written as-is with ``plt.imsave``. Plots are tolerant to
empty inputs so a run can always emit its figures.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Sequence, Union

import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402


def _prepare_output_path(output_path: Union[str, Path]) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _save_figure(fig: plt.Figure, output_path: Union[str, Path]) -> None:
    path = _prepare_output_path(output_path)
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def _safe_series(values: Any) -> pd.Series:
    if isinstance(values, pd.Series):
        return values.dropna()
    if isinstance(values, (list, tuple, np.ndarray)):
        return pd.Series(values, dtype=float).dropna()
    return pd.Series(dtype=float)


def _empty_plot(message: str, output_path: Union[str, Path]) -> None:
    fig, ax = plt.subplots(figsize=(6, 6))
    ax.text(0.5, 0.5, message, ha="center", va="center")
    ax.set_axis_off()
    _save_figure(fig, output_path)


def save_population_image(image: np.ndarray, output_path: Union[str, Path]) -> Path:
    """
    Write a population raster to disk, one pixel per individual.

    Args:
        image: ``uint8`` RGB array of shape ``(height, width, 3)``
        output_path: Destination file (format inferred from the suffix, usually PNG)

    Returns:
        Path of the written file
    """
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (height, width, 3) RGB array, got shape {image.shape}")
    path = _prepare_output_path(output_path)
    plt.imsave(path, image)
    return path


def plot_fitness_vs_generation(
    generation_history: Sequence[Dict[str, Any]],
    output_path: Union[str, Path],
) -> None:
    """Plot best and average fitness by generation."""
    history = list(generation_history or [])
    if not history:
        _empty_plot("No generation history", output_path)
        return

    generations = [int(entry.get("generation", i)) for i, entry in enumerate(history)]
    best = _safe_series([entry.get("best_fitness", np.nan) for entry in history])
    average = _safe_series([entry.get("average_fitness", np.nan) for entry in history])

    fig, ax = plt.subplots(figsize=(10, 5))
    if not best.empty:
        ax.plot([generations[i] for i in best.index], best.values, label="Best", linewidth=2)
    if not average.empty:
        ax.plot(
            [generations[i] for i in average.index], average.values,
            label="Average", linewidth=2, alpha=0.8
        )
    ax.set_title("Fitness vs Generation")
    ax.set_xlabel("Generation")
    ax.set_ylabel("Fitness")
    ax.legend()
    ax.grid(alpha=0.2)
    _save_figure(fig, output_path)


def plot_tour(
    coords: Sequence[Sequence[float]],
    tour: Sequence[int],
    width: float,
    height: float,
    output_path: Union[str, Path],
) -> None:
    """Plot a closed tour through ``coords`` visiting cities in ``tour`` order."""
    points = np.asarray(coords, dtype=float).reshape(-1, 2)
    if len(points) == 0 or len(tour) == 0:
        _empty_plot("Empty tour", output_path)
        return

    ordered = points[np.append(np.asarray(tour, dtype=int), tour[0])]

    fig, ax = plt.subplots(figsize=(6, 6))
    ax.plot(ordered[:, 0], ordered[:, 1], color="tab:blue", linewidth=1)
    ax.scatter(points[:, 0], points[:, 1], color="tab:red", s=8, zorder=3)
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.set_title(f"Tour ({len(tour)} cities)")
    _save_figure(fig, output_path)


def plot_points(
    coords: Sequence[Sequence[float]],
    width: float,
    height: float,
    output_path: Union[str, Path],
    radius: float = 0.0,
) -> None:
    """Scatter points inside a ``width x height`` box, optionally with a circle of ``radius`` each."""
    points = np.asarray(coords, dtype=float).reshape(-1, 2)
    if len(points) == 0:
        _empty_plot("No points", output_path)
        return

    fig, ax = plt.subplots(figsize=(6, 6))
    ax.scatter(points[:, 0], points[:, 1], color="tab:green", s=10, zorder=3)
    if radius > 0:
        for x, y in points:
            ax.add_patch(plt.Circle((x, y), radius, fill=False, alpha=0.3))
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.set_title(f"{len(points)} points")
    _save_figure(fig, output_path)


def plot_rectangles(
    placements: Sequence[Sequence[float]],
    width: float,
    height: float,
    output_path: Union[str, Path],
    overlaps: Sequence[Sequence[float]] = (),
) -> None:
    """
    Draw a rectangle layout.

    Args:
        placements: ``(x, y, w, h)`` per rectangle, y pointing down
        width: Layout width
        height: Layout height
        output_path: Destination file
        overlaps: Optional ``(x, y, w, h)`` intersections highlighted in red
    """
    rects = np.asarray(placements, dtype=float).reshape(-1, 4)
    if len(rects) == 0 or width <= 0 or height <= 0:
        _empty_plot("Empty layout", output_path)
        return

    fig, ax = plt.subplots(figsize=(6, 6))
    for i, (x, y, w, h) in enumerate(rects):
        color = ((50 + i * 37 % 205) / 255, (80 + i * 71 % 175) / 255, (100 + i * 53 % 155) / 255)
        ax.add_patch(plt.Rectangle((x, y), w, h, facecolor=color, edgecolor="black", linewidth=0.3))
    for x, y, w, h in np.asarray(overlaps, dtype=float).reshape(-1, 4):
        ax.add_patch(plt.Rectangle((x, y), w, h, facecolor="red", alpha=0.6))

    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.set_title(f"{len(rects)} rectangles, {width:.0f}x{height:.0f}")
    _save_figure(fig, output_path)


def plot_function_fit(
    points: Sequence[Sequence[float]],
    pred_x: Sequence[float],
    pred_y: Sequence[float],
    output_path: Union[str, Path],
    title: str = "",
) -> None:
    """Plot target ``(x, y)`` points against a predicted curve, clipped near the target range."""
    target = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(target) == 0:
        _empty_plot("No data", output_path)
        return

    pred_x = np.asarray(pred_x, dtype=float)
    pred_y = np.asarray(pred_y, dtype=float)
    min_x, max_x = target[:, 0].min(), target[:, 0].max()
    min_y, max_y = target[:, 1].min(), target[:, 1].max()
    margin_x = (max_x - min_x) * 0.1 or 1.0
    margin_y = (max_y - min_y) * 0.1 or 1.0

    visible = (
        np.isfinite(pred_y)
        & (pred_y >= min_y - 10 * margin_y)
        & (pred_y <= max_y + 10 * margin_y)
    )

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(target[:, 0], target[:, 1], "o-", color="tab:blue", markersize=3, label="Target")
    ax.plot(pred_x[visible], pred_y[visible], "o-", color="tab:red", markersize=2, label="Prediction")
    ax.set_xlim(min_x - margin_x, max_x + margin_x)
    ax.set_ylim(min_y - margin_y, max_y + margin_y)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title(title, fontsize=9)
    ax.legend()
    ax.grid(True, alpha=0.3)
    _save_figure(fig, output_path)
