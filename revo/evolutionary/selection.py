"""
Selection mechanisms for the revo population engine.

This module implements:
- Single tournament: deterministic best of a candidate set
- Dual tournament: the two best candidates, used to pick crossover parents
- Roulette: fitness-proportionate choice over min-shifted fitness
- Dual roulette: two roulette draws without replacement

Candidates are given as indices into the current generation. Ties are always resolved
in favour of the candidate seen first.
"""

import math
from enum import Enum
from logging import getLogger
from typing import Optional, Sequence, Tuple

import numpy as np

from .individual import EvoIndividual

logger = getLogger(__name__)


class InvalidFitnessError(ValueError):
    """Raised when an individual reports a NaN fitness."""


def _fitness(individuals: Sequence[EvoIndividual], index: int) -> float:
    fitness = individuals[index].get_fitness()
    if math.isnan(fitness):
        raise InvalidFitnessError(f"Individual at index {index} has NaN fitness")
    return fitness


def single_tournament(
    indices: Sequence[int],
    individuals: Sequence[EvoIndividual],
    rng: Optional[np.random.Generator] = None
) -> int:
    """
    Select the candidate with the strictly greatest fitness.

    Args:
        indices: Candidate indices (non-empty)
        individuals: Current generation
        rng: Unused, accepted so all single-parent strategies share a signature

    Returns:
        Index of the winner (first-seen on ties)

    Raises:
        ValueError: If indices is empty
        InvalidFitnessError: If a candidate has NaN fitness
    """
    if not indices:
        raise ValueError("Cannot perform tournament selection on empty candidate set")

    best_i = indices[0]
    best_fitness = _fitness(individuals, best_i)

    for index in indices[1:]:
        fitness = _fitness(individuals, index)
        if fitness > best_fitness:
            best_i = index
            best_fitness = fitness

    return best_i


def dual_tournament(
    indices: Sequence[int],
    individuals: Sequence[EvoIndividual]
) -> Tuple[int, int]:
    """
    Select the two best candidates in a single linear scan.

    Args:
        indices: Candidate indices (at least 2)
        individuals: Current generation

    Returns:
        Tuple of (best, second_best) indices

    Raises:
        ValueError: If fewer than 2 candidates are given
        InvalidFitnessError: If a candidate has NaN fitness
    """
    if len(indices) < 2:
        raise ValueError(f"Dual tournament needs at least 2 candidates, got {len(indices)}")

    best_i = indices[0]
    second_i = indices[1]
    best_fitness = _fitness(individuals, best_i)
    second_fitness = _fitness(individuals, second_i)

    for index in indices[1:]:
        fitness = _fitness(individuals, index)
        if fitness > best_fitness:
            second_i, second_fitness = best_i, best_fitness
            best_i, best_fitness = index, fitness
        elif fitness > second_fitness:
            second_i, second_fitness = index, fitness

    return best_i, second_i


def roulette_selection(
    indices: Sequence[int],
    individuals: Sequence[EvoIndividual],
    rng: np.random.Generator
) -> int:
    """
    Fitness-proportionate selection.

    Fitness may be any real number, so every candidate is shifted by the minimum
    candidate fitness first. The worst candidate therefore has zero mass. When all
    candidates share the same fitness the shifted sum is zero and a candidate is
    drawn uniformly instead.

    Args:
        indices: Candidate indices (non-empty)
        individuals: Current generation
        rng: Random generator owned by the calling task

    Returns:
        Selected index

    Raises:
        ValueError: If indices is empty
        InvalidFitnessError: If a candidate has NaN fitness
    """
    if not indices:
        raise ValueError("Cannot perform roulette selection on empty candidate set")

    fitnesses = np.array([_fitness(individuals, index) for index in indices], dtype=float)
    weights = fitnesses - fitnesses.min()
    total = weights.sum()

    if not total > 0.0:
        return indices[int(rng.integers(len(indices)))]

    probabilities = weights / total
    draw = rng.random()
    cumulative = 0.0
    for index, probability in zip(indices, probabilities):
        cumulative += probability
        if cumulative > draw:
            return index

    # Rounding left the cumulative sum just below the draw
    return indices[int(np.flatnonzero(weights > 0.0)[-1])]


def dual_roulette(
    indices: Sequence[int],
    individuals: Sequence[EvoIndividual],
    rng: np.random.Generator
) -> Tuple[int, int]:
    """
    Select two parents by roulette, without drawing the same cell twice.

    Every occurrence of the first pick is removed before the second draw. On a 1x1
    grid all candidates are the same cell, in which case it is returned twice.

    Returns:
        Tuple of (first, second) indices
    """
    first = roulette_selection(indices, individuals, rng)

    remaining = [index for index in indices if index != first]
    if not remaining:
        logger.debug(f"Dual roulette: only cell {first} available, using it for both parents")
        return first, first

    second = roulette_selection(remaining, individuals, rng)
    return first, second


class SelectionStrategy(str, Enum):
    """Single-parent selection strategy used for pure-mutation steps."""

    TOURNAMENT = "tournament"
    ROULETTE = "roulette"

    @classmethod
    def from_string(cls, name: str) -> "SelectionStrategy":
        normalized = name.strip().lower()
        for strategy in cls:
            if strategy.value == normalized:
                return strategy
        raise ValueError(
            f"Unknown selection strategy: {name!r}. "
            f"Options: {[s.value for s in cls]}"
        )

    def select(
        self,
        indices: Sequence[int],
        individuals: Sequence[EvoIndividual],
        rng: np.random.Generator
    ) -> int:
        if self is SelectionStrategy.ROULETTE:
            return roulette_selection(indices, individuals, rng)
        return single_tournament(indices, individuals, rng)
