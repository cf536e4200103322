"""
Evolutionary engine for revo.

This module implements the cellular evolutionary algorithm: the individual contract,
the toroidal L5 neighbourhood, selection mechanisms, the double-buffered population
and the diversity visualisation.
"""

from .individual import EvoIndividual, EvoIndividualData
from .topology import l5_neighbours, NEIGHBOURHOOD_SIZE
from .selection import (
    InvalidFitnessError,
    SelectionStrategy,
    single_tournament,
    dual_tournament,
    roulette_selection,
    dual_roulette,
)
from .population import Population, PopulationConfig
from .diversity import (
    rank_normalize,
    normalize_lab_rank_based,
    lab_to_rgb,
    prepare_lab_data,
    render_lab_grid,
    visualise_population,
)

__all__ = [
    # Individual contract
    'EvoIndividual',
    'EvoIndividualData',

    # Topology
    'l5_neighbours',
    'NEIGHBOURHOOD_SIZE',

    # Selection
    'InvalidFitnessError',
    'SelectionStrategy',
    'single_tournament',
    'dual_tournament',
    'roulette_selection',
    'dual_roulette',

    # Population
    'Population',
    'PopulationConfig',

    # Diversity
    'rank_normalize',
    'normalize_lab_rank_based',
    'lab_to_rgb',
    'prepare_lab_data',
    'render_lab_grid',
    'visualise_population',
]
