"""
Utilities module for revo.

This module provides configuration loading, logging, visualization and small geometry
helpers that support the population engine and the example problems.
"""

from .config import Config, ConfigError, load_config, resolve_config_path
from .logging import setup_logging, EvolutionLogger, GenerationLog, RecordLog, get_logger
from .geometry import Coord
from .visualization import (
    save_population_image,
    plot_fitness_vs_generation,
    plot_tour,
    plot_points,
    plot_rectangles,
    plot_function_fit,
)

__all__ = [
    # Configuration
    'Config',
    'ConfigError',
    'load_config',
    'resolve_config_path',

    # Logging
    'setup_logging',
    'EvolutionLogger',
    'GenerationLog',
    'RecordLog',
    'get_logger',

    # Geometry
    'Coord',

    # Visualization
    'save_population_image',
    'plot_fitness_vs_generation',
    'plot_tour',
    'plot_points',
    'plot_rectangles',
    'plot_function_fit',
]
