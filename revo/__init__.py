"""
revo: parallel cellular evolutionary algorithm engine

Individuals live on a toroidal grid and breed only with their L5 neighbours. Every
generation is computed row by row on a thread pool, double-buffered, and can be rendered
as a diversity image in which each pixel is one individual.

Main Components:
- evolutionary: Individual contract, topology, selection, population engine, diversity image
- problems: Example problems (basic, salesman, social_distance)
- utils: Configuration, logging, visualization, geometry

Usage:
    from revo.evolutionary import Population, PopulationConfig
    from revo.problems import BasicIndividual, BasicIndividualData
"""

__version__ = "0.1.0"

__all__ = [
    "evolutionary",
    "problems",
    "utils",
]
