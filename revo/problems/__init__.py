"""
Example problems for the revo population engine.

Each problem is a pair of classes:
- an EvoIndividualData subclass holding the shared problem parameters
- an EvoIndividual subclass describing one candidate solution

Registered problems: basic, salesman, social_distance, packer (shelf layouts),
free_packer (free placement with an overlap penalty) and funtree (symbolic regression).
"""

from typing import Dict, Tuple, Type

from ..evolutionary.individual import EvoIndividual, EvoIndividualData
from .basic import BasicIndividual, BasicIndividualData
from .salesman import SalesmanIndividual, SalesmanIndividualData, SalesmanInitType
from .social_distance import DistanceIndividual, DistanceIndividualData
from .packer import PackerIndividual, PackerIndividualData
from .free_packer import FreePackerIndividual, FreePackerIndividualData
from .funtree import ExpressionTree, FuntreeIndividual, FuntreeIndividualData

PROBLEMS: Dict[str, Tuple[Type[EvoIndividual], Type[EvoIndividualData]]] = {
    "basic": (BasicIndividual, BasicIndividualData),
    "salesman": (SalesmanIndividual, SalesmanIndividualData),
    "social_distance": (DistanceIndividual, DistanceIndividualData),
    "packer": (PackerIndividual, PackerIndividualData),
    "free_packer": (FreePackerIndividual, FreePackerIndividualData),
    "funtree": (FuntreeIndividual, FuntreeIndividualData),
}


def get_problem(name: str) -> Tuple[Type[EvoIndividual], Type[EvoIndividualData]]:
    """
    Look up a problem by name.

    Args:
        name: Problem name (case-insensitive, ``-`` and ``_`` are interchangeable)

    Returns:
        Tuple of (individual class, data class)

    Raises:
        ValueError: If the problem is unknown
    """
    key = name.strip().lower().replace("-", "_")
    if key not in PROBLEMS:
        raise ValueError(f"Unknown problem: {name!r}. Options: {sorted(PROBLEMS)}")
    return PROBLEMS[key]


__all__ = [
    'PROBLEMS',
    'get_problem',
    'BasicIndividual',
    'BasicIndividualData',
    'SalesmanIndividual',
    'SalesmanIndividualData',
    'SalesmanInitType',
    'DistanceIndividual',
    'DistanceIndividualData',
    'PackerIndividual',
    'PackerIndividualData',
    'FreePackerIndividual',
    'FreePackerIndividualData',
    'ExpressionTree',
    'FuntreeIndividual',
    'FuntreeIndividualData',
]
