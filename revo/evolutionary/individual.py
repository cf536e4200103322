"""
Individual contract for the revo population engine.

A problem plugs into the engine by subclassing two base classes:

- EvoIndividualData: shared, read-only problem parameters (city coordinates, box size, ...)
- EvoIndividual: one candidate solution plus its cached fitness

The engine only ever talks to individuals through the methods defined here, so it is
written once and stays independent of what a solution represents.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple, TypeVar

import numpy as np

I = TypeVar("I", bound="EvoIndividual")


class EvoIndividualData(ABC):
    """
    Base class for problem data shared by every individual of a population.

    Instances are read concurrently by all worker threads during a generation and must
    not be mutated by individuals.
    """

    @classmethod
    def from_config(cls, config: Any, rng: Optional[np.random.Generator] = None) -> "EvoIndividualData":
        """
        Build problem data from a Config.

        Args:
            config: revo.utils.config.Config instance
            rng: Generator used for any random problem setup (e.g. city placement)

        Returns:
            Problem data instance
        """
        return cls()


class EvoIndividual(ABC):
    """
    Abstract base class for candidate solutions.

    Subclasses must implement ``new_randomised``, ``count_fitness`` and ``get_visuals``,
    and at least one of each operator pair:

    - ``mutate`` / ``mutate_into``
    - ``crossover`` / ``crossover_into``

    Each member of a pair has a default written in terms of the other. The ``*_into``
    variants receive a ``target`` individual from the engine's scratch buffer that may
    be overwritten in place and returned, avoiding a fresh allocation per cell.
    ``*_into`` must never return ``self``.

    Attributes:
        fitness (float): Cached fitness, written by ``count_fitness``. Higher is better.
    """

    fitness: float = 0.0

    @classmethod
    @abstractmethod
    def new_randomised(cls, data: EvoIndividualData, rng: np.random.Generator) -> "EvoIndividual":
        """Create a random individual. Fitness does not need to be computed yet."""

    @abstractmethod
    def count_fitness(self, data: EvoIndividualData) -> None:
        """Recompute and store the fitness of this individual."""

    @abstractmethod
    def get_visuals(self, data: EvoIndividualData) -> Tuple[float, float]:
        """Return the two scalars mapped to the a/b colour channels of the population image."""

    def get_fitness(self) -> float:
        return self.fitness

    def clone(self: I) -> I:
        return copy.deepcopy(self)

    def mutate(
        self,
        data: EvoIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> None:
        """Mutate this individual in place."""
        if type(self).mutate_into is EvoIndividual.mutate_into:
            raise NotImplementedError(
                f"{type(self).__name__} must implement mutate() or mutate_into()"
            )
        result = self.clone().mutate_into(self, data, rng, mut_prob, mut_amount)
        if result is not self:
            self.__dict__.update(result.__dict__)

    def mutate_into(
        self: I,
        target: I,
        data: EvoIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> I:
        """
        Produce a mutated copy of this individual.

        Args:
            target: Scratch individual that may be overwritten and returned
            data: Shared problem data
            rng: Random generator owned by the calling task
            mut_prob: Mutation probability
            mut_amount: Mutation magnitude

        Returns:
            The mutated copy (``target`` or a new object, never ``self``)
        """
        if type(self).mutate is EvoIndividual.mutate:
            raise NotImplementedError(
                f"{type(self).__name__} must implement mutate() or mutate_into()"
            )
        child = self.clone()
        child.mutate(data, rng, mut_prob, mut_amount)
        return child

    def crossover(self: I, other: I, data: EvoIndividualData, rng: np.random.Generator) -> I:
        """Return a new individual combining ``self`` and ``other``."""
        if type(self).crossover_into is EvoIndividual.crossover_into:
            raise NotImplementedError(
                f"{type(self).__name__} must implement crossover() or crossover_into()"
            )
        return self.crossover_into(other, self.clone(), data, rng)

    def crossover_into(
        self: I,
        other: I,
        target: I,
        data: EvoIndividualData,
        rng: np.random.Generator,
    ) -> I:
        """
        Combine ``self`` and ``other``, writing the child into ``target`` where possible.

        Returns:
            The child (``target`` or a new object, never ``self`` or ``other``)
        """
        if type(self).crossover is EvoIndividual.crossover:
            raise NotImplementedError(
                f"{type(self).__name__} must implement crossover() or crossover_into()"
            )
        return self.crossover(other, data, rng)
