"""
Shared test fixtures: a mock individual whose mutation increments its value and whose
crossover averages its parents.
"""

from typing import List, Tuple

import numpy as np
import pytest

from revo.evolutionary.individual import EvoIndividual, EvoIndividualData


class MockIndividualData(EvoIndividualData):
    """No shared parameters."""


class MockIndividual(EvoIndividual):
    """Fitness equals ``value`` once counted; mutation adds 1, crossover averages."""

    def __init__(self, value: float = 0.0, fitness: float = 0.0, visuals: Tuple[float, float] = (0.0, 0.0)):
        self.value = value
        self.fitness = fitness
        self.visuals = visuals

    @classmethod
    def new_randomised(cls, data, rng):
        return cls()

    def mutate(self, data, rng, mut_prob, mut_amount):
        self.value += 1.0

    def crossover(self, other, data, rng):
        return MockIndividual(value=(self.value + other.value) / 2.0)

    def count_fitness(self, data):
        self.fitness = self.value

    def get_visuals(self, data):
        return self.visuals


class NanIndividual(MockIndividual):
    """Individual whose fitness turns into NaN after one mutation."""

    def count_fitness(self, data):
        self.fitness = float("nan") if self.value > 0 else self.value


def make_individuals(fitnesses: List[float]) -> List[MockIndividual]:
    """Individuals with the given fitness values (value == fitness)."""
    return [MockIndividual(value=f, fitness=f, visuals=(f, f)) for f in fitnesses]


@pytest.fixture
def mock_data() -> MockIndividualData:
    return MockIndividualData()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)
