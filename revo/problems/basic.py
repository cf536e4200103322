"""
Minimal one-dimensional problem: maximise a single float.

Useful as a smoke test of the engine; the population drifts upwards at a rate set by
``mut_prob`` and ``mut_amount``.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np

from ..evolutionary.individual import EvoIndividual, EvoIndividualData


@dataclass
class BasicIndividualData(EvoIndividualData):
    """Starting offset for every individual."""
    value: float = 0.0

    @classmethod
    def from_config(cls, config: Any, rng: Optional[np.random.Generator] = None) -> "BasicIndividualData":
        return cls(value=config.get_float("value", 0.0))


class BasicIndividual(EvoIndividual):
    """Individual holding one float; fitness equals the value."""

    def __init__(self, value: float = 0.0, fitness: float = 0.0):
        self.value = value
        self.fitness = fitness

    def __repr__(self) -> str:
        return f"BasicIndividual(value={self.value:.4f}, fitness={self.fitness:.4f})"

    @classmethod
    def new_randomised(cls, data: BasicIndividualData, rng: np.random.Generator) -> "BasicIndividual":
        return cls(value=data.value + rng.uniform(0.0, 10.0))

    def clone(self) -> "BasicIndividual":
        return BasicIndividual(self.value, self.fitness)

    def mutate(
        self,
        data: BasicIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> None:
        if rng.random() < mut_prob:
            self.value += rng.uniform(-mut_amount, mut_amount)

    def mutate_into(
        self,
        target: "BasicIndividual",
        data: BasicIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> "BasicIndividual":
        target.value = self.value
        target.fitness = self.fitness
        target.mutate(data, rng, mut_prob, mut_amount)
        return target

    def crossover_into(
        self,
        other: "BasicIndividual",
        target: "BasicIndividual",
        data: BasicIndividualData,
        rng: np.random.Generator,
    ) -> "BasicIndividual":
        ratio = rng.random()
        target.value = self.value * ratio + other.value * (1.0 - ratio)
        return target

    def count_fitness(self, data: BasicIndividualData) -> None:
        self.fitness = self.value

    def get_visuals(self, data: BasicIndividualData) -> Tuple[float, float]:
        return (self.value, self.value)
