"""
Test suite for the individual contract defaults.
"""

import numpy as np
import pytest

from revo.evolutionary.individual import EvoIndividual, EvoIndividualData

from conftest import MockIndividual, MockIndividualData


class IntoOnlyIndividual(EvoIndividual):
    """Implements only the *_into operator variants."""

    def __init__(self, value: float = 0.0):
        self.value = value

    @classmethod
    def new_randomised(cls, data, rng):
        return cls()

    def mutate_into(self, target, data, rng, mut_prob, mut_amount):
        target.value = self.value + 10.0
        return target

    def crossover_into(self, other, target, data, rng):
        target.value = self.value - other.value
        return target

    def count_fitness(self, data):
        self.fitness = self.value

    def get_visuals(self, data):
        return (self.value, 0.0)


class BareIndividual(EvoIndividual):
    """Implements neither operator of either pair."""

    @classmethod
    def new_randomised(cls, data, rng):
        return cls()

    def count_fitness(self, data):
        self.fitness = 1.0

    def get_visuals(self, data):
        return (0.0, 0.0)


@pytest.fixture
def data():
    return MockIndividualData()


class TestMutateDefaults:
    """mutate and mutate_into are defined in terms of each other."""

    def test_mutate_into_from_mutate(self, data, rng):
        """Default mutate_into clones and mutates, leaving the parent untouched."""
        parent = MockIndividual(value=1.0)
        target = MockIndividual(value=-5.0)

        child = parent.mutate_into(target, data, rng, 1.0, 1.0)

        assert child is not parent
        assert child.value == 2.0
        assert parent.value == 1.0

    def test_mutate_from_mutate_into(self, data, rng):
        """Default mutate applies mutate_into to the individual itself."""
        individual = IntoOnlyIndividual(value=1.0)
        individual.mutate(data, rng, 1.0, 1.0)
        assert individual.value == 11.0

    def test_neither_implemented(self, data, rng):
        """Missing both variants raises instead of recursing."""
        individual = BareIndividual()
        with pytest.raises(NotImplementedError):
            individual.mutate(data, rng, 1.0, 1.0)
        with pytest.raises(NotImplementedError):
            individual.mutate_into(BareIndividual(), data, rng, 1.0, 1.0)


class TestCrossoverDefaults:
    """crossover and crossover_into are defined in terms of each other."""

    def test_crossover_into_from_crossover(self, data, rng):
        """Default crossover_into returns the result of crossover."""
        child = MockIndividual(value=2.0).crossover_into(MockIndividual(value=4.0), MockIndividual(), data, rng)
        assert child.value == 3.0

    def test_crossover_from_crossover_into(self, data, rng):
        """Default crossover builds a fresh child through crossover_into."""
        first = IntoOnlyIndividual(value=5.0)
        second = IntoOnlyIndividual(value=2.0)

        child = first.crossover(second, data, rng)

        assert child.value == 3.0
        assert child is not first
        assert first.value == 5.0

    def test_neither_implemented(self, data, rng):
        """Missing both variants raises instead of recursing."""
        with pytest.raises(NotImplementedError):
            BareIndividual().crossover(BareIndividual(), data, rng)
        with pytest.raises(NotImplementedError):
            BareIndividual().crossover_into(BareIndividual(), BareIndividual(), data, rng)


class TestDefaults:
    """Other default behaviour."""

    def test_fitness_defaults_to_zero(self):
        """Uncounted individuals report zero fitness."""
        assert BareIndividual().get_fitness() == 0.0

    def test_clone_is_deep(self):
        """Clones do not share mutable state."""
        original = MockIndividual(value=1.0, visuals=(1.0, 2.0))
        original.history = [1, 2]
        copy = original.clone()
        copy.history.append(3)
        assert original.history == [1, 2]

    def test_data_from_config_default(self):
        """Problem data without parameters builds from any config."""
        assert isinstance(MockIndividualData.from_config({}, np.random.default_rng(0)), MockIndividualData)

    def test_abstract_methods_required(self):
        """The base class cannot be instantiated."""
        with pytest.raises(TypeError):
            EvoIndividual()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
