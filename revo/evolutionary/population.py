"""
Population engine for revo.

Individuals live on a toroidal ``width x height`` grid. Each generation, every cell is
replaced by a child bred from its L5 neighbourhood: either a crossover of the two best
neighbours, or a mutated copy of one neighbour chosen by the configured selection
strategy. Two grid buffers are allocated once and swapped after every generation.

Each grid row is an independent task executed on a thread pool. Tasks read only the
frozen current buffer and write only their own slots of the next buffer, so the write
path needs no locking.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar

import numpy as np

from .diversity import visualise_population
from .individual import EvoIndividual, EvoIndividualData
from .selection import InvalidFitnessError, SelectionStrategy, dual_tournament
from .topology import l5_neighbours
from ..utils.config import Config, ConfigError

logger = logging.getLogger(__name__)

I = TypeVar("I", bound=EvoIndividual)
D = TypeVar("D", bound=EvoIndividualData)

DEFAULT_POP_WIDTH = 128
DEFAULT_POP_HEIGHT = 128
DEFAULT_MUT_PROB = 0.1
DEFAULT_MUT_AMOUNT = 1.0
DEFAULT_CROSSOVER_PROB = 0.1
DEFAULT_SELECTION_STRATEGY = SelectionStrategy.TOURNAMENT
DEFAULT_VISUALISE = False


@dataclass
class PopulationConfig:
    """
    Engine parameters, fixed for the lifetime of a Population.

    Attributes:
        pop_width: Grid width
        pop_height: Grid height
        mut_prob: Mutation probability handed to individuals
        mut_amount: Mutation magnitude handed to individuals
        crossover_prob: Probability that a cell is bred by crossover instead of mutation
        selection_strategy: Single-parent strategy for mutation steps
        visualise: Whether runners should write population images
        workers: Worker threads (None = os.cpu_count(), 1 = run inline)
        seed: Base seed for reproducible runs (None = OS entropy)
    """
    pop_width: int = DEFAULT_POP_WIDTH
    pop_height: int = DEFAULT_POP_HEIGHT
    mut_prob: float = DEFAULT_MUT_PROB
    mut_amount: float = DEFAULT_MUT_AMOUNT
    crossover_prob: float = DEFAULT_CROSSOVER_PROB
    selection_strategy: SelectionStrategy = DEFAULT_SELECTION_STRATEGY
    visualise: bool = DEFAULT_VISUALISE
    workers: Optional[int] = None
    seed: Optional[int] = None

    @classmethod
    def from_config(cls, config: Config) -> "PopulationConfig":
        """Read engine parameters from a Config, falling back to defaults for missing keys."""
        pop_config = cls(
            pop_width=config.get_uint("pop_width", DEFAULT_POP_WIDTH),
            pop_height=config.get_uint("pop_height", DEFAULT_POP_HEIGHT),
            mut_prob=config.get_float("mut_prob", DEFAULT_MUT_PROB),
            mut_amount=config.get_float("mut_amount", DEFAULT_MUT_AMOUNT),
            crossover_prob=config.get_float("crossover_prob", DEFAULT_CROSSOVER_PROB),
            selection_strategy=config.get_enum(
                "selection_strategy", SelectionStrategy, DEFAULT_SELECTION_STRATEGY
            ),
            visualise=config.get_bool("visualise", DEFAULT_VISUALISE),
            workers=config.get_int("workers"),
            seed=config.get_uint("seed"),
        )
        pop_config.validate()
        return pop_config

    @property
    def size(self) -> int:
        return self.pop_width * self.pop_height

    def validate(self) -> None:
        """
        Check parameter ranges.

        Raises:
            ConfigError: Naming the first offending key
        """
        if self.pop_width < 1:
            raise ConfigError("pop_width", f"must be at least 1, got {self.pop_width}")
        if self.pop_height < 1:
            raise ConfigError("pop_height", f"must be at least 1, got {self.pop_height}")
        for key in ("mut_prob", "crossover_prob"):
            value = getattr(self, key)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(key, f"must be within [0, 1], got {value}")
        if self.mut_amount < 0.0:
            raise ConfigError("mut_amount", f"must be non-negative, got {self.mut_amount}")
        if self.workers is not None and self.workers < 1:
            raise ConfigError("workers", f"must be at least 1, got {self.workers}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pop_width': self.pop_width,
            'pop_height': self.pop_height,
            'mut_prob': self.mut_prob,
            'mut_amount': self.mut_amount,
            'crossover_prob': self.crossover_prob,
            'selection_strategy': self.selection_strategy.value,
            'visualise': self.visualise,
            'workers': self.workers,
            'seed': self.seed,
        }


class Population(Generic[I, D]):
    """
    Cellular evolutionary population on a toroidal grid.

    Attributes:
        mut_prob: Mutation probability
        mut_amount: Mutation magnitude
        crossover_prob: Crossover probability per cell
        selection_strategy: Single-parent strategy for mutation steps

    Example:
        >>> with Population(BasicIndividual, BasicIndividualData(), PopulationConfig(8, 8)) as pop:
        ...     for _ in range(10):
        ...         pop.next_gen()
        ...     best = pop.get_best()
    """

    def __init__(
        self,
        individual_cls: Type[I],
        individual_data: D,
        pop_config: Optional[PopulationConfig] = None
    ):
        """
        Create a population of randomised, fitness-evaluated individuals.

        Args:
            individual_cls: EvoIndividual subclass to breed
            individual_data: Shared read-only problem data
            pop_config: Engine parameters (defaults if omitted)

        Raises:
            ConfigError: If the configuration is out of range (including empty grids)
        """
        self._config = pop_config or PopulationConfig()
        self._config.validate()

        self._individual_cls = individual_cls
        self._individual_data = individual_data
        self._width = self._config.pop_width
        self._height = self._config.pop_height
        self._size = self._width * self._height

        self.mut_prob = self._config.mut_prob
        self.mut_amount = self._config.mut_amount
        self.crossover_prob = self._config.crossover_prob
        self.selection_strategy = self._config.selection_strategy

        self._neighbours_fn: Callable[[int, int, int], Sequence[int]] = l5_neighbours
        self._seed = self._config.seed
        self._generation = 0

        workers = self._config.workers or os.cpu_count() or 1
        self._executor: Optional[ThreadPoolExecutor] = None
        if workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="revo")

        self._current: List[I] = [None] * self._size
        try:
            self._run_rows(self._seed_row, stage=0)
        except BaseException:
            self.close()
            raise
        self._next: List[I] = [individual.clone() for individual in self._current]

        logger.info(
            f"Initialized population {self._width}x{self._height} ({self._size} individuals) "
            f"of {individual_cls.__name__}, selection={self.selection_strategy.value}, "
            f"crossover_prob={self.crossover_prob}, mut_prob={self.mut_prob}, workers={workers}"
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        individual_cls: Type[I],
        data_cls: Type[D],
        individual_data: Optional[D] = None
    ) -> "Population[I, D]":
        """
        Build a population and its problem data from a Config.

        Args:
            config: Loaded configuration
            individual_cls: EvoIndividual subclass
            data_cls: EvoIndividualData subclass used when ``individual_data`` is omitted
            individual_data: Pre-built problem data

        Returns:
            Population instance
        """
        pop_config = PopulationConfig.from_config(config)
        if individual_data is None:
            data_rng = np.random.default_rng(pop_config.seed)
            individual_data = data_cls.from_config(config, data_rng)
        return cls(individual_cls, individual_data, pop_config)

    # ------------------------------------------------------------------ accessors

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> int:
        return self._size

    @property
    def generation(self) -> int:
        """Number of completed generations."""
        return self._generation

    @property
    def individual_data(self) -> D:
        return self._individual_data

    @property
    def config(self) -> PopulationConfig:
        return self._config

    @property
    def individuals(self) -> Tuple[I, ...]:
        """Snapshot of the current generation in row-major order."""
        return tuple(self._current)

    def get_generation(self) -> int:
        return self._generation

    def get_individual_data(self) -> D:
        return self._individual_data

    def get_at(self, x: int, y: int) -> I:
        """Return the individual at grid column ``x``, row ``y``."""
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Cell ({x}, {y}) outside {self._width}x{self._height} grid")
        return self._current[y * self._width + x]

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[I]:
        return iter(self._current)

    # ------------------------------------------------------------------ evolution

    def next_gen(self) -> None:
        """
        Advance the population by one generation.

        For every cell: draw ``r``; if ``r < crossover_prob`` breed the two best L5
        neighbours, otherwise mutate a neighbour picked by the selection strategy. The
        child's fitness is recomputed, then the buffers are swapped and the generation
        counter incremented. If any task fails, the exception propagates and the
        population is left at the previous generation.
        """
        started = time.perf_counter()

        self._run_rows(self._breed_row, stage=self._generation + 1)

        self._current, self._next = self._next, self._current
        self._generation += 1

        logger.debug(
            f"Generation {self._generation} complete in {time.perf_counter() - started:.3f}s"
        )

    advance = next_gen

    def seed(self, individuals: Sequence[I]) -> None:
        """
        Replace the current generation with copies of the given individuals.

        The engine clones every individual, so the caller keeps ownership of the
        originals and a repeated object still fills independent slots. Fitness is
        recomputed on the copies. The generation counter is unchanged.

        Args:
            individuals: Exactly ``size`` individuals in row-major order

        Raises:
            ValueError: If the number of individuals does not match the grid
        """
        if len(individuals) != self._size:
            raise ValueError(
                f"Expected {self._size} individuals for a {self._width}x{self._height} grid, "
                f"got {len(individuals)}"
            )
        seeded = [individual.clone() for individual in individuals]
        for individual in seeded:
            individual.count_fitness(self._individual_data)
        self._current = seeded
        logger.debug(f"Seeded population with {len(individuals)} individuals")

    def get_best(self) -> I:
        """
        Return the individual with the highest fitness (first on ties).

        The returned object belongs to the population and is overwritten by later
        generations; clone it to keep it.

        Raises:
            InvalidFitnessError: If any fitness is NaN
        """
        fitness = self._fitness_array()
        return self._current[int(np.argmax(fitness))]

    def fitness_statistics(self) -> Dict[str, float]:
        """Best / average / worst / std of the current generation's fitness."""
        fitness = self._fitness_array()
        return {
            'best_fitness': float(fitness.max()),
            'average_fitness': float(fitness.mean()),
            'worst_fitness': float(fitness.min()),
            'std_fitness': float(fitness.std()),
        }

    def visualise(self) -> np.ndarray:
        """
        Render the diversity image of the current generation.

        Returns:
            ``uint8`` RGB array of shape ``(height, width, 3)``
        """
        return visualise_population(self._current, self._individual_data, self._width, self._height)

    # ------------------------------------------------------------------ lifecycle

    def close(self) -> None:
        """Shut down the worker pool. The population can no longer advance in parallel."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "Population[I, D]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ internals

    def _fitness_array(self) -> np.ndarray:
        fitness = np.fromiter(
            (individual.get_fitness() for individual in self._current),
            dtype=float,
            count=self._size,
        )
        nan_cells = np.flatnonzero(np.isnan(fitness))
        if len(nan_cells):
            raise InvalidFitnessError(f"Individual at index {int(nan_cells[0])} has NaN fitness")
        return fitness

    def _task_rng(self, row: int, stage: int) -> np.random.Generator:
        if self._seed is None:
            return np.random.default_rng()
        return np.random.default_rng([self._seed, stage, row])

    def _run_rows(self, row_fn: Callable[[int, np.random.Generator], None], stage: int) -> None:
        """Run ``row_fn`` for every grid row and wait for all of them."""
        if self._executor is None:
            for row in range(self._height):
                row_fn(row, self._task_rng(row, stage))
            return

        futures = [
            self._executor.submit(row_fn, row, self._task_rng(row, stage))
            for row in range(self._height)
        ]
        for future in futures:
            future.result()

    def _seed_row(self, row: int, rng: np.random.Generator) -> None:
        data = self._individual_data
        for i in range(row * self._width, (row + 1) * self._width):
            individual = self._individual_cls.new_randomised(data, rng)
            individual.count_fitness(data)
            self._current[i] = individual

    def _breed_row(self, row: int, rng: np.random.Generator) -> None:
        current = self._current
        next_inds = self._next
        data = self._individual_data

        for i in range(row * self._width, (row + 1) * self._width):
            candidates = self._neighbours_fn(i, self._width, self._height)

            if rng.random() < self.crossover_prob:
                first, second = dual_tournament(candidates, current)
                child = current[first].crossover_into(current[second], next_inds[i], data, rng)
            else:
                parent = self.selection_strategy.select(candidates, current, rng)
                child = current[parent].mutate_into(
                    next_inds[i], data, rng, self.mut_prob, self.mut_amount
                )

            child.count_fitness(data)
            next_inds[i] = child
