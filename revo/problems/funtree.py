"""
Symbolic regression with expression trees.

An individual is an expression in one variable ``x`` built from constants, ``x`` and
the binary operations ``+``, ``*``, ``/`` and ``^``; every node may also be negated.
Fitness is the negated sum of squared errors over the target ``(x, y)`` points.

Trees are stored as a flat list of nodes in prefix order. A node is addressed by its
integer position, and the subtree rooted at a node always occupies one contiguous
slice of the list. Crossover and mutation therefore rebuild the node list from slices
and never patch a shared node in place.
"""

import logging
from dataclasses import dataclass, replace
from enum import IntEnum
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..evolutionary.individual import EvoIndividual, EvoIndividualData
from ..utils.config import ConfigError
from ..utils.visualization import plot_function_fit

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5
DEFAULT_MAX_NODES = 255
MUTATION_SUBTREE_DEPTH = 3
PLOT_STEPS = 10


class OperationType(IntEnum):
    ADDITION = 0
    MULTIPLICATION = 1
    DIVISION = 2
    POWER = 3

    @property
    def symbol(self) -> str:
        return "+*/^"[self.value]


class LeafType(IntEnum):
    CONSTANT = 0
    VARIABLE = 1


@dataclass(frozen=True)
class Node:
    """
    One expression node. Operations have ``operation`` set and two children
    following them in prefix order; leaves have ``operation`` unset.
    """
    minus: bool = False
    operation: Optional[OperationType] = None
    leaf_type: LeafType = LeafType.CONSTANT
    value: float = 0.0

    @property
    def is_leaf(self) -> bool:
        return self.operation is None


def subtree_end(nodes: Sequence[Node], start: int) -> int:
    """Position just past the subtree rooted at ``start``."""
    pending = 1
    end = start
    while pending:
        if end >= len(nodes):
            raise ValueError("Node list ends inside an expression")
        pending += -1 if nodes[end].is_leaf else 1
        end += 1
    return end


def _random_nodes(rng: np.random.Generator, max_depth: int) -> List[Node]:
    minus = bool(rng.random() < 0.5)
    if max_depth == 0 or rng.random() < 0.5:
        value = float(rng.normal(0.0, 1.0))
        leaf_type = LeafType.CONSTANT if rng.random() < 0.5 else LeafType.VARIABLE
        return [Node(minus=minus, leaf_type=leaf_type, value=value)]

    left = _random_nodes(rng, max_depth - 1)
    right = _random_nodes(rng, max_depth - 1)
    operation = OperationType(int(rng.integers(len(OperationType))))
    return [Node(minus=minus, operation=operation)] + left + right


def _mutated_nodes(
    nodes: List[Node],
    rng: np.random.Generator,
    mut_prob: float,
    mut_amount: float
) -> List[Node]:
    """Mutated copy of a single subtree given as its own prefix list."""
    root = nodes[0]
    minus = root.minus
    if rng.random() < mut_prob:
        minus = not minus

    if rng.random() < mut_prob:
        nodes = _random_nodes(rng, MUTATION_SUBTREE_DEPTH)
        root = nodes[0]
    root = replace(root, minus=minus)

    if root.is_leaf:
        if rng.random() < mut_prob:
            root = replace(root, leaf_type=LeafType.CONSTANT if rng.random() < 0.5 else LeafType.VARIABLE)
        if rng.random() < mut_prob:
            root = replace(root, value=root.value + float(rng.normal(0.0, mut_amount)))
        return [root]

    if rng.random() < mut_prob:
        root = replace(root, operation=OperationType(int(rng.integers(len(OperationType)))))

    split = subtree_end(nodes, 1)
    left, right = nodes[1:split], nodes[split:]
    if rng.random() < mut_prob:
        left, right = right, left

    return (
        [root]
        + _mutated_nodes(left, rng, mut_prob, mut_amount)
        + _mutated_nodes(right, rng, mut_prob, mut_amount)
    )


class ExpressionTree:
    """Immutable expression stored as a prefix-ordered node list."""

    def __init__(self, nodes: Sequence[Node]):
        self.nodes: Tuple[Node, ...] = tuple(nodes)
        if not self.nodes or subtree_end(self.nodes, 0) != len(self.nodes):
            raise ValueError("Node list is not a single complete expression")

    @classmethod
    def leaf(cls, value: float, leaf_type: LeafType = LeafType.CONSTANT, minus: bool = False) -> "ExpressionTree":
        return cls([Node(minus=minus, leaf_type=leaf_type, value=value)])

    @classmethod
    def operation(
        cls,
        left: "ExpressionTree",
        right: "ExpressionTree",
        operation: OperationType,
        minus: bool = False
    ) -> "ExpressionTree":
        return cls((Node(minus=minus, operation=operation),) + left.nodes + right.nodes)

    @classmethod
    def random(cls, rng: np.random.Generator, max_depth: int) -> "ExpressionTree":
        """Grow a random tree; each level stops at a leaf with probability 1/2."""
        return cls(_random_nodes(rng, max_depth))

    def __len__(self) -> int:
        return len(self.nodes)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ExpressionTree) and self.nodes == other.nodes

    def __hash__(self) -> int:
        return hash(self.nodes)

    def __str__(self) -> str:
        return self.as_string()

    def __repr__(self) -> str:
        return f"ExpressionTree({self.as_string()!r})"

    def subtree(self, node: int) -> "ExpressionTree":
        return ExpressionTree(self.nodes[node:subtree_end(self.nodes, node)])

    def replace_subtree(self, node: int, donor: "ExpressionTree", donor_node: int = 0) -> "ExpressionTree":
        """New tree with the subtree at ``node`` replaced by ``donor``'s subtree at ``donor_node``."""
        end = subtree_end(self.nodes, node)
        graft = donor.nodes[donor_node:subtree_end(donor.nodes, donor_node)]
        return ExpressionTree(self.nodes[:node] + graft + self.nodes[end:])

    def mutated(self, rng: np.random.Generator, mut_prob: float, mut_amount: float) -> "ExpressionTree":
        """
        Mutated copy. Per node and each with ``mut_prob``: flip the sign, regrow the
        node as a random depth-3 subtree, then for leaves change the leaf type and add
        ``N(0, mut_amount)`` to the value, for operations change the operation and swap
        the children before mutating both of them.
        """
        return ExpressionTree(_mutated_nodes(list(self.nodes), rng, mut_prob, mut_amount))

    def evaluate(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """
        Evaluate at ``x`` (scalar or array). Invalid operations such as ``0 / 0`` or a
        negative base with a fractional exponent yield NaN or infinities.
        """
        xs = np.asarray(x, dtype=float)
        stack: List[np.ndarray] = []
        with np.errstate(all="ignore"):
            for node in reversed(self.nodes):
                if node.is_leaf:
                    value = xs if node.leaf_type is LeafType.VARIABLE else np.full_like(xs, node.value)
                else:
                    left, right = stack.pop(), stack.pop()
                    if node.operation is OperationType.ADDITION:
                        value = left + right
                    elif node.operation is OperationType.MULTIPLICATION:
                        value = left * right
                    elif node.operation is OperationType.DIVISION:
                        value = left / right
                    else:
                        value = np.power(left, right)
                stack.append(-value if node.minus else value)

        result = stack.pop()
        return float(result) if result.ndim == 0 else result

    def _format(self, node: int) -> Tuple[str, int]:
        current = self.nodes[node]
        if current.is_leaf:
            if current.leaf_type is LeafType.VARIABLE:
                text = "-x" if current.minus else "x"
            else:
                text = f"{-current.value if current.minus else current.value:.2f}"
            return text, node + 1

        left, end = self._format(node + 1)
        right, end = self._format(end)
        text = f"({left} {current.operation.symbol} {right})"
        return ("-" + text if current.minus else text), end

    def as_string(self) -> str:
        return self._format(0)[0]

    def _visuals(self, node: int) -> Tuple[float, float, int]:
        current = self.nodes[node]
        if current.is_leaf:
            a, b, end = current.value, float(current.leaf_type), node + 1
        else:
            left_a, left_b, end = self._visuals(node + 1)
            right_a, right_b, end = self._visuals(end)
            a = left_a + right_a
            b = left_b + right_b + float(current.operation)
        if current.minus:
            a, b = -a, -b
        return a, b, end

    def get_visuals(self) -> Tuple[float, float]:
        a, b, _ = self._visuals(0)
        return (a, b)


def parse_values(raw: Any) -> np.ndarray:
    """
    Parse target points given either as ``"x, y; x, y; ..."`` or as a list of pairs.

    Returns:
        ``float`` array of shape ``(n, 2)``

    Raises:
        ConfigError: If the value cannot be parsed
    """
    if isinstance(raw, str):
        pairs = []
        for chunk in raw.split(";"):
            parts = [part.strip() for part in chunk.split(",")]
            if len(parts) != 2:
                raise ConfigError("values", f"expected 'x, y', got {chunk.strip()!r}")
            try:
                pairs.append((float(parts[0]), float(parts[1])))
            except ValueError as e:
                raise ConfigError("values", f"invalid number in {chunk.strip()!r}") from e
        raw = pairs

    try:
        values = np.asarray(raw, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigError("values", f"expected a list of [x, y] pairs, got {raw!r}") from e
    if values.ndim != 2 or values.shape[1] != 2 or len(values) == 0:
        raise ConfigError("values", f"expected a non-empty list of [x, y] pairs, got {raw!r}")
    return values


@dataclass(eq=False)
class FuntreeIndividualData(EvoIndividualData):
    """
    Target points and tree size limits.

    Attributes:
        values: Target ``(x, y)`` points sorted by ``x``, shape ``(n, 2)``
        max_depth: Depth limit for randomly grown initial trees
        max_nodes: Size limit; larger mutants and crossover children keep the parent tree
    """
    values: np.ndarray
    max_depth: int = DEFAULT_MAX_DEPTH
    max_nodes: int = DEFAULT_MAX_NODES

    def __post_init__(self):
        self.values = parse_values(self.values)
        self.values = self.values[np.argsort(self.values[:, 0], kind="stable")]

    @classmethod
    def from_config(cls, config: Any, rng: Optional[np.random.Generator] = None) -> "FuntreeIndividualData":
        raw = config.get("values")
        if raw is None:
            raise ConfigError("values", "target points are required")
        data = cls(
            raw,
            max_depth=config.get_uint("max_depth", DEFAULT_MAX_DEPTH),
            max_nodes=config.get_uint("max_nodes", DEFAULT_MAX_NODES),
        )
        logger.info(f"Fitting {len(data.values)} points, max depth {data.max_depth}")
        return data

    @property
    def xs(self) -> np.ndarray:
        return self.values[:, 0]

    @property
    def ys(self) -> np.ndarray:
        return self.values[:, 1]


class FuntreeIndividual(EvoIndividual):
    """One candidate expression ``y = f(x)``."""

    def __init__(self, genom: ExpressionTree, fitness: float = 0.0):
        self.genom = genom
        self.fitness = fitness

    def __repr__(self) -> str:
        return f"FuntreeIndividual(y = {self.genom}, fitness={self.fitness:.4g})"

    @classmethod
    def new_randomised(cls, data: FuntreeIndividualData, rng: np.random.Generator) -> "FuntreeIndividual":
        return cls(ExpressionTree.random(rng, data.max_depth))

    def clone(self) -> "FuntreeIndividual":
        # Trees are immutable and can be shared
        return FuntreeIndividual(self.genom, self.fitness)

    def mutate(
        self,
        data: FuntreeIndividualData,
        rng: np.random.Generator,
        mut_prob: float,
        mut_amount: float,
    ) -> None:
        mutated = self.genom.mutated(rng, mut_prob, mut_amount)
        if len(mutated) <= data.max_nodes:
            self.genom = mutated

    def crossover(
        self,
        other: "FuntreeIndividual",
        data: FuntreeIndividualData,
        rng: np.random.Generator,
    ) -> "FuntreeIndividual":
        """
        Copy a random subtree of one parent over a random node of the other. Which
        parent donates is chosen with equal probability.
        """
        if rng.random() < 0.5:
            donor, receiver = other.genom, self.genom
        else:
            donor, receiver = self.genom, other.genom

        donor_node = int(rng.integers(len(donor)))
        receiver_node = int(rng.integers(len(receiver)))
        child = receiver.replace_subtree(receiver_node, donor, donor_node)

        if len(child) > data.max_nodes:
            child = receiver
        return FuntreeIndividual(child)

    def predict(self, xs: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        return self.genom.evaluate(xs)

    def count_fitness(self, data: FuntreeIndividualData) -> None:
        """Negated sum of squared errors; minus infinity when any prediction is NaN."""
        predicted = self.genom.evaluate(data.xs)
        if np.isnan(predicted).any():
            self.fitness = float("-inf")
            return

        with np.errstate(over="ignore", invalid="ignore"):
            error = float(np.sum((predicted - data.ys) ** 2))
        self.fitness = -error if np.isfinite(error) else float("-inf")

    def get_visuals(self, data: FuntreeIndividualData) -> Tuple[float, float]:
        return self.genom.get_visuals()

    def report(self, data: FuntreeIndividualData) -> str:
        """Multi-line summary of the expression and its error at every target point."""
        predicted = np.atleast_1d(self.genom.evaluate(data.xs))
        lines = [f"y = {self.genom}"]
        for (x, y), y_pred in zip(data.values, predicted):
            lines.append(f" x: {x}, y: {y}, y_pred: {y_pred}, error: {abs(y - y_pred)}")
        lines.append(f"Fitness: {self.fitness}")
        return "\n".join(lines)

    def draw(self, data: FuntreeIndividualData, output_path: Union[str, Path]) -> None:
        xs = data.xs
        if len(xs) > 1:
            steps = [np.linspace(a, b, PLOT_STEPS + 1) for a, b in zip(xs[:-1], xs[1:])]
            pred_x = np.concatenate(steps)
        else:
            pred_x = xs.copy()
        pred_y = np.atleast_1d(self.genom.evaluate(pred_x))
        plot_function_fit(data.values, pred_x, pred_y, output_path, title=f"y = {self.genom}")
