"""Execution planning: turn declared input/output nodes into a fixed evaluation order."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from dagnet.core.topology.directed_graph import DirectedGraph
from dagnet.core.topology.node import Node
from dagnet.utils.errors.exceptions import (
    GraphConfigurationError,
    GraphRootMismatchError,
)
from dagnet.utils.logging import get_logger

logger = get_logger("planner")

T = TypeVar("T")

GradSlot = tuple[int, int | None]
"""(consumer position, slot in the consumer's predecessor list or None)."""


@dataclass(frozen=True)
class ExecutionPlan:
    """
    Fixed evaluation order of a Graph plus its edges as plan positions.

    Description:
        ``nodes[:num_inputs]`` are the declared inputs and
        ``nodes[-num_outputs:]`` the declared outputs, both in declaration
        order. For every edge ``a -> b`` of the plan, ``a`` comes before ``b``.

        Edges are stored as indices into `nodes`:

        - ``prev_positions[i]``: positions of node *i*'s predecessors, in the
          order of ``nodes[i].prev_nodes``. Forward inputs are assembled in
          this order.
        - ``grad_slots[i]``: one ``(j, k)`` per edge leaving node *i*, where
          *j* is the consumer's position and *k* the index of this edge in
          ``prev_positions[j]`` (``None`` when the consumer has a single
          predecessor and hands back a plain tensor).

        Both are derived from the same predecessor lists, so the Table a
        module receives in the forward pass and the gradient Table it returns
        are always read with the same slot numbering.

    """

    nodes: tuple[Node, ...]
    num_inputs: int
    num_outputs: int
    prev_positions: tuple[tuple[int, ...], ...]
    grad_slots: tuple[tuple[GradSlot, ...], ...]

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def input_nodes(self) -> tuple[Node, ...]:
        return self.nodes[: self.num_inputs]

    @property
    def output_nodes(self) -> tuple[Node, ...]:
        return self.nodes[len(self.nodes) - self.num_outputs :]

    @property
    def output_offset(self) -> int:
        """Position of the first output node."""
        return len(self.nodes) - self.num_outputs

    def position(self, node: Node) -> int:
        """Return the plan position of `node`."""
        for i, n in enumerate(self.nodes):
            if n is node:
                return i
        msg = f"Node '{node.label}' is not part of this execution plan."
        raise KeyError(msg)


def shift(data: list[T], from_idx: int, to_idx: int) -> list[T]:
    """
    Move ``data[from_idx]`` to ``to_idx`` by adjacent swaps, in place.

    The relative order of every other element is preserved.

    Args:
        data (list[T]): List to permute.
        from_idx (int): Current index of the element to move.
        to_idx (int): Index the element should end up at.

    Returns:
        list[T]: `data`, for convenience.

    Raises:
        IndexError: If either index is outside ``[0, len(data))``.

    """
    if not 0 <= from_idx < len(data):
        msg = f"invalid from {from_idx} array length is {len(data)}"
        raise IndexError(msg)
    if not 0 <= to_idx < len(data):
        msg = f"invalid to {to_idx} array length is {len(data)}"
        raise IndexError(msg)

    step = 1 if from_idx < to_idx else -1
    for i in range(from_idx, to_idx, step):
        data[i], data[i + step] = data[i + step], data[i]
    return data


def _index_of(nodes: Sequence[Node], node: Node) -> int:
    return next(i for i, n in enumerate(nodes) if n is node)


def _validate_declared(nodes: Sequence[Node], kind: str) -> None:
    if len(nodes) == 0:
        msg = f"A Graph needs at least one {kind} node."
        raise GraphConfigurationError(msg)
    for n in nodes:
        if not isinstance(n, Node):
            msg = f"Graph {kind}s must be of type Node. Received: {type(n)}."
            raise TypeError(msg)
    if len({id(n) for n in nodes}) != len(nodes):
        msg = f"Graph {kind} node declared more than once."
        raise GraphConfigurationError(msg)


def _sort_from_outputs(outputs: Sequence[Node]) -> list[Node]:
    """Topologically sort every ancestor of `outputs`, outputs included."""
    # A single sink turns "reaches some output" into "reaches the sink"
    sink: Node = Node(None)
    for o in outputs:
        o._link(sink)
    try:
        back_order = DirectedGraph(sink, reverse=True).topology_sort()
    finally:
        for o in outputs:
            o._unlink(sink)

    executions = [n for n in reversed(back_order) if n is not sink]
    for n in executions:
        if n.element is None:
            msg = f"Node '{n.label}' has no element and cannot be executed."
            raise GraphConfigurationError(msg)
    return executions


def _check_roots(executions: Sequence[Node], inputs: Sequence[Node]) -> None:
    roots = [n for n in executions if len(n.prev_nodes) == 0]
    if len(roots) != len(inputs):
        raise GraphRootMismatchError(expected=len(inputs), received=len(roots))
    for n in inputs:
        if not any(r is n for r in roots):
            raise GraphRootMismatchError(
                expected=len(inputs),
                received=len(roots),
                message=f"Inputs and graph roots do not match: '{n.label}' is not a root.",
            )


def _check_outputs_are_sinks(executions: Sequence[Node], outputs: Sequence[Node]) -> None:
    in_plan = {id(n) for n in executions}
    for o in outputs:
        consumers = [n.label for n in o.next_nodes if id(n) in in_plan]
        if consumers:
            msg = (
                f"Output node '{o.label}' feeds {consumers} inside the graph. "
                "Output nodes must not be consumed by other nodes of the same graph."
            )
            raise GraphConfigurationError(msg)


def _index_edges(
    executions: Sequence[Node],
) -> tuple[tuple[tuple[int, ...], ...], tuple[tuple[GradSlot, ...], ...]]:
    positions = {id(n): i for i, n in enumerate(executions)}
    prev_positions = tuple(
        tuple(positions[id(p)] for p in n.prev_nodes) for n in executions
    )

    grad_slots: list[list[GradSlot]] = [[] for _ in executions]
    for j, prevs in enumerate(prev_positions):
        single = len(prevs) == 1
        for k, p in enumerate(prevs):
            grad_slots[p].append((j, None if single else k))

    return prev_positions, tuple(tuple(s) for s in grad_slots)


def build_execution_plan(
    inputs: Sequence[Node],
    outputs: Sequence[Node],
) -> ExecutionPlan:
    """
    Build the execution plan of a graph.

    Description:
        1. Every ancestor of the outputs is sorted topologically. Nodes that
           cannot reach any output (dead branches) are left out.
        2. The nodes without predecessors must be exactly `inputs`.
        3. Output nodes must not feed other nodes of the plan.
        4. Inputs are moved to the front and outputs to the back, each in
           declaration order, with :func:`shift`.

    Args:
        inputs (Sequence[Node]): Declared input nodes, in order.
        outputs (Sequence[Node]): Declared output nodes, in order.

    Returns:
        ExecutionPlan: The plan.

    Raises:
        GraphConfigurationError: Empty or duplicated declarations, roots that
            differ from `inputs`, outputs with consumers, or boundaries that
            cannot both hold (e.g. a node declared as input and output).
        CyclicGraphError: If a cycle leads into an output.

    """
    inputs = list(inputs)
    outputs = list(outputs)
    _validate_declared(inputs, "input")
    _validate_declared(outputs, "output")

    executions = _sort_from_outputs(outputs)
    _check_roots(executions, inputs)
    _check_outputs_are_sinks(executions, outputs)

    # Inputs to the front: slots left of `i` already hold earlier inputs
    for i, n in enumerate(inputs):
        shift(executions, _index_of(executions, n), i)

    # Outputs to the back, last first: slots right of the target are final
    offset = len(executions) - len(outputs)
    for i in reversed(range(len(outputs))):
        shift(executions, _index_of(executions, outputs[i]), offset + i)

    leading = executions[: len(inputs)]
    trailing = executions[offset:]
    if not (
        all(a is b for a, b in zip(leading, inputs, strict=True))
        and all(a is b for a, b in zip(trailing, outputs, strict=True))
    ):
        msg = (
            "Inputs and outputs cannot both keep their declared positions in the "
            "execution plan. Is a node declared as both input and output?"
        )
        raise GraphConfigurationError(msg)

    prev_positions, grad_slots = _index_edges(executions)

    if logger.isEnabledFor(logging.DEBUG):
        reachable = {id(n) for inp in inputs for n in inp.graph().dfs()}
        excluded = len(reachable - {id(n) for n in executions})
        logger.debug(
            "Execution plan: %s (%d excluded node(s) not reaching any output)",
            [n.label for n in executions],
            excluded,
        )

    return ExecutionPlan(
        nodes=tuple(executions),
        num_inputs=len(inputs),
        num_outputs=len(outputs),
        prev_positions=prev_positions,
        grad_slots=grad_slots,
    )
