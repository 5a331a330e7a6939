from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from dagnet.core.activity import Activity, Table, to_table, to_tensor
from dagnet.core.modules.module import Container, Module
from dagnet.core.topology.node import Node
from dagnet.core.topology.planner import ExecutionPlan, build_execution_plan
from dagnet.utils.data.formatting import ensure_list
from dagnet.utils.errors.exceptions import (
    CallOrderError,
    GraphArityError,
    GraphMutationError,
)
from dagnet.utils.logging import get_logger
from dagnet.utils.representation.summary import Summarizable

logger = get_logger("graph")


def _as_node_list(nodes: Node | Sequence[Node]) -> list[Node]:
    if isinstance(nodes, Node):
        return [nodes]
    return ensure_list(nodes)


class Graph(Container, Summarizable):
    """
    Container that evaluates a DAG of modules.

    Description:
        Every node of the graph holds a module. A node's module receives the
        output of its single predecessor as a tensor, or the outputs of all
        its predecessors as a :class:`Table` ordered like ``prev_nodes``.

        With one input node the graph consumes a tensor; with several it
        consumes a Table whose element ``k`` feeds input node ``k``. Outputs
        follow the same rule, and gradients travel back the same way.

        Input nodes must accept a tensor. A module needing several tensors
        should be fed by several :class:`~dagnet.core.modules.input.Input`
        nodes. Nodes that do not lead to any output are excluded from
        computation.

        The execution plan is built once in the constructor; the graph and
        its nodes cannot be modified afterwards.

    Notes:
        - :meth:`update_grad_input` and :meth:`acc_grad_parameters` reuse the
          inputs cached by the last :meth:`update_output`. Call them with the
          same `input`, after a forward pass; ``check_call_order=True`` turns
          violations into :class:`CallOrderError`.
        - A Graph is not thread safe. Use one instance per worker.

    """

    def __init__(
        self,
        inputs: Node | Sequence[Node],
        outputs: Node | Sequence[Node],
        *,
        name: str | None = None,
        check_call_order: bool = False,
    ):
        """
        Build a graph and its execution plan.

        Args:
            inputs (Node | Sequence[Node]):
                Input node(s). Must be exactly the nodes without predecessors
                among the ancestors of `outputs`.
            outputs (Node | Sequence[Node]):
                Output node(s), whose modules produce the graph output.
            name (str, optional):
                Display name of the graph.
            check_call_order (bool, optional):
                Raise if a backward pass does not follow a forward pass with
                the same input object. Defaults to False.

        Raises:
            GraphConfigurationError: If no valid execution plan exists.

        """
        super().__init__(name=name)
        self.check_call_order = check_call_order

        self._plan: ExecutionPlan = build_execution_plan(
            _as_node_list(inputs),
            _as_node_list(outputs),
        )
        self.modules.extend(n.element for n in self._plan.nodes)
        for n in self._plan.nodes:
            n._seal()

        # Per-position caches, overwritten on every pass
        self._inputs_bp: list[Activity | None] = [None] * len(self._plan)
        self._grad_outputs_bp: list[Any] = [None] * len(self._plan)

        # Only used when `check_call_order` is set
        self._last_input: Activity | None = None
        self._grads_ready = False

        logger.debug(
            "Built graph '%s' with %d node(s)",
            self.name,
            len(self._plan),
        )

    # ================================================
    # Properties & Dunders
    # ================================================
    @property
    def plan(self) -> ExecutionPlan:
        return self._plan

    @property
    def executions(self) -> tuple[Node, ...]:
        """Nodes in evaluation order."""
        return self._plan.nodes

    @property
    def inputs(self) -> tuple[Node, ...]:
        return self._plan.input_nodes

    @property
    def outputs(self) -> tuple[Node, ...]:
        return self._plan.output_nodes

    def __repr__(self) -> str:
        return (
            f"Graph(name='{self.name}', inputs={[n.label for n in self.inputs]}, "
            f"outputs={[n.label for n in self.outputs]})"
        )

    def _summary_rows(self) -> list[tuple]:
        nodes = self._plan.nodes
        rows = []
        for i, n in enumerate(nodes):
            preds = [nodes[p].label for p in self._plan.prev_positions[i]]
            rows.append((f"{i}", f"{n.label} <- {', '.join(preds)}" if preds else n.label))
        return [
            ("name", self.name),
            ("inputs", ", ".join(n.label for n in self.inputs)),
            ("outputs", ", ".join(n.label for n in self.outputs)),
            ("executions", rows),
        ]

    def get_config(self) -> dict[str, Any]:
        """Return a JSON-friendly description of the graph structure."""
        return {
            "name": self.name,
            "inputs": [n.label for n in self.inputs],
            "outputs": [n.label for n in self.outputs],
            "executions": [n.label for n in self.executions],
            "check_call_order": self.check_call_order,
        }

    # ================================================
    # Structure is fixed
    # ================================================
    def add(self, module: Module) -> Graph:
        raise GraphMutationError(
            method="Graph.add",
            message=(
                "Please don't use add method in Graph container. "
                "A graph container should not be changed after it is constructed."
            ),
        )

    # ================================================
    # Forward
    # ================================================
    def update_output(self, input: Activity) -> Activity:
        nodes = self._plan.nodes
        n_inputs = self._plan.num_inputs

        if n_inputs == 1:
            self._inputs_bp[0] = to_tensor(input, where="Graph.update_output")
            nodes[0].element.update_output(self._inputs_bp[0])
        else:
            input_table = to_table(input, where="Graph.update_output")
            if len(input_table) != n_inputs:
                raise GraphArityError(
                    expected=n_inputs,
                    received=len(input_table),
                    method="Graph.update_output",
                )
            for i in range(n_inputs):
                self._inputs_bp[i] = to_tensor(
                    input_table[i],
                    where="Graph.update_output",
                )
                nodes[i].element.update_output(self._inputs_bp[i])

        for i in range(n_inputs, len(nodes)):
            prevs = self._plan.prev_positions[i]
            if len(prevs) == 1:
                self._inputs_bp[i] = self._node_output(prevs[0])
            else:
                self._inputs_bp[i] = Table(*(self._node_output(p) for p in prevs))
            nodes[i].element.update_output(self._inputs_bp[i])

        if self._plan.num_outputs == 1:
            self.output = nodes[-1].element.output
        else:
            self.output = Table(*(n.element.output for n in self.outputs))

        if self.check_call_order:
            self._last_input = input
            self._grads_ready = False
        return self.output

    # ================================================
    # Backward
    # ================================================
    def update_grad_input(self, input: Activity, grad_output: Activity) -> Activity:
        self._check_order("Graph.update_grad_input", input, needs_grads=False)
        nodes = self._plan.nodes
        offset = self._plan.output_offset

        self._seed_grad_outputs(grad_output, "Graph.update_grad_input")
        for i in reversed(range(offset, len(nodes))):
            nodes[i].element.update_grad_input(self._inputs_bp[i], self._grad_outputs_bp[i])

        for i in reversed(range(offset)):
            self._grad_outputs_bp[i] = self._sum_consumer_grads(i)
            nodes[i].element.update_grad_input(self._inputs_bp[i], self._grad_outputs_bp[i])

        if self._plan.num_inputs == 1:
            self.grad_input = nodes[0].element.grad_input
        else:
            self.grad_input = Table(*(n.element.grad_input for n in self.inputs))

        if self.check_call_order:
            self._grads_ready = True
        return self.grad_input

    def acc_grad_parameters(
        self,
        input: Activity,
        grad_output: Activity,
        scale: float = 1.0,
    ) -> None:
        self._check_order("Graph.acc_grad_parameters", input, needs_grads=True)
        nodes = self._plan.nodes

        # Output positions are re-seeded; the rest reuse the summed gradients
        self._seed_grad_outputs(grad_output, "Graph.acc_grad_parameters")
        for i in reversed(range(len(nodes))):
            nodes[i].element.acc_grad_parameters(
                self._inputs_bp[i],
                self._grad_outputs_bp[i],
                scale,
            )

    # ================================================
    # Internal Helpers
    # ================================================
    def _node_output(self, position: int) -> Any:
        node = self._plan.nodes[position]
        return to_tensor(node.element.output, where=f"output of node '{node.label}'")

    def _seed_grad_outputs(self, grad_output: Activity, method: str) -> None:
        """Store `grad_output` at the output positions of the gradient cache."""
        offset = self._plan.output_offset
        n_outputs = self._plan.num_outputs

        if n_outputs == 1:
            self._grad_outputs_bp[offset] = to_tensor(grad_output, where=method)
            return

        grad_table = to_table(grad_output, where=method)
        if len(grad_table) != n_outputs:
            raise GraphArityError(
                expected=n_outputs,
                received=len(grad_table),
                method=method,
            )
        for j in range(n_outputs):
            self._grad_outputs_bp[offset + j] = to_tensor(grad_table[j], where=method)

    def _sum_consumer_grads(self, position: int) -> Any:
        """
        Gradient w.r.t. the output of the node at `position`.

        Sums, over every edge leaving the node, the consumer's ``grad_input``
        (single-predecessor consumer) or the slot of the consumer's
        ``grad_input`` Table that belongs to that edge. The sum is built out of
        place, so consumers' gradients are left untouched.
        """
        nodes = self._plan.nodes
        total = None
        for consumer_pos, slot in self._plan.grad_slots[position]:
            consumer = nodes[consumer_pos]
            where = f"grad_input of node '{consumer.label}'"
            consumer_grad = consumer.element.grad_input
            if slot is not None:
                consumer_grad = to_table(consumer_grad, where=where)[slot]
            share = to_tensor(consumer_grad, where=where)
            total = share if total is None else total + share
        return total

    def _check_order(self, method: str, input: Activity, *, needs_grads: bool) -> None:
        if not self.check_call_order:
            return
        if self._last_input is None or self._last_input is not input:
            raise CallOrderError(method=method)
        if needs_grads and not self._grads_ready:
            raise CallOrderError(
                method=method,
                message=f"`{method}` requires a prior `Graph.update_grad_input` call.",
            )
