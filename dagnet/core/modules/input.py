"""Identity module marking graph entry points."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dagnet.core.activity import to_tensor
from dagnet.core.modules.module import Module
from dagnet.core.topology.node import Node

if TYPE_CHECKING:
    from dagnet.core.activity import Activity


class Input(Module):
    """
    Pass-through module used as a graph input.

    Every input node of a Graph receives a single tensor. A module that needs
    several tensors should be fed by several Input nodes:

        >>> a, b = Input.node(), Input.node()
        >>> merged = MyMergeLayer()(a, b)
        >>> graph = Graph([a, b], merged)

    """

    def update_output(self, input: Activity) -> Activity:
        self.output = to_tensor(input, where="Input.update_output")
        return self.output

    def update_grad_input(self, input: Activity, grad_output: Activity) -> Activity:
        self.grad_input = to_tensor(grad_output, where="Input.update_grad_input")
        return self.grad_input

    @classmethod
    def node(cls, label: str | None = None) -> Node:
        """Return a new :class:`Node` wrapping a fresh Input module."""
        return Node(cls(), label=label)


def input_node(label: str | None = None) -> Node:
    """Shorthand for :meth:`Input.node`."""
    return Input.node(label=label)
