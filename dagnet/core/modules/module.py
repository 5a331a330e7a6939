"""Base classes for differentiable modules evaluated inside graphs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from dagnet.core.topology.node import Node

if TYPE_CHECKING:
    from dagnet.core.activity import Activity


def _zero_(tensor: Any) -> None:
    """Zero a NumPy array or torch tensor in place."""
    if hasattr(tensor, "zero_"):
        tensor.zero_()
    else:
        tensor.fill(0)


class Module(ABC):
    """
    Abstract base class for differentiable units of work.

    Description:
        A module maps an input activity to an output activity and back-propagates
        gradients. Subclasses implement :meth:`update_output` and
        :meth:`update_grad_input`; modules with parameters also override
        :meth:`acc_grad_parameters` and :meth:`parameters`.

        The last computed values are kept on ``output`` and ``grad_input`` so
        containers can read them back without recomputation.

    Attributes:
        name (str): Display name, used as the default label of nodes.
        output (Activity | None): Result of the last :meth:`update_output`.
        grad_input (Activity | None): Result of the last :meth:`update_grad_input`.
        training (bool): Whether the module is in training mode.

    """

    def __init__(self, name: str | None = None):
        self.name = name or type(self).__name__
        self.output: Activity | None = None
        self.grad_input: Activity | None = None
        self.training = True

    # ================================================
    # Module contract
    # ================================================
    @abstractmethod
    def update_output(self, input: Activity) -> Activity:
        """Compute the output for `input`, store it on ``self.output`` and return it."""

    @abstractmethod
    def update_grad_input(self, input: Activity, grad_output: Activity) -> Activity:
        """Compute the gradient w.r.t. `input`, store it on ``self.grad_input`` and return it."""

    def acc_grad_parameters(
        self,
        input: Activity,
        grad_output: Activity,
        scale: float = 1.0,
    ) -> None:
        """Accumulate parameter gradients. Parameter-free modules do nothing."""

    # ================================================
    # Forward / Backward
    # ================================================
    def forward(self, input: Activity) -> Activity:
        """Run the forward pass and return the output."""
        return self.update_output(input)

    def backward(
        self,
        input: Activity,
        grad_output: Activity,
        scale: float = 1.0,
    ) -> Activity:
        """
        Back-propagate `grad_output` and accumulate parameter gradients.

        Must follow a :meth:`forward` call with the same `input`.

        Args:
            input (Activity): Input of the matching forward call.
            grad_output (Activity): Gradient w.r.t. the module output.
            scale (float): Multiplier applied to parameter gradients.

        Returns:
            Activity: Gradient w.r.t. `input`.

        """
        self.update_grad_input(input, grad_output)
        self.acc_grad_parameters(input, grad_output, scale)
        return self.grad_input

    # ================================================
    # Parameters & Modes
    # ================================================
    def parameters(self) -> tuple[list[Any], list[Any]]:
        """Return ``(weights, grad_weights)``, two aligned lists of tensors."""
        return [], []

    def zero_grad_parameters(self) -> None:
        """Set all parameter gradients to zero."""
        for grad in self.parameters()[1]:
            _zero_(grad)

    def train(self, mode: bool = True) -> Module:
        self.training = mode
        return self

    def evaluate(self) -> Module:
        return self.train(False)

    # ================================================
    # Graph building
    # ================================================
    def __call__(self, *nodes: Node) -> Node:
        """
        Wrap this module in a new :class:`Node` fed by `nodes`.

        Example:
            >>> x = Input.node()
            >>> h = MyLayer()(x)

        """
        return Node(self).inputs(*nodes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}')"


class Container(Module):
    """
    Module that owns other modules.

    Training mode, parameters and gradient zeroing are forwarded to every
    contained module.
    """

    def __init__(self, name: str | None = None):
        super().__init__(name=name)
        self.modules: list[Module] = []

    def add(self, module: Module) -> Container:
        """Append `module` to this container."""
        self.modules.append(module)
        return self

    def parameters(self) -> tuple[list[Any], list[Any]]:
        weights: list[Any] = []
        grads: list[Any] = []
        for m in self.modules:
            w, g = m.parameters()
            weights.extend(w)
            grads.extend(g)
        return weights, grads

    def zero_grad_parameters(self) -> None:
        for m in self.modules:
            m.zero_grad_parameters()

    def train(self, mode: bool = True) -> Container:
        super().train(mode)
        for m in self.modules:
            m.train(mode)
        return self
