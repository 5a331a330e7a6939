"""Protocol interfaces implemented by graph elements."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dagnet.core.activity import Activity


@runtime_checkable
class Differentiable(Protocol):
    """
    The capability every graph element must expose.

    A Graph only ever talks to its elements through these three methods and
    the ``output`` / ``grad_input`` attributes they set.
    """

    output: Activity
    grad_input: Activity

    def update_output(self, input: Activity) -> Activity:
        """
        Compute the output for `input` and store it on ``self.output``.

        Must not mutate `input`.
        """
        ...

    def update_grad_input(self, input: Activity, grad_output: Activity) -> Activity:
        """
        Compute the gradient w.r.t. `input` and store it on ``self.grad_input``.

        `input` must be the value that produced the current ``self.output``.
        """
        ...

    def acc_grad_parameters(
        self,
        input: Activity,
        grad_output: Activity,
        scale: float = 1.0,
    ) -> None:
        """Accumulate ``scale`` times the parameter gradients into internal storage."""
        ...
