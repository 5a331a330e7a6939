"""
Values that flow along graph edges.

An *activity* is either a single tensor or a :class:`Table`, an ordered
collection of activities. Modules with one upstream node receive a tensor;
modules with several receive a Table whose element ``k`` is the output of
their ``k``-th predecessor. The same rule holds for gradients flowing back.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import Any, TypeAlias

import numpy as np

from dagnet.utils.environment.optional_imports import check_torch
from dagnet.utils.errors.exceptions import ActivityTypeError

torch = check_torch()


class Table(Sequence):
    """
    Ordered, fixed-length collection of activities.

    Description:
        Tables are how several tensors travel together: the inputs of a
        multi-input graph, the forward input of a node with several
        predecessors, and the gradient a multi-input module hands back to
        its predecessors. Indexing is zero-based and follows declaration
        order.

    """

    __slots__ = ("_items",)

    def __init__(self, *items: Any):
        self._items: tuple[Any, ...] = tuple(items)

    @classmethod
    def from_sequence(cls, items: Iterable[Any]) -> Table:
        """Build a Table from any iterable, preserving order."""
        return cls(*items)

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return Table(*self._items[idx])
        return self._items[idx]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table) or len(other) != len(self):
            return False
        return all(_activities_equal(a, b) for a, b in zip(self, other, strict=True))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Table({', '.join(repr(x) for x in self._items)})"


Activity: TypeAlias = Any
"""Either a tensor or a :class:`Table`."""


def _activities_equal(a: Any, b: Any) -> bool:
    if is_table(a) or is_table(b):
        return is_table(a) and is_table(b) and a == b
    if a is b:
        return True
    if torch is not None and (torch.is_tensor(a) or torch.is_tensor(b)):
        return torch.is_tensor(a) and torch.is_tensor(b) and bool(torch.equal(a, b))
    return bool(np.array_equal(a, b))


def is_table(x: Any) -> bool:
    """Return True if `x` is a :class:`Table`."""
    return isinstance(x, Table)


def is_tensor(x: Any) -> bool:
    """
    Return True if `x` is a tensor.

    NumPy arrays and scalars are tensors; so are ``torch.Tensor`` objects when
    torch is installed.
    """
    if isinstance(x, (np.ndarray, np.generic)):
        return True
    return torch is not None and torch.is_tensor(x)


def to_tensor(x: Activity, *, where: str | None = None) -> Any:
    """
    Narrow an activity to a tensor.

    Args:
        x (Activity): Value expected to be a tensor.
        where (str | None): Consumption site, used in the error message.

    Raises:
        ActivityTypeError: If `x` is a Table or not a tensor.

    """
    if not is_tensor(x):
        raise ActivityTypeError("tensor", type(x), where=where)
    return x


def to_table(x: Activity, *, where: str | None = None) -> Table:
    """
    Narrow an activity to a :class:`Table`.

    Args:
        x (Activity): Value expected to be a Table.
        where (str | None): Consumption site, used in the error message.

    Raises:
        ActivityTypeError: If `x` is not a Table.

    """
    if not is_table(x):
        raise ActivityTypeError("table", type(x), where=where)
    return x


def seq_to_table(items: Iterable[Activity]) -> Table:
    """Collect `items` into a fresh :class:`Table`, in iteration order."""
    return Table.from_sequence(items)
