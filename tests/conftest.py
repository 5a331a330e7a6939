"""Shared fixtures and test modules for unit tests."""

import logging

import numpy as np
import pytest

from dagnet.core.activity import Table, to_table
from dagnet.core.modules.input import Input
from dagnet.core.modules.module import Module
from dagnet.core.topology.node import Node

rng = np.random.default_rng(seed=42)


# ---------------------------------------------------------------------
# Test modules
# ---------------------------------------------------------------------
class Identity(Module):
    """Passes tensors (or tables) through unchanged in both directions."""

    def update_output(self, input):
        self.output = input
        return self.output

    def update_grad_input(self, input, grad_output):
        self.grad_input = grad_output
        return self.grad_input


class CAddTable(Module):
    """Elementwise sum of a table of tensors."""

    def update_output(self, input):
        items = list(to_table(input))
        out = items[0].copy()
        for x in items[1:]:
            out = out + x
        self.output = out
        return self.output

    def update_grad_input(self, input, grad_output):
        self.grad_input = Table(*(grad_output.copy() for _ in to_table(input)))
        return self.grad_input


class CMulTable(Module):
    """Elementwise product of a two-element table."""

    def update_output(self, input):
        a, b = to_table(input)
        self.output = a * b
        return self.output

    def update_grad_input(self, input, grad_output):
        a, b = to_table(input)
        self.grad_input = Table(grad_output * b, grad_output * a)
        return self.grad_input


class Scale(Module):
    """Multiplies by a learnable scalar weight."""

    def __init__(self, weight: float = 2.0, name=None):
        super().__init__(name=name)
        self.weight = np.array([weight])
        self.grad_weight = np.zeros(1)

    def update_output(self, input):
        self.output = input * self.weight[0]
        return self.output

    def update_grad_input(self, input, grad_output):
        self.grad_input = grad_output * self.weight[0]
        return self.grad_input

    def acc_grad_parameters(self, input, grad_output, scale=1.0):
        self.grad_weight += scale * np.sum(input * grad_output)

    def parameters(self):
        return [self.weight], [self.grad_weight]


class Recorder(Identity):
    """Identity that records every call it receives."""

    def __init__(self, name=None):
        super().__init__(name=name)
        self.calls: list[tuple] = []

    def update_output(self, input):
        self.calls.append(("update_output", input))
        return super().update_output(input)

    def update_grad_input(self, input, grad_output):
        self.calls.append(("update_grad_input", input, grad_output))
        return super().update_grad_input(input, grad_output)

    def acc_grad_parameters(self, input, grad_output, scale=1.0):
        self.calls.append(("acc_grad_parameters", input, grad_output, scale))


def node(module: Module | None = None, label: str | None = None) -> Node:
    """Wrap `module` (an Identity by default) in a labelled Node."""
    module = module if module is not None else Identity(name=label)
    return Node(module, label=label)


def plan_position(executions, n: Node) -> int:
    """Position of `n` in `executions` by identity."""
    return next(i for i, x in enumerate(executions) if x is n)


def generate_dummy_data(shape: tuple[int, ...] = (3,)) -> np.ndarray:
    """Random float data of the given shape."""
    return rng.uniform(-1.0, 1.0, size=shape)


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------
@pytest.fixture
def identity_chain():
    """X -> L1 -> L2 -> Y, every module an identity."""
    x = Input.node(label="X")
    l1 = node(label="L1")
    l2 = node(label="L2")
    y = node(label="Y")
    x.add(l1).add(l2).add(y)
    return x, l1, l2, y


@pytest.fixture
def diamond():
    """
    X -> A, X -> B, (A, B) -> D with D a CAddTable.

    X's output fans out to two consumers, so its gradient is a sum.
    """
    x = Input.node(label="X")
    a = node(label="A")
    b = node(label="B")
    d = node(CAddTable(), label="D")
    x.add(a)
    x.add(b)
    d.inputs(a, b)
    return x, a, b, d


@pytest.fixture
def dagnet_caplog(caplog):
    """`caplog` that also receives records from the non-propagating dagnet loggers."""
    loggers = [logging.getLogger(n) for n in ("dagnet.planner", "dagnet.graph")]
    for lg in loggers:
        lg.addHandler(caplog.handler)
    yield caplog
    for lg in loggers:
        lg.removeHandler(caplog.handler)
