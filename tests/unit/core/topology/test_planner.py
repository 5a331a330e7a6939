"""Unit tests for dagnet.core.topology.planner module."""

import logging

import pytest

from dagnet.core.modules.input import Input
from dagnet.core.topology.node import Node
from dagnet.core.topology.planner import ExecutionPlan, build_execution_plan, shift
from dagnet.utils.errors.exceptions import (
    CyclicGraphError,
    GraphConfigurationError,
    GraphRootMismatchError,
)
from tests.conftest import CAddTable, node


def _labels(plan: ExecutionPlan) -> list[str]:
    return [n.label for n in plan.nodes]


def _assert_topological(plan: ExecutionPlan):
    for i, prevs in enumerate(plan.prev_positions):
        for p in prevs:
            assert p < i


# ---------------------------------------------------------------------
# shift
# ---------------------------------------------------------------------
@pytest.mark.unit
def test_shift_forward_and_backward():
    """Test shift moves one element and keeps the others in order."""
    assert shift([1, 2, 3, 4], 1, 3) == [1, 3, 4, 2]
    assert shift([1, 2, 3, 4], 3, 1) == [1, 4, 2, 3]
    assert shift([1, 2, 3, 4], 2, 2) == [1, 2, 3, 4]


@pytest.mark.unit
def test_shift_is_in_place():
    """Test shift mutates and returns the given list."""
    data = ["a", "b", "c"]
    assert shift(data, 0, 2) is data
    assert data == ["b", "c", "a"]


@pytest.mark.unit
def test_shift_rejects_out_of_range():
    """Test shift validates both indices."""
    with pytest.raises(IndexError, match="invalid from 5 array length is 3"):
        shift([1, 2, 3], 5, 0)
    with pytest.raises(IndexError, match="invalid to 3 array length is 3"):
        shift([1, 2, 3], 0, 3)
    with pytest.raises(IndexError):
        shift([1, 2, 3], -1, 0)


# ---------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------
@pytest.mark.unit
def test_plan_for_chain(identity_chain):
    """Test a chain is planned in edge order."""
    x, l1, l2, y = identity_chain
    plan = build_execution_plan([x], [y])
    assert _labels(plan) == ["X", "L1", "L2", "Y"]
    assert plan.num_inputs == 1
    assert plan.num_outputs == 1
    assert plan.prev_positions == ((), (0,), (1,), (2,))
    assert plan.grad_slots == (((1, None),), ((2, None),), ((3, None),), ())
    assert plan.input_nodes == (x,)
    assert plan.output_nodes == (y,)
    assert plan.output_offset == 3
    assert plan.position(l2) == 2
    assert len(plan) == 4


@pytest.mark.unit
def test_plan_position_unknown_node(identity_chain):
    """Test position raises KeyError for nodes outside the plan."""
    x, _, _, y = identity_chain
    plan = build_execution_plan([x], [y])
    with pytest.raises(KeyError):
        plan.position(node(label="other"))


@pytest.mark.unit
def test_plan_for_diamond(diamond):
    """Test fan-out edges get one gradient slot each."""
    x, a, b, d = diamond
    plan = build_execution_plan([x], [d])
    _assert_topological(plan)
    assert plan.nodes[0] is x
    assert plan.nodes[-1] is d

    pa, pb, pd = plan.position(a), plan.position(b), plan.position(d)
    assert plan.prev_positions[pd] == (pa, pb)
    assert plan.grad_slots[0] == ((pa, None), (pb, None))
    assert plan.grad_slots[pa] == ((pd, 0),)
    assert plan.grad_slots[pb] == ((pd, 1),)


@pytest.mark.unit
def test_plan_moves_inputs_and_outputs_to_declared_positions():
    """Test boundaries follow declaration order, not discovery order."""
    x1, x2 = Input.node(label="X1"), Input.node(label="X2")
    h = node(CAddTable(), label="H")
    h.inputs(x1, x2)
    y1 = node(label="Y1")
    y2 = node(label="Y2")
    h.add(y1)
    h.add(y2)

    plan = build_execution_plan([x2, x1], [y2, y1])
    assert [n.label for n in plan.input_nodes] == ["X2", "X1"]
    assert [n.label for n in plan.output_nodes] == ["Y2", "Y1"]
    _assert_topological(plan)


@pytest.mark.unit
def test_plan_input_with_late_consumer():
    """
    Test an input consumed only near the end still lands at the front.

    X1 -> A -> B -> C -> Y, X2 -> Y
    """
    x1, x2 = Input.node(label="X1"), Input.node(label="X2")
    a, b, c = node(label="A"), node(label="B"), node(label="C")
    y = node(CAddTable(), label="Y")
    x1.add(a).add(b).add(c)
    y.inputs(c, x2)

    plan = build_execution_plan([x1, x2], [y])
    assert plan.input_nodes == (x1, x2)
    assert plan.output_nodes == (y,)
    _assert_topological(plan)


@pytest.mark.unit
def test_plan_output_discovered_early():
    """
    Test outputs are moved behind unrelated interior nodes.

    X -> Y1 and X -> A -> B -> Y2, declared outputs [Y1, Y2].
    """
    x = Input.node(label="X")
    y1 = node(label="Y1")
    a, b, y2 = node(label="A"), node(label="B"), node(label="Y2")
    x.add(y1)
    x.add(a).add(b).add(y2)

    plan = build_execution_plan([x], [y1, y2])
    assert plan.output_nodes == (y1, y2)
    assert plan.output_offset == 3
    _assert_topological(plan)


@pytest.mark.unit
def test_plan_duplicate_edge_slots():
    """Test a doubled edge yields two slots on the same consumer."""
    x = Input.node(label="X")
    y = node(CAddTable(), label="Y")
    y.inputs(x, x)
    plan = build_execution_plan([x], [y])
    assert plan.prev_positions[1] == (0, 0)
    assert plan.grad_slots[0] == ((1, 0), (1, 1))


@pytest.mark.unit
def test_plan_single_node_graph():
    """Test one node may be both the only input and the only output."""
    x = Input.node(label="X")
    plan = build_execution_plan([x], [x])
    assert plan.nodes == (x,)
    assert plan.output_offset == 0


@pytest.mark.unit
def test_plan_leaves_nodes_untouched(identity_chain):
    """Test planning does not leave extra edges on the outputs."""
    x, _, _, y = identity_chain
    build_execution_plan([x], [y])
    assert y.next_nodes == ()


# ---------------------------------------------------------------------
# Dead branches
# ---------------------------------------------------------------------
@pytest.mark.unit
def test_dead_branch_excluded(identity_chain, dagnet_caplog):
    """Test nodes that do not reach any output are not planned."""
    x, l1, _, y = identity_chain
    dead = node(label="Dead")
    l1.add(dead)

    with dagnet_caplog.at_level(logging.DEBUG, logger="dagnet.planner"):
        plan = build_execution_plan([x], [y])

    assert all(n is not dead for n in plan.nodes)
    assert plan.grad_slots[plan.position(l1)] == ((2, None),)
    assert "1 excluded node(s)" in dagnet_caplog.text


# ---------------------------------------------------------------------
# Invalid configurations
# ---------------------------------------------------------------------
@pytest.mark.unit
def test_root_mismatch_missing_input():
    """Test an undeclared root raises GraphRootMismatchError."""
    x1, x2 = Input.node(label="X1"), Input.node(label="X2")
    y = node(CAddTable(), label="Y")
    y.inputs(x1, x2)
    with pytest.raises(GraphRootMismatchError, match="There're 1 inputs, but graph has 2 roots.") as exc:
        build_execution_plan([x1], [y])
    assert exc.value.expected == 1
    assert exc.value.received == 2


@pytest.mark.unit
def test_root_mismatch_input_is_not_root(identity_chain):
    """Test declaring a non-root node as input fails."""
    x, l1, _, y = identity_chain
    with pytest.raises(GraphRootMismatchError, match="'L1' is not a root"):
        build_execution_plan([l1], [y])


@pytest.mark.unit
def test_unreachable_input_rejected(identity_chain):
    """Test an input that does not reach the outputs is rejected."""
    x, _, _, y = identity_chain
    other = Input.node(label="Other")
    with pytest.raises(GraphRootMismatchError):
        build_execution_plan([x, other], [y])


@pytest.mark.unit
def test_cycle_rejected():
    """Test a cycle reaching an output raises CyclicGraphError."""
    x = Input.node(label="X")
    a, b = node(label="A"), node(label="B")
    y = node(label="Y")
    x.add(a).add(b)
    b.add(a)
    b.add(y)
    with pytest.raises(CyclicGraphError):
        build_execution_plan([x], [y])
    assert y.next_nodes == ()


@pytest.mark.unit
def test_empty_declarations_rejected(identity_chain):
    """Test zero inputs or outputs are configuration errors."""
    x, _, _, y = identity_chain
    with pytest.raises(GraphConfigurationError, match="at least one input"):
        build_execution_plan([], [y])
    with pytest.raises(GraphConfigurationError, match="at least one output"):
        build_execution_plan([x], [])


@pytest.mark.unit
def test_duplicate_declarations_rejected(identity_chain):
    """Test a node declared twice on one side is rejected."""
    x, _, _, y = identity_chain
    with pytest.raises(GraphConfigurationError, match="more than once"):
        build_execution_plan([x, x], [y])
    with pytest.raises(GraphConfigurationError, match="more than once"):
        build_execution_plan([x], [y, y])


@pytest.mark.unit
def test_non_node_declaration_rejected(identity_chain):
    """Test declarations must be Node objects."""
    x, _, _, _ = identity_chain
    with pytest.raises(TypeError, match="must be of type Node"):
        build_execution_plan([x], ["Y"])


@pytest.mark.unit
def test_output_with_consumer_rejected(identity_chain):
    """Test an output feeding another planned node is rejected."""
    x, _, l2, y = identity_chain
    with pytest.raises(GraphConfigurationError, match="Output node 'L2' feeds"):
        build_execution_plan([x], [l2, y])


@pytest.mark.unit
def test_node_as_input_and_output_rejected():
    """Test a node cannot be input and output when other nodes exist."""
    x1, x2 = Input.node(label="X1"), Input.node(label="X2")
    y = node(label="Y")
    x2.add(y)
    with pytest.raises(GraphConfigurationError, match="both input and output"):
        build_execution_plan([x1, x2], [x1, y])


@pytest.mark.unit
def test_sink_element_rejected():
    """Test nodes without an element cannot be planned."""
    x = Input.node(label="X")
    empty = Node(None, label="Empty")
    x.add(empty)
    with pytest.raises(GraphConfigurationError, match="has no element"):
        build_execution_plan([x], [empty])
