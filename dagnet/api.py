# ================================================
# Activities
# ================================================
from dagnet.core.activity import Activity, Table, is_table, is_tensor, seq_to_table


# ================================================
# Modules
# ================================================
from dagnet.core.modules.module import Container, Module
from dagnet.core.modules.input import Input, input_node
from dagnet.core.modules.protocols import Differentiable

"""
Concrete layers are not part of dagnet. Any object implementing the
`Differentiable` protocol (or subclassing `Module`) can be placed in a graph.
"""


# ================================================
# Graphs
# ================================================
from dagnet.core.topology.node import Node
from dagnet.core.topology.directed_graph import DirectedGraph
from dagnet.core.topology.planner import ExecutionPlan, build_execution_plan, shift
from dagnet.core.topology.graph import Graph


# ================================================
# Errors
# ================================================
from dagnet.utils.errors.exceptions import (
    ActivityTypeError,
    CallOrderError,
    CyclicGraphError,
    DagNetError,
    GraphArityError,
    GraphConfigurationError,
    GraphMutationError,
    GraphRootMismatchError,
)


__all__ = [
    "Activity",
    "ActivityTypeError",
    "CallOrderError",
    "Container",
    "CyclicGraphError",
    "DagNetError",
    "Differentiable",
    "DirectedGraph",
    "ExecutionPlan",
    "Graph",
    "GraphArityError",
    "GraphConfigurationError",
    "GraphMutationError",
    "GraphRootMismatchError",
    "Input",
    "Module",
    "Node",
    "Table",
    "build_execution_plan",
    "input_node",
    "is_table",
    "is_tensor",
    "seq_to_table",
    "shift",
]
