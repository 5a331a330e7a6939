from dagnet.api import (
    Activity,
    ActivityTypeError,
    CallOrderError,
    Container,
    CyclicGraphError,
    DagNetError,
    Differentiable,
    DirectedGraph,
    ExecutionPlan,
    Graph,
    GraphArityError,
    GraphConfigurationError,
    GraphMutationError,
    GraphRootMismatchError,
    Input,
    Module,
    Node,
    Table,
    build_execution_plan,
    input_node,
    is_table,
    is_tensor,
    seq_to_table,
    shift,
)

__version__ = "0.1.0"
