"""Custom exception hierarchy for dagnet."""


class DagNetError(Exception):
    """Base class for all dagnet-specific exceptions."""


class GraphConfigurationError(DagNetError, ValueError):
    """Raised when a Graph cannot be built from the declared inputs and outputs."""

    def __init__(self, message: str | None = None):
        """Initialize configuration error with optional message."""
        if message is None:
            message = "Invalid Graph configuration."
        super().__init__(message)


class CyclicGraphError(GraphConfigurationError):
    """Raised when a cycle is found while ordering graph nodes."""

    def __init__(self, node_label: str | None = None, message: str | None = None):
        """
        Initialize cycle error.

        Args:
            node_label (str | None, optional): Label of a node lying on the cycle.
            message (str | None, optional): Custom message override.

        """
        if message is None:
            message = (
                "There's a cycle in the graph. Graph must be acyclic."
                if node_label is None
                else f"Cycle detected in graph at node '{node_label}'. Graph must be acyclic."
            )
        super().__init__(message)
        self.node_label = node_label


class GraphRootMismatchError(GraphConfigurationError):
    """
    Raised when the declared input nodes are not exactly the roots of the graph.

    Attributes:
        expected (int): Number of declared input nodes.
        received (int): Number of root nodes found in the execution plan.

    """

    def __init__(self, expected: int, received: int, message: str | None = None):
        """
        Initialize root mismatch error.

        Args:
            expected (int): Number of declared inputs.
            received (int): Number of roots found in the graph.
            message (str | None, optional): Custom message override.

        """
        if message is None:
            message = f"There're {expected} inputs, but graph has {received} roots."
        super().__init__(message)
        self.expected = expected
        self.received = received


class GraphMutationError(DagNetError, RuntimeError):
    """Raised when a built Graph, or a node owned by one, is modified."""

    def __init__(self, method: str | None = None, message: str | None = None):
        """
        Initialize mutation error.

        Args:
            method (str | None, optional): Method that attempted the mutation.
            message (str | None, optional): Custom message override.

        """
        if message is None:
            message = (
                "A graph should not be changed after it is constructed."
                if method is None
                else f"`{method}` is not allowed: a graph should not be changed after it is constructed."
            )
        super().__init__(message)


class GraphArityError(DagNetError, ValueError):
    """
    Raised when a table's length does not match the number of graph input/output nodes.

    Attributes:
        expected (int): Number of declared nodes.
        received (int): Number of tensors received.

    """

    def __init__(
        self,
        expected: int,
        received: int,
        method: str | None = None,
        message: str | None = None,
    ):
        """
        Initialize arity error.

        Args:
            expected (int): Number of input/output nodes.
            received (int): Length of the table that was provided.
            method (str | None, optional): Method where the mismatch occurred.
            message (str | None, optional): Custom message override.

        """
        if message is None:
            prefix = f"{method}: " if method else ""
            message = (
                f"{prefix}tensor number({received}) is not equal to "
                f"node number({expected})"
            )
        super().__init__(message)
        self.expected = expected
        self.received = received


class ActivityTypeError(DagNetError, TypeError):
    """Raised when a tensor was expected but a table was given, or vice versa."""

    def __init__(
        self,
        expected: str,
        received: type,
        where: str | None = None,
        message: str | None = None,
    ):
        """
        Initialize activity type error.

        Args:
            expected (str): Either "tensor" or "table".
            received (type): Type of the object actually provided.
            where (str | None, optional): Consumption site, used in the message.
            message (str | None, optional): Custom message override.

        """
        if message is None:
            prefix = f"{where}: " if where else ""
            message = f"{prefix}expected a {expected}, but got {received.__name__}."
        super().__init__(message)
        self.expected = expected
        self.received = received


class CallOrderError(DagNetError, RuntimeError):
    """Raised when a backward pass runs without a matching prior pass."""

    def __init__(self, method: str | None = None, message: str | None = None):
        """Initialize call-order error with optional method context."""
        if message is None:
            message = (
                "Backward pass called before forward."
                if method is None
                else f"`{method}` called without a matching prior pass."
            )
        super().__init__(message)
