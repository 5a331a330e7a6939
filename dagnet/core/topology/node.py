"""Graph vertex holding a module and its ordered edges."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from dagnet.utils.errors.exceptions import GraphMutationError

if TYPE_CHECKING:
    from dagnet.core.topology.directed_graph import DirectedGraph

M = TypeVar("M")


class Node(Generic[M]):
    """
    A vertex of a computation graph.

    Each node wraps an ``element`` (normally a module) and keeps its
    predecessor and successor nodes in the order the edges were created.
    An edge ``a -> b`` means ``b`` consumes the output of ``a``. When ``b``
    has several predecessors, the position of ``a`` in ``b.prev_nodes`` is the
    position of ``a``'s output in the Table that ``b`` receives, and the
    position of ``a``'s share in the gradient Table that ``b`` hands back.

    Nodes are sealed once a Graph is built over them; after that no edge may
    be added or removed.
    """

    def __init__(self, element: M | None, *, label: str | None = None):
        """
        Initialize a node.

        Args:
            element (M | None):
                Module evaluated at this vertex. ``None`` is reserved for the
                synthetic sink used while planning.
            label (str, optional):
                Human readable name. Defaults to the element's ``name`` or
                class name.

        """
        self._element = element
        self._label = label
        self._prev: list[Node] = []
        self._next: list[Node] = []
        self._sealed = False

    # ================================================
    # Properties & Dunders
    # ================================================
    @property
    def element(self) -> M | None:
        return self._element

    @property
    def label(self) -> str:
        if self._label is not None:
            return self._label
        if self._element is None:
            return "<sink>"
        return getattr(self._element, "name", None) or type(self._element).__name__

    @property
    def prev_nodes(self) -> tuple[Node, ...]:
        """Predecessors, in edge-declaration order."""
        return tuple(self._prev)

    @property
    def next_nodes(self) -> tuple[Node, ...]:
        """Successors, in edge-declaration order."""
        return tuple(self._next)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def __rshift__(self, other: Node) -> Node:
        return self.add(other)

    def __call__(self, *nodes: Node) -> Node:
        return self.inputs(*nodes)

    def __repr__(self) -> str:
        return f"Node(label='{self.label}', prev={len(self._prev)}, next={len(self._next)})"

    # ================================================
    # Edge Modifiers
    # ================================================
    def add(self, node: Node) -> Node:
        """
        Create the edge ``self -> node``.

        Returns:
            Node: `node`, so that ``a.add(b).add(c)`` builds a chain.

        Raises:
            GraphMutationError: If either node belongs to a built Graph.

        """
        self._check_mutable("Node.add", node)
        self._link(node)
        return node

    def inputs(self, *nodes: Node) -> Node:
        """
        Connect each of `nodes` into this node, in the given order.

        Returns:
            Node: This node.

        """
        self._check_mutable("Node.inputs", *nodes)
        for n in nodes:
            n._link(self)
        return self

    def delete(self, node: Node) -> Node:
        """
        Remove every edge ``self -> node``.

        Returns:
            Node: This node.

        """
        self._check_mutable("Node.delete", node)
        self._unlink(node)
        return self

    def remove_prev_edges(self) -> Node:
        """Remove all incoming edges of this node."""
        self._check_mutable("Node.remove_prev_edges", *self._prev)
        for p in list(self._prev):
            p._unlink(self)
        return self

    def remove_next_edges(self) -> Node:
        """Remove all outgoing edges of this node."""
        self._check_mutable("Node.remove_next_edges", *self._next)
        for n in list(self._next):
            self._unlink(n)
        return self

    def graph(self, reverse: bool = False) -> DirectedGraph:
        """
        Return the graph reachable from this node.

        Args:
            reverse (bool): Follow predecessor edges instead of successors.

        """
        from dagnet.core.topology.directed_graph import DirectedGraph

        return DirectedGraph(self, reverse=reverse)

    # ================================================
    # Internal Helpers
    # ================================================
    def _link(self, node: Node) -> None:
        self._next.append(node)
        node._prev.append(self)

    def _unlink(self, node: Node) -> None:
        self._next = [n for n in self._next if n is not node]
        node._prev = [p for p in node._prev if p is not self]

    def _seal(self) -> None:
        self._sealed = True

    def _check_mutable(self, method: str, *others: Any) -> None:
        for n in (self, *others):
            if not isinstance(n, Node):
                msg = f"{method} expects Node objects. Received: {type(n)}."
                raise TypeError(msg)
            if n._sealed:
                raise GraphMutationError(method=method)
