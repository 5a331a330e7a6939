"""Traversal helpers over the nodes reachable from a single source node."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from dagnet.core.topology.node import Node
from dagnet.utils.errors.exceptions import CyclicGraphError


class DirectedGraph:
    """
    View of every node reachable from `source`.

    Description:
        Traversal follows ``next_nodes``, or ``prev_nodes`` when `reverse` is
        True. The view holds no state of its own: it reflects the edges of the
        underlying nodes at the time each method is called.

    Attributes:
        source (Node): Node the traversal starts from.
        reverse (bool): Whether predecessor edges are followed.

    """

    def __init__(self, source: Node, *, reverse: bool = False):
        if not isinstance(source, Node):
            msg = f"DirectedGraph source must be a Node. Received: {type(source)}."
            raise TypeError(msg)
        self.source = source
        self.reverse = reverse

    def _neighbors(self, node: Node) -> tuple[Node, ...]:
        return node.prev_nodes if self.reverse else node.next_nodes

    # ================================================
    # Properties & Dunders
    # ================================================
    @property
    def size(self) -> int:
        """Number of reachable nodes, source included."""
        return sum(1 for _ in self.dfs())

    @property
    def edges(self) -> int:
        """Number of edges between reachable nodes, in traversal direction."""
        return sum(len(self._neighbors(n)) for n in self.dfs())

    def __len__(self) -> int:
        return self.size

    def __contains__(self, node: object) -> bool:
        return any(n is node for n in self.dfs())

    def __repr__(self) -> str:
        return f"DirectedGraph(source='{self.source.label}', reverse={self.reverse})"

    # ================================================
    # Traversal
    # ================================================
    def dfs(self) -> Iterator[Node]:
        """Yield each reachable node once, depth first (pre-order)."""
        visited: set[Node] = set()
        stack = [self.source]
        while stack:
            node = stack.pop()
            if node in visited:
                continue
            visited.add(node)
            yield node
            # Reversed so neighbors are visited in declaration order
            stack.extend(n for n in reversed(self._neighbors(node)) if n not in visited)

    def bfs(self) -> Iterator[Node]:
        """Yield each reachable node once, breadth first."""
        visited: set[Node] = {self.source}
        queue = deque([self.source])
        while queue:
            node = queue.popleft()
            yield node
            for n in self._neighbors(node):
                if n not in visited:
                    visited.add(n)
                    queue.append(n)

    def topology_sort(self) -> list[Node]:
        """
        Order the reachable nodes so every traversed edge points forward.

        Description:
            Depth-first search from `source`; a node is emitted once all of its
            neighbors have been emitted, and the emission order is reversed.
            For every edge ``a -> b`` in traversal direction, ``a`` therefore
            precedes ``b`` and `source` comes first. Iterative, so deep graphs
            do not hit the recursion limit.

        Returns:
            list[Node]: Reachable nodes in topological order.

        Raises:
            CyclicGraphError: If a cycle is reachable from `source`.

        """
        visited: set[Node] = set()
        visiting: set[Node] = {self.source}
        post_order: list[Node] = []
        stack = [(self.source, iter(self._neighbors(self.source)))]

        while stack:
            node, children = stack[-1]
            for child in children:
                if child in visiting:
                    raise CyclicGraphError(node_label=child.label)
                if child not in visited:
                    visiting.add(child)
                    stack.append((child, iter(self._neighbors(child))))
                    break
            else:
                stack.pop()
                visiting.discard(node)
                visited.add(node)
                post_order.append(node)

        post_order.reverse()
        return post_order
