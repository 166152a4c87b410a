"""Dependency-closed working sets of declarations.

A :class:`Scope` is built fresh for every context render. Capabilities add the
declarations that describe them by pattern, and the scope pulls in everything
those declarations depend on, so the model only sees the types and signatures
relevant to what is offered this turn.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterator, List

from .models import DeclarationNode

if TYPE_CHECKING:
    from .graph import DeclarationGraph


class Scope:
    """A mutable, insertion-ordered set of declarations drawn from a graph.

    Invariant: every node inserted through :meth:`add_by_pattern` has all of
    the nodes reachable through its ``context`` entries present as well.
    Nodes inserted with :meth:`add_node` are taken as they are.
    """

    ANY_KIND = r"\w+"

    @staticmethod
    def ident(pattern: str) -> str:
        """Return a pattern matching ``pattern`` followed by the compiler's uniqueness suffix."""
        return f"{pattern}#\\d+"

    CHILD = r"\w+#\d+"

    def __init__(self, graph: DeclarationGraph) -> None:
        self._graph = graph
        self._current: Dict[str, DeclarationNode] = {}

    @property
    def graph(self) -> DeclarationGraph:
        return self._graph

    def add_by_pattern(self, kind: str, *segments: str) -> int:
        """Add every node matching ``kind`` and the dot-joined ``segments``, with its closure.

        Each segment is a regular expression matched against one dot-separated
        component of the node id. Dependencies are re-split on ``.`` and matched
        against any kind. Nodes already in the scope are skipped, which also
        terminates cycles.

        Returns:
            The number of nodes newly inserted.
        """
        added = 0
        stack: List[Iterator[DeclarationNode]] = [iter(self._graph.find(kind, *segments))]
        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
                continue
            if node.id in self._current:
                continue
            self._current[node.id] = node
            added += 1
            if node.context:
                stack.append(self._dependencies_of(node))
        return added

    def _dependencies_of(self, node: DeclarationNode) -> Iterator[DeclarationNode]:
        for dep in node.context:
            if dep in self._current:
                continue
            yield from self._graph.find(self.ANY_KIND, *dep.split("."))

    def add_node(self, node: DeclarationNode) -> None:
        """Insert ``node`` directly, without resolving its dependencies."""
        self._current[node.id] = node

    def current(self) -> List[DeclarationNode]:
        return list(self._current.values())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._current

    def __len__(self) -> int:
        return len(self._current)

    def __iter__(self) -> Iterator[DeclarationNode]:
        return iter(list(self._current.values()))
