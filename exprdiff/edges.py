"""Undirected edges between nodes, used to find nonlinear interactions."""

from __future__ import annotations

from collections import deque
from typing import Any, Iterator


class Edge:
    """An undirected pair of nodes compared by identity."""

    __slots__ = ("a", "b")

    def __init__(self, a: Any, b: Any) -> None:
        self.a = a
        self.b = b

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return (other.a is self.a and other.b is self.b) or (
            other.a is self.b and other.b is self.a
        )

    def __hash__(self) -> int:
        return hash(frozenset((id(self.a), id(self.b))))

    def __str__(self) -> str:
        return (
            f"{self.a.to_string(0)}|{id(self.a):#x} ----- "
            f"{self.b.to_string(0)}|{id(self.b):#x}\n"
        )

    def __repr__(self) -> str:
        return f"Edge({self.a!r}, {self.b!r})"


class EdgeSet:
    """An ordered collection of distinct undirected edges; new edges go to the front."""

    def __init__(self) -> None:
        self._edges: deque[Edge] = deque()

    def insert(self, edge: Edge) -> None:
        """Add an edge at the front unless an equal edge is already present."""
        if edge not in self:
            self._edges.appendleft(edge)

    def __contains__(self, edge: object) -> bool:
        return any(existing == edge for existing in self._edges)

    def remove(self, edge: Edge) -> None:
        """Remove the edge equal to ``edge``; raises ValueError if absent."""
        self._edges.remove(edge)

    def num_self_edges(self) -> int:
        """Count the edges whose two ends are the same node."""
        return sum(1 for e in self._edges if e.a is e.b)

    def clear(self) -> None:
        self._edges.clear()

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[Edge]:
        return iter(self._edges)

    def __str__(self) -> str:
        return "".join(f"{edge}\n" for edge in self._edges)