"""Dependency graph over a working set of tables and its processing order.

An edge ``parent -> child`` means the child table holds a foreign key that
references the parent, so the parent's rows must be migrated first.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set

from common.errors import CyclicDependencyError
from schema.foreign_key_def import ForeignKeyEdge

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """Adjacency mapping from each table to the tables that depend on it.

    Every table of the working set has an entry, even with no children.
    """

    children: Dict[str, Set[str]] = field(default_factory=dict)
    edges: List[ForeignKeyEdge] = field(default_factory=list)

    @classmethod
    def from_edges(
        cls, tables: Iterable[str], edges: Iterable[ForeignKeyEdge]
    ) -> "DependencyGraph":
        """Build a graph scoped to ``tables``.

        Edges touching a table outside the working set are dropped, as are
        self-references, which impose no ordering between tables.
        """
        graph = cls(children={table: set() for table in tables})
        for edge in edges:
            if edge.parent_table not in graph.children or edge.child_table not in graph.children:
                continue
            if edge.is_self_reference:
                logger.debug(
                    "Ignoring self-referencing foreign key %s.%s",
                    edge.child_table,
                    edge.child_column,
                )
                continue
            graph.children[edge.parent_table].add(edge.child_table)
            graph.edges.append(edge)
        return graph

    @property
    def tables(self) -> List[str]:
        """Tables of the working set, in insertion order."""
        return list(self.children)


def topological_order(graph: DependencyGraph, tables: Sequence[str]) -> List[str]:
    """Order ``tables`` so every parent precedes each of its children.

    Depth-first post-order from each table in input order; a table is
    prepended to the result once all of its children are finished. Runs on an
    explicit stack, and a child reached while still on the current path
    raises ``CyclicDependencyError`` naming the tables of that cycle.
    """
    order: List[str] = []
    visited: Set[str] = set()

    for root in tables:
        if root in visited:
            continue
        visiting: Set[str] = {root}
        path: List[str] = [root]
        stack = [(root, iter(sorted(graph.children.get(root, ()))))]

        while stack:
            table, pending = stack[-1]
            child = next(pending, None)
            if child is None:
                stack.pop()
                path.pop()
                visiting.discard(table)
                visited.add(table)
                order.insert(0, table)
                continue
            if child in visiting:
                cycle = path[path.index(child):] + [child]
                raise CyclicDependencyError(cycle)
            if child in visited:
                continue
            visiting.add(child)
            path.append(child)
            stack.append((child, iter(sorted(graph.children.get(child, ())))))

    return order
