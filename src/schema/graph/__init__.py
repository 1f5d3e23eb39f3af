"""Foreign-key dependency graph and processing order."""

from .dependency import DependencyGraph, topological_order

__all__ = ["DependencyGraph", "topological_order"]
