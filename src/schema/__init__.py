"""Canonical table, column, and dependency models."""

from .foreign_key_def import ForeignKeyEdge
from .table_schema import ColumnDescriptor, TableSchema

__all__ = ["ColumnDescriptor", "ForeignKeyEdge", "TableSchema"]
