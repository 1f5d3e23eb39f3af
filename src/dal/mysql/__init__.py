"""MySQL-backed DAL components."""

from .quoting import quote_identifier, quote_identifiers
from .schema_introspector import DependencyGraphBuilder, MysqlSchemaInspector
from .session import MysqlSession, open_session

__all__ = [
    "DependencyGraphBuilder",
    "MysqlSchemaInspector",
    "MysqlSession",
    "open_session",
    "quote_identifier",
    "quote_identifiers",
]
