"""Data access layer: connection descriptors, MySQL sessions, and query tracing."""

from dal.connection_config import ConnectionDescriptor

__all__ = ["ConnectionDescriptor"]
