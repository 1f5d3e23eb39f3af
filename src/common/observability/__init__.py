"""Shared observability helpers."""

from common.observability.metrics import migration_metrics, record_table_outcome

__all__ = ["migration_metrics", "record_table_outcome"]
