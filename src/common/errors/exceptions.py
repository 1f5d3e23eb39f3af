"""Error taxonomy for table migrations.

Table-scoped errors are caught by the per-table engine and recorded into that
table's result. ``ConfigError`` and ``CyclicDependencyError`` are run-scoped:
they abort a run before any table is touched.
"""

from __future__ import annotations

from typing import Iterable, Optional

from common.errors.error_codes import ErrorCode


class MigrationError(Exception):
    """Base class for all migration errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, table: Optional[str] = None) -> None:
        """Attach the affected table (if any) to the error."""
        super().__init__(message)
        self.message = message
        self.table = table


class ConfigError(MigrationError):
    """Raised when run configuration is missing or invalid."""

    code = ErrorCode.CONFIG_ERROR


class ConnectionAcquireError(MigrationError):
    """Raised when a database session cannot be opened or a connection checked out."""

    code = ErrorCode.CONNECTION_ERROR


class SchemaFetchError(MigrationError):
    """Raised when column metadata for a table cannot be read."""

    code = ErrorCode.SCHEMA_FETCH_ERROR


class NoCommonColumnsError(MigrationError):
    """Raised when source and target share no migratable columns."""

    code = ErrorCode.NO_COMMON_COLUMNS


class BackupError(MigrationError):
    """Raised when the target table cannot be snapshotted."""

    code = ErrorCode.BACKUP_ERROR


class TruncateError(MigrationError):
    """Raised when the target table cannot be cleared."""

    code = ErrorCode.TRUNCATE_ERROR


class TransferReadError(MigrationError):
    """Raised when a chunk cannot be read from the source."""

    code = ErrorCode.TRANSFER_READ_ERROR


class TransferWriteError(MigrationError):
    """Raised when a row write to the target fails."""

    code = ErrorCode.TRANSFER_WRITE_ERROR

    def __init__(
        self, message: str, *, table: Optional[str] = None, failed_rows: int = 0
    ) -> None:
        """Record how many writes of the failing chunk were rejected."""
        super().__init__(message, table=table)
        self.failed_rows = failed_rows


class CyclicDependencyError(MigrationError):
    """Raised when foreign keys among the working set form a cycle."""

    code = ErrorCode.CYCLIC_DEPENDENCY

    def __init__(self, tables: Iterable[str]) -> None:
        """Name every table on the detected cycle, in traversal order."""
        self.tables = list(tables)
        super().__init__(
            "Cyclic foreign-key dependency between tables: " + " -> ".join(self.tables)
        )
