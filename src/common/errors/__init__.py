"""Shared error taxonomy."""

from common.errors.error_codes import ErrorCode, error_code_for
from common.errors.exceptions import (
    BackupError,
    ConfigError,
    ConnectionAcquireError,
    CyclicDependencyError,
    MigrationError,
    NoCommonColumnsError,
    SchemaFetchError,
    TransferReadError,
    TransferWriteError,
    TruncateError,
)

__all__ = [
    "BackupError",
    "ConfigError",
    "ConnectionAcquireError",
    "CyclicDependencyError",
    "ErrorCode",
    "MigrationError",
    "NoCommonColumnsError",
    "SchemaFetchError",
    "TransferReadError",
    "TransferWriteError",
    "TruncateError",
    "error_code_for",
]
