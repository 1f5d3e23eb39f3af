"""Dependency-ordered table data migration between MySQL databases."""

from migration.errors import (
    BackupError,
    ConfigError,
    CyclicDependencyError,
    MigrationError,
    NoCommonColumnsError,
    SchemaFetchError,
    TransferWriteError,
)
from migration.options import ForeignKeyStrategy, MigrationOptions
from migration.result import MigrationResult, all_succeeded

__all__ = [
    "BackupError",
    "ConfigError",
    "CyclicDependencyError",
    "ForeignKeyStrategy",
    "MigrationError",
    "MigrationOptions",
    "MigrationResult",
    "NoCommonColumnsError",
    "SchemaFetchError",
    "TransferWriteError",
    "all_succeeded",
]
