"""Migration errors; the classes live in ``common.errors`` so lower layers can raise them."""

from common.errors import (  # noqa: F401
    BackupError,
    ConfigError,
    ConnectionAcquireError,
    CyclicDependencyError,
    ErrorCode,
    MigrationError,
    NoCommonColumnsError,
    SchemaFetchError,
    TransferReadError,
    TransferWriteError,
    TruncateError,
    error_code_for,
)
