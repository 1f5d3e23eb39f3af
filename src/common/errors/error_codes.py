"""Canonical error codes for migration failures."""

from enum import Enum


class ErrorCode(str, Enum):
    """Bounded canonical error codes for results, spans, and metrics."""

    CONFIG_ERROR = "CONFIG_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SCHEMA_FETCH_ERROR = "SCHEMA_FETCH_ERROR"
    NO_COMMON_COLUMNS = "NO_COMMON_COLUMNS"
    BACKUP_ERROR = "BACKUP_ERROR"
    TRUNCATE_ERROR = "TRUNCATE_ERROR"
    TRANSFER_READ_ERROR = "TRANSFER_READ_ERROR"
    TRANSFER_WRITE_ERROR = "TRANSFER_WRITE_ERROR"
    CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_code_for(exc: BaseException) -> ErrorCode:
    """Code carried by ``exc``, or ``INTERNAL_ERROR`` for anything unexpected."""
    code = getattr(exc, "code", None)
    return code if isinstance(code, ErrorCode) else ErrorCode.INTERNAL_ERROR
