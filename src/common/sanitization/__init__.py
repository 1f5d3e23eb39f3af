"""Sanitization utilities."""

from .text import describe_exception, redact_sensitive_info

__all__ = ["describe_exception", "redact_sensitive_info"]
