"""Typed environment variable parsing helpers.

Every helper raises ``ConfigError`` (never ``KeyError``/``ValueError``) so the
CLI can map configuration problems to a single pre-run failure.
"""

import os
from typing import List, Optional

from common.errors import ConfigError

_TRUTHY = ("true", "1", "yes", "on")
_FALSEY = ("false", "0", "no", "off", "")


def _missing(name: str) -> ConfigError:
    return ConfigError(f"Missing required environment variable: {name}")


def get_env_str(name: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """Get an environment variable as a string.

    Empty values count as missing for required variables.
    """
    value = os.getenv(name)
    if value is None or (required and not value):
        if required:
            raise _missing(name)
        return default
    return value


def get_env_int(name: str, default: Optional[int] = None, required: bool = False) -> Optional[int]:
    """Get an environment variable as an integer."""
    value = get_env_str(name, required=required)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"Environment variable '{name}' must be an integer, got '{value}'.")


def get_env_bool(
    name: str, default: Optional[bool] = None, required: bool = False
) -> Optional[bool]:
    """Get an environment variable as a boolean.

    Truthy: true, 1, yes, on
    Falsey: false, 0, no, off, (empty string)
    """
    value = os.getenv(name)
    if value is None:
        if required:
            raise _missing(name)
        return default

    val_lower = value.strip().lower()
    if val_lower in _TRUTHY:
        return True
    if val_lower in _FALSEY:
        return False

    raise ConfigError(f"Environment variable '{name}' must be a boolean, got '{value}'.")


def get_env_list(
    name: str, default: Optional[List[str]] = None, required: bool = False, separator: str = ","
) -> Optional[List[str]]:
    """Get a delimited environment variable as a list of trimmed, non-empty strings."""
    value = get_env_str(name, required=required)
    if value is None:
        return default

    return [s.strip() for s in value.split(separator) if s.strip()]
