"""Connection descriptors for the source and target databases."""

from typing import Any, Dict

from pydantic import BaseModel, Field, SecretStr, ValidationError

from common.config.env import get_env_int, get_env_str
from common.errors import ConfigError

DEFAULT_MYSQL_PORT = 3306


class ConnectionDescriptor(BaseModel):
    """Opaque connection parameters for one MySQL database.

    ``connect_timeout`` is in seconds. ``queue_limit`` bounds how many callers
    may wait for a free connection; 0 means unbounded.
    """

    host: str
    user: str
    password: SecretStr = SecretStr("")
    database: str
    port: int = Field(default=DEFAULT_MYSQL_PORT, gt=0, lt=65536)
    connection_limit: int = Field(default=10, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    wait_for_connections: bool = True
    queue_limit: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, prefix: str) -> "ConnectionDescriptor":
        """Build a descriptor from ``<PREFIX>_DB_*`` environment variables."""
        prefix = prefix.strip().upper()
        try:
            return cls(
                host=get_env_str(f"{prefix}_DB_HOST", required=True),
                user=get_env_str(f"{prefix}_DB_USER", required=True),
                password=get_env_str(f"{prefix}_DB_PASSWORD", required=True),
                database=get_env_str(f"{prefix}_DB_DATABASE", required=True),
                port=get_env_int(f"{prefix}_DB_PORT", required=True),
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid {prefix} connection settings: {exc}") from exc

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``aiomysql.connect``."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password.get_secret_value(),
            "db": self.database,
            "connect_timeout": self.connect_timeout,
            "autocommit": True,
        }

    def describe(self) -> str:
        """Credential-free label for logs."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"
