"""Run configuration assembled once from the environment and passed explicitly."""

from typing import List

from pydantic import BaseModel, Field, ValidationError

from common.config.env import get_env_bool, get_env_int, get_env_list, get_env_str
from dal.connection_config import ConnectionDescriptor
from migration.errors import ConfigError
from migration.options import DEFAULT_CHUNK_SIZE, MigrationOptions

DEFAULT_TABLES = ["users", "products"]


class MigrationConfig(BaseModel):
    """Source, target, working set, and options for one run."""

    source: ConnectionDescriptor
    target: ConnectionDescriptor
    tables: List[str] = Field(default_factory=lambda: list(DEFAULT_TABLES))
    options: MigrationOptions = Field(default_factory=MigrationOptions)

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls) -> "MigrationConfig":
        """Read ``SOURCE_DB_*``, ``TARGET_DB_*`` and the migration settings.

        Raises:
            ConfigError: If a required variable is missing or a value is invalid.
        """
        source = ConnectionDescriptor.from_env("SOURCE")
        target = ConnectionDescriptor.from_env("TARGET")
        tables = get_env_list("MIGRATION_TABLES") or list(DEFAULT_TABLES)
        try:
            options = MigrationOptions(
                truncate_target=get_env_bool("TRUNCATE_TARGET", False),
                chunk_size=get_env_int("CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
                ignore_columns=get_env_list("IGNORE_COLUMNS", []),
                foreign_key_strategy=get_env_str("FOREIGN_KEY_STRATEGY", "disable"),
                dry_run=get_env_bool("DRY_RUN", False),
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid migration options: {exc}") from exc
        return cls(source=source, target=target, tables=tables, options=options)

    def with_overrides(self, **overrides) -> "MigrationConfig":
        """Copy with option fields replaced; ``tables`` is accepted too."""
        tables = overrides.pop("tables", None) or self.tables
        updates = {key: value for key, value in overrides.items() if value is not None}
        try:
            options = MigrationOptions(**{**self.options.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(f"Invalid migration options: {exc}") from exc
        return self.model_copy(update={"tables": list(tables), "options": options})
