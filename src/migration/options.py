from enum import Enum
from typing import FrozenSet

from pydantic import BaseModel, Field, field_validator

DEFAULT_CHUNK_SIZE = 1000


class ForeignKeyStrategy(str, Enum):
    """Whether referential-integrity checks are suspended on the target per table."""

    DISABLE = "disable"
    PRESERVE = "preserve"


class MigrationOptions(BaseModel):
    """Options applied identically to every table of a run."""

    truncate_target: bool = True
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    ignore_columns: FrozenSet[str] = frozenset()
    foreign_key_strategy: ForeignKeyStrategy = ForeignKeyStrategy.DISABLE
    dry_run: bool = False

    model_config = {"frozen": True}

    @field_validator("ignore_columns", mode="before")
    @classmethod
    def _normalize_ignore_columns(cls, value):
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(str(column).strip() for column in value if str(column).strip())

    @field_validator("foreign_key_strategy", mode="before")
    @classmethod
    def _normalize_strategy(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value
