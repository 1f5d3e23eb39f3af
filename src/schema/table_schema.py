from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

PRIMARY_KEY_ROLE = "PRI"


class ColumnDescriptor(BaseModel):
    """Snapshot of one column's metadata as reported by the database."""

    name: str
    type: str
    nullable: bool
    default_value: Optional[Any] = None
    key_role: str = ""

    model_config = {"frozen": True}


class TableSchema(BaseModel):
    """Column metadata for one table on one connection, keyed by column name.

    Column order follows the table's ordinal order.
    """

    table: str
    columns: Dict[str, ColumnDescriptor] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def column_names(self) -> List[str]:
        """Column names in ordinal order."""
        return list(self.columns)

    @property
    def primary_key(self) -> List[str]:
        """Names of the primary-key columns, in ordinal order."""
        return [
            name for name, column in self.columns.items() if column.key_role == PRIMARY_KEY_ROLE
        ]

    def __contains__(self, name: object) -> bool:
        return name in self.columns

    def common_columns(self, other: "TableSchema", ignore: Iterable[str] = ()) -> List[str]:
        """Columns present in both schemas and not ignored, in this schema's order."""
        ignored = set(ignore)
        return [name for name in self.columns if name in other.columns and name not in ignored]
