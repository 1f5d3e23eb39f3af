from pydantic import BaseModel


class ForeignKeyEdge(BaseModel):
    """A foreign key from a child table column to a parent table column."""

    child_table: str
    parent_table: str
    child_column: str
    parent_column: str

    model_config = {"frozen": True}

    @property
    def is_self_reference(self) -> bool:
        """Return True when the table references itself."""
        return self.child_table == self.parent_table
