from typing import Any, Dict, Mapping, Tuple

from pydantic import BaseModel


class MigrationResult(BaseModel):
    """Outcome of one table's migration attempt."""

    table: str
    success: bool = False
    rows_migrated: int = 0
    errors: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    def to_report(self) -> Dict[str, Any]:
        """Serializable form used by the CLI report."""
        return {
            "table": self.table,
            "success": self.success,
            "rowsMigrated": self.rows_migrated,
            "errors": list(self.errors),
        }


def all_succeeded(results: Mapping[str, MigrationResult]) -> bool:
    """Overall run outcome: every table succeeded."""
    return all(result.success for result in results.values())
