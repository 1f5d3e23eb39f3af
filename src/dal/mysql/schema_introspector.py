import logging
from typing import List, Sequence

from common.errors import MigrationError, SchemaFetchError
from common.sanitization import describe_exception
from dal.mysql.quoting import quote_identifier
from dal.mysql.session import MysqlSession
from schema import ColumnDescriptor, ForeignKeyEdge, TableSchema
from schema.graph import DependencyGraph

logger = logging.getLogger(__name__)

_REFERENCING_FK_QUERY = """
    SELECT
        TABLE_NAME AS child_table,
        COLUMN_NAME AS child_column,
        REFERENCED_TABLE_NAME AS parent_table,
        REFERENCED_COLUMN_NAME AS parent_column
    FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
    WHERE TABLE_SCHEMA = %s
    AND REFERENCED_TABLE_NAME = %s
"""


class MysqlSchemaInspector:
    """Reads column metadata for a table with ``DESCRIBE``."""

    async def get_schema(self, session: MysqlSession, table: str) -> TableSchema:
        """Return the table's columns; raises SchemaFetchError on any failure."""
        try:
            rows = await session.fetch(f"DESCRIBE {quote_identifier(table)}")
        except Exception as exc:
            raise SchemaFetchError(
                f"Error getting schema for table {table}: {describe_exception(exc)}", table=table
            ) from exc
        if not rows:
            raise SchemaFetchError(
                f"Error getting schema for table {table}: no columns", table=table
            )

        columns = {}
        for row in rows:
            name = row["Field"]
            columns[name] = ColumnDescriptor(
                name=name,
                type=str(row.get("Type") or ""),
                nullable=row.get("Null") == "YES",
                default_value=row.get("Default"),
                key_role=row.get("Key") or "",
            )
        return TableSchema(table=table, columns=columns)


class DependencyGraphBuilder:
    """Builds the foreign-key dependency graph of a working set from the source catalog."""

    async def get_referencing_foreign_keys(
        self, session: MysqlSession, table: str
    ) -> List[ForeignKeyEdge]:
        """Foreign keys in the session's database whose referenced table is ``table``."""
        rows = await session.fetch(_REFERENCING_FK_QUERY, (session.database, table))
        return [
            ForeignKeyEdge(
                child_table=row["child_table"],
                parent_table=row["parent_table"],
                child_column=row["child_column"],
                parent_column=row["parent_column"],
            )
            for row in rows
        ]

    async def build_graph(self, session: MysqlSession, tables: Sequence[str]) -> DependencyGraph:
        """Query each table's referencing keys and keep edges inside the working set."""
        working_set = list(dict.fromkeys(tables))
        edges: List[ForeignKeyEdge] = []
        for table in working_set:
            try:
                edges.extend(await self.get_referencing_foreign_keys(session, table))
            except MigrationError:
                raise
            except Exception as exc:
                raise SchemaFetchError(
                    f"Error reading foreign keys referencing table {table}: "
                    f"{describe_exception(exc)}",
                    table=table,
                ) from exc

        graph = DependencyGraph.from_edges(working_set, edges)
        logger.info(
            "Resolved %d foreign-key dependencies among %d tables",
            len(graph.edges),
            len(working_set),
        )
        return graph
