import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Sequence

from common.sanitization import describe_exception
from dal.mysql.quoting import quote_identifier, quote_identifiers
from dal.mysql.session import MysqlSession
from migration.errors import NoCommonColumnsError, TransferReadError, TransferWriteError
from schema import TableSchema

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def common_columns(
    source: TableSchema, target: TableSchema, ignore_columns: Iterable[str] = ()
) -> List[str]:
    """Columns present on both sides minus ignored ones, in source order."""
    columns = source.common_columns(target, ignore=ignore_columns)
    if not columns:
        raise NoCommonColumnsError(
            f"No common columns found for table {source.table}", table=source.table
        )
    return columns


def stable_sort_key(source: TableSchema, columns: Sequence[str]) -> List[str]:
    """Primary-key columns usable for a deterministic paginated read, if any."""
    primary_key = source.primary_key
    if primary_key and all(column in columns for column in primary_key):
        return primary_key
    return []


def build_select_chunk_sql(table: str, columns: Sequence[str], order_by: Sequence[str] = ()) -> str:
    sql = f"SELECT {quote_identifiers(columns)} FROM {quote_identifier(table)}"
    if order_by:
        sql += f" ORDER BY {quote_identifiers(order_by)}"
    return sql + " LIMIT %s OFFSET %s"


def build_insert_sql(table: str, columns: Sequence[str]) -> str:
    placeholders = ", ".join(["%s"] * len(columns))
    return (
        f"INSERT INTO {quote_identifier(table)} ({quote_identifiers(columns)}) "
        f"VALUES ({placeholders})"
    )


class ChunkedTransfer:
    """Copies rows from source to target in bounded, sequential chunks.

    Rows of one chunk are written concurrently, one statement per row, and the
    next chunk is read only after every write of the current one has finished.
    In dry-run mode chunks are read and counted but nothing is written.
    """

    def __init__(self, chunk_size: int, dry_run: bool = False) -> None:
        """Configure batch size and dry-run mode."""
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be a positive integer, got {chunk_size}")
        self.chunk_size = chunk_size
        self.dry_run = dry_run

    async def _read_chunk(
        self, source: MysqlSession, table: str, sql: str, offset: int
    ) -> List[dict]:
        try:
            return await source.fetch(sql, (self.chunk_size, offset))
        except Exception as exc:
            raise TransferReadError(
                f"Error reading rows from table {table} at offset {offset}: "
                f"{describe_exception(exc)}",
                table=table,
            ) from exc

    async def _write_chunk(
        self,
        target: MysqlSession,
        table: str,
        sql: str,
        columns: Sequence[str],
        rows: List[dict],
        offset: int,
    ) -> None:
        outcomes = await asyncio.gather(
            *(target.execute(sql, [row[column] for column in columns]) for row in rows),
            return_exceptions=True,
        )
        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if not failures:
            return
        for failure in failures:
            if not isinstance(failure, Exception):
                raise failure
        first = failures[0]
        raise TransferWriteError(
            f"Error writing rows to table {table} in chunk at offset {offset} "
            f"({len(failures)} of {len(rows)} rows failed): {describe_exception(first)}",
            table=table,
            failed_rows=len(failures),
        ) from first

    async def transfer(
        self,
        source: MysqlSession,
        target: MysqlSession,
        table: str,
        columns: Sequence[str],
        *,
        order_by: Sequence[str] = (),
        on_chunk: Optional[ProgressCallback] = None,
    ) -> int:
        """Copy every source row of ``table`` and return the number of rows migrated."""
        if not columns:
            raise NoCommonColumnsError(f"No common columns found for table {table}", table=table)

        select_sql = build_select_chunk_sql(table, columns, order_by)
        insert_sql = build_insert_sql(table, columns)
        rows_migrated = 0
        offset = 0

        while True:
            rows = await self._read_chunk(source, table, select_sql, offset)
            if not rows:
                break

            if self.dry_run:
                logger.info("[Dry Run] Would migrate %d rows for table %s", len(rows), table)
            else:
                await self._write_chunk(target, table, insert_sql, columns, rows, offset)

            rows_migrated += len(rows)
            offset += self.chunk_size
            if on_chunk is not None:
                on_chunk(len(rows))
            logger.info("Migrated %d rows for table %s", rows_migrated, table)

        return rows_migrated
