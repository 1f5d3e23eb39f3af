"""Per-table migration state machine.

States run in order ``INIT -> SCHEMA_COMPARE -> BACKUP -> TRUNCATE -> TRANSFER
-> SUCCESS``; any state may move to ``FAILED``. Backup and truncation are
skipped in dry runs, truncation also when ``truncate_target`` is off. The
foreign-key policy's ``after_table`` hook and the release of both sessions run
on every exit path.
"""

import logging
from contextlib import AsyncExitStack
from enum import Enum
from typing import AsyncContextManager, Callable, List, Optional

from common.observability.context import table_var
from common.observability.metrics import record_table_outcome
from common.sanitization import describe_exception
from dal.mysql.quoting import quote_identifier
from dal.mysql.schema_introspector import MysqlSchemaInspector
from dal.mysql.session import MysqlSession
from dal.tracing import trace_span
from migration.backup import BackupController
from migration.errors import ErrorCode, MigrationError, TruncateError, error_code_for
from migration.foreign_keys import ForeignKeyPolicy, foreign_key_policy_for
from migration.options import MigrationOptions
from migration.result import MigrationResult
from migration.transfer import ChunkedTransfer, common_columns, stable_sort_key

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[MysqlSession]]


class MigrationState(str, Enum):
    """States of one table's migration attempt."""

    INIT = "init"
    SCHEMA_COMPARE = "schema_compare"
    BACKUP = "backup"
    TRUNCATE = "truncate"
    TRANSFER = "transfer"
    SUCCESS = "success"
    FAILED = "failed"


class _TableAttempt:
    """Mutable bookkeeping for one attempt; frozen into a MigrationResult once."""

    def __init__(self, table: str) -> None:
        self.table = table
        self.state = MigrationState.INIT
        self.rows_migrated = 0
        self.errors: List[str] = []
        self.failed_in: Optional[MigrationState] = None
        self.error_code: Optional[ErrorCode] = None

    def enter(self, state: MigrationState) -> None:
        logger.debug("Table %s: %s -> %s", self.table, self.state.value, state.value)
        self.state = state

    def add_rows(self, count: int) -> None:
        self.rows_migrated += count

    def fail(self, exc: Exception) -> str:
        if isinstance(exc, MigrationError):
            message = describe_exception(exc)
        else:
            message = f"{exc.__class__.__name__}: {describe_exception(exc)}"
        self.errors.append(message)
        if self.failed_in is None:
            self.failed_in = self.state
            self.error_code = error_code_for(exc)
        self.state = MigrationState.FAILED
        return message

    def finalize(self) -> MigrationResult:
        return MigrationResult(
            table=self.table,
            success=self.state is MigrationState.SUCCESS,
            rows_migrated=self.rows_migrated,
            errors=tuple(self.errors),
        )


class TableMigrationEngine:
    """Migrates one table at a time and always returns a MigrationResult."""

    def __init__(
        self,
        options: MigrationOptions,
        open_source: SessionFactory,
        open_target: SessionFactory,
        *,
        inspector: Optional[MysqlSchemaInspector] = None,
        backup: Optional[BackupController] = None,
        foreign_key_policy: Optional[ForeignKeyPolicy] = None,
        transfer: Optional[ChunkedTransfer] = None,
    ) -> None:
        """Wire collaborators; defaults are derived from ``options``."""
        self.options = options
        self._open_source = open_source
        self._open_target = open_target
        self._inspector = inspector or MysqlSchemaInspector()
        self._backup = backup or BackupController()
        self._foreign_key_policy = foreign_key_policy or foreign_key_policy_for(options)
        self._transfer = transfer or ChunkedTransfer(options.chunk_size, dry_run=options.dry_run)

    async def migrate(self, table: str) -> MigrationResult:
        """Run the state machine for ``table`` on fresh sessions."""
        attempt = _TableAttempt(table)
        token = table_var.set(table)
        try:
            with trace_span("migration.table", {"migration.table": table}) as span:
                try:
                    async with AsyncExitStack() as stack:
                        source = await stack.enter_async_context(self._open_source())
                        target = await stack.enter_async_context(self._open_target())
                        await self._run(attempt, source, target)
                except Exception as exc:
                    message = attempt.fail(exc)
                    logger.error("Migration failed for table %s: %s", table, message)

                span.set_attribute("migration.state", attempt.state.value)
                span.set_attribute("migration.rows_migrated", attempt.rows_migrated)
                if attempt.failed_in is not None:
                    span.set_attribute("migration.failed_state", attempt.failed_in.value)
                    span.set_attribute("migration.error_code", attempt.error_code.value)
        finally:
            table_var.reset(token)

        result = attempt.finalize()
        record_table_outcome(
            result.success,
            result.rows_migrated,
            self.options.dry_run,
            error_code=attempt.error_code.value if attempt.error_code else None,
        )
        return result

    async def _run(self, attempt: _TableAttempt, source: MysqlSession, target: MysqlSession):
        table = attempt.table
        options = self.options
        try:
            await self._foreign_key_policy.before_table(target, table)

            attempt.enter(MigrationState.SCHEMA_COMPARE)
            source_schema = await self._inspector.get_schema(source, table)
            target_schema = await self._inspector.get_schema(target, table)
            columns = common_columns(source_schema, target_schema, options.ignore_columns)
            order_by = stable_sort_key(source_schema, columns)
            if not order_by:
                logger.warning(
                    "Table %s has no usable primary key; chunk membership is not stable "
                    "if the source changes during migration",
                    table,
                )

            if not options.dry_run:
                attempt.enter(MigrationState.BACKUP)
                await self._backup.backup(target, table)

                if options.truncate_target:
                    attempt.enter(MigrationState.TRUNCATE)
                    await self._truncate(target, table)

            attempt.enter(MigrationState.TRANSFER)
            await self._transfer.transfer(
                source,
                target,
                table,
                columns,
                order_by=order_by,
                on_chunk=attempt.add_rows,
            )

            attempt.enter(MigrationState.SUCCESS)
            logger.info(
                "Successfully migrated %d rows for table %s", attempt.rows_migrated, table
            )
        except Exception as exc:
            message = attempt.fail(exc)
            logger.error("Migration failed for table %s: %s", table, message)
        finally:
            await self._foreign_key_policy.after_table(target, table)

    async def _truncate(self, target: MysqlSession, table: str) -> None:
        try:
            await target.execute(f"TRUNCATE TABLE {quote_identifier(table)}")
        except Exception as exc:
            raise TruncateError(
                f"Error truncating table {table}: {describe_exception(exc)}", table=table
            ) from exc
        logger.info("Truncated target table: %s", table)
