import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from common.sanitization import describe_exception
from dal.mysql.quoting import quote_identifier
from dal.mysql.session import MysqlSession
from migration.errors import BackupError

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"
MAX_NAME_ATTEMPTS = 100

_TABLE_EXISTS_QUERY = """
    SELECT COUNT(*) AS table_count
    FROM information_schema.tables
    WHERE table_schema = %s
    AND table_name = %s
"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def backup_table_name(table: str, now: datetime) -> str:
    """``<table>_backup_<YYYYMMDDTHHMMSS>`` at second resolution."""
    return f"{table}_backup_{now.strftime(BACKUP_TIMESTAMP_FORMAT)}"


class BackupController:
    """Snapshots a target table into a new, uniquely named table before mutation."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        """Use ``clock`` for the backup timestamp (UTC now by default)."""
        self._clock = clock or _utc_now

    async def _table_exists(self, target: MysqlSession, name: str) -> bool:
        count = await target.fetchval(_TABLE_EXISTS_QUERY, (target.database, name))
        return bool(count)

    async def _available_name(self, target: MysqlSession, table: str) -> str:
        base = backup_table_name(table, self._clock())
        candidate = base
        for attempt in range(1, MAX_NAME_ATTEMPTS + 1):
            if not await self._table_exists(target, candidate):
                return candidate
            candidate = f"{base}_{attempt}"
        raise BackupError(
            f"Error creating backup for table {table}: no free backup name after "
            f"{MAX_NAME_ATTEMPTS} attempts",
            table=table,
        )

    async def backup(self, target: MysqlSession, table: str) -> str:
        """Copy structure and rows of ``table`` on the target; return the backup table name."""
        try:
            name = await self._available_name(target, table)
            await target.execute(
                f"CREATE TABLE {quote_identifier(name)} LIKE {quote_identifier(table)}"
            )
            await target.execute(
                f"INSERT INTO {quote_identifier(name)} SELECT * FROM {quote_identifier(table)}"
            )
        except BackupError:
            raise
        except Exception as exc:
            raise BackupError(
                f"Error creating backup for table {table}: {describe_exception(exc)}", table=table
            ) from exc

        logger.info("Created backup table: %s", name)
        return name
