"""Foreign-key enforcement policies applied around each table's migration."""

import logging

from common.sanitization import describe_exception
from dal.mysql.session import MysqlSession
from migration.options import ForeignKeyStrategy, MigrationOptions

logger = logging.getLogger(__name__)

FOREIGN_KEY_CHECKS = "FOREIGN_KEY_CHECKS"


async def disable_foreign_key_checks(target: MysqlSession) -> None:
    """Suspend referential-integrity enforcement for the target session."""
    await target.set_session_variable(FOREIGN_KEY_CHECKS, 0)


async def enable_foreign_key_checks(target: MysqlSession) -> None:
    """Restore referential-integrity enforcement for the target session."""
    await target.set_session_variable(FOREIGN_KEY_CHECKS, 1)


class ForeignKeyPolicy:
    """Hooks run before and after each table; ``after_table`` never raises."""

    strategy: ForeignKeyStrategy

    async def before_table(self, target: MysqlSession, table: str) -> None:
        raise NotImplementedError

    async def after_table(self, target: MysqlSession, table: str) -> None:
        raise NotImplementedError


class DisableForeignKeyChecks(ForeignKeyPolicy):
    """Turn checks off for the table's migration and back on afterwards."""

    strategy = ForeignKeyStrategy.DISABLE

    async def before_table(self, target: MysqlSession, table: str) -> None:
        await disable_foreign_key_checks(target)
        logger.debug("Disabled foreign key checks for table %s", table)

    async def after_table(self, target: MysqlSession, table: str) -> None:
        try:
            await enable_foreign_key_checks(target)
        except Exception as exc:
            logger.error(
                "Error re-enabling foreign key checks for table %s: %s",
                table,
                describe_exception(exc),
            )


class PreserveForeignKeyChecks(ForeignKeyPolicy):
    """Leave enforcement untouched."""

    strategy = ForeignKeyStrategy.PRESERVE

    async def before_table(self, target: MysqlSession, table: str) -> None:
        return None

    async def after_table(self, target: MysqlSession, table: str) -> None:
        return None


def foreign_key_policy_for(options: MigrationOptions) -> ForeignKeyPolicy:
    """Select the policy for a run; dry runs never touch enforcement."""
    if options.dry_run or options.foreign_key_strategy is ForeignKeyStrategy.PRESERVE:
        return PreserveForeignKeyChecks()
    return DisableForeignKeyChecks()
