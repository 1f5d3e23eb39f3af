import logging
import uuid
from typing import Dict, List, Optional, Sequence

from common.observability.context import run_id_var
from dal.connection_config import ConnectionDescriptor
from dal.mysql.schema_introspector import DependencyGraphBuilder
from dal.mysql.session import CreatePoolFn, open_session
from migration.engine import TableMigrationEngine
from migration.options import MigrationOptions
from migration.result import MigrationResult
from schema.graph import topological_order

logger = logging.getLogger(__name__)


class MigrationOrchestrator:
    """Resolves the processing order and migrates tables one at a time.

    A table's failure is recorded in its result and never stops the run.
    ``CyclicDependencyError`` and dependency-graph query failures are raised
    before any table is touched.
    """

    def __init__(
        self,
        source: ConnectionDescriptor,
        target: ConnectionDescriptor,
        *,
        create_pool: Optional[CreatePoolFn] = None,
        graph_builder: Optional[DependencyGraphBuilder] = None,
    ) -> None:
        """Bind source and target descriptors; ``create_pool`` replaces ``aiomysql.create_pool``."""
        self.source = source
        self.target = target
        self._create_pool = create_pool
        self._graph_builder = graph_builder or DependencyGraphBuilder()

    def _open_source(self):
        return open_session(self.source, create_pool=self._create_pool)

    def _open_target(self):
        return open_session(self.target, create_pool=self._create_pool)

    def build_engine(self, options: MigrationOptions) -> TableMigrationEngine:
        """Engine that opens fresh source and target sessions for every table."""
        return TableMigrationEngine(options, self._open_source, self._open_target)

    async def resolve_order(self, tables: Sequence[str]) -> List[str]:
        """Parents-before-children order for the working set, from source foreign keys."""
        async with self._open_source() as session:
            graph = await self._graph_builder.build_graph(session, tables)
        return topological_order(graph, graph.tables)

    async def run(
        self, tables: Sequence[str], options: MigrationOptions
    ) -> Dict[str, MigrationResult]:
        """Migrate ``tables`` sequentially in dependency order; one result per table."""
        if not tables:
            logger.warning("No tables requested; nothing to migrate")
            return {}

        token = run_id_var.set(uuid.uuid4().hex)
        try:
            order = await self.resolve_order(tables)
            logger.info(
                "Migrating %d tables from %s to %s in order: %s",
                len(order),
                self.source.describe(),
                self.target.describe(),
                ", ".join(order),
            )
            if options.dry_run:
                logger.info("[Dry Run] No changes will be made to the target database")

            engine = self.build_engine(options)
            results: Dict[str, MigrationResult] = {}
            for table in order:
                results[table] = await engine.migrate(table)

            succeeded = sum(1 for result in results.values() if result.success)
            logger.info("Migration finished: %d of %d tables succeeded", succeeded, len(results))
            return results
        finally:
            run_id_var.reset(token)
