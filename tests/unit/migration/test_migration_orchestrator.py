import pytest
from pymysql.err import OperationalError

from migration.errors import CyclicDependencyError, SchemaFetchError
from migration.options import MigrationOptions
from migration.orchestrator import MigrationOrchestrator
from tests._support.fake_mysql import FakeColumn

ID_ONLY = [FakeColumn("id", nullable=False, key="PRI")]


@pytest.fixture
def orchestrator(fake_server, source_descriptor, target_descriptor):
    return MigrationOrchestrator(
        source_descriptor, target_descriptor, create_pool=fake_server.create_pool
    )


def _create_everywhere(fake_server, name, columns, rows):
    fake_server.database("legacy").create_table(name, columns, rows)
    fake_server.database("modern").create_table(name, columns)


@pytest.mark.asyncio
async def test_parents_are_migrated_before_children(fake_server, orchestrator):
    order_columns = ID_ONLY + [FakeColumn("user_id", key="MUL")]
    _create_everywhere(fake_server, "users", ID_ONLY, [{"id": 1}, {"id": 2}])
    _create_everywhere(fake_server, "orders", order_columns, [{"id": 10, "user_id": 1}])
    fake_server.database("legacy").add_foreign_key("orders", "user_id", "users", "id")
    fake_server.database("modern").add_foreign_key("orders", "user_id", "users", "id")

    results = await orchestrator.run(
        ["orders", "users"], MigrationOptions(foreign_key_strategy="preserve")
    )

    assert list(results) == ["users", "orders"]
    assert all(result.success for result in results.values())
    assert results["users"].rows_migrated == 2
    assert results["orders"].rows_migrated == 1


@pytest.mark.asyncio
async def test_one_failing_table_does_not_stop_the_run(fake_server, orchestrator):
    for name in ("alpha", "gamma"):
        _create_everywhere(fake_server, name, ID_ONLY, [{"id": 1}, {"id": 2}, {"id": 3}])
    fake_server.database("legacy").create_table("beta", ID_ONLY, [{"id": 1}])

    results = await orchestrator.run(["alpha", "beta", "gamma"], MigrationOptions())

    assert set(results) == {"alpha", "beta", "gamma"}
    assert results["alpha"].success and results["alpha"].rows_migrated == 3
    assert results["gamma"].success and results["gamma"].rows_migrated == 3
    assert results["beta"].success is False
    assert results["beta"].rows_migrated == 0
    assert results["beta"].errors[0].startswith("Error getting schema for table beta")
    assert fake_server.open_connections == []


@pytest.mark.asyncio
async def test_cycle_aborts_before_any_table_is_touched(fake_server, orchestrator):
    _create_everywhere(fake_server, "a", ID_ONLY, [{"id": 1}])
    _create_everywhere(fake_server, "b", ID_ONLY, [{"id": 1}])
    source = fake_server.database("legacy")
    source.add_foreign_key("a", "b_id", "b", "id")
    source.add_foreign_key("b", "a_id", "a", "id")

    with pytest.raises(CyclicDependencyError) as excinfo:
        await orchestrator.run(["a", "b"], MigrationOptions())

    assert set(excinfo.value.tables) == {"a", "b"}
    assert fake_server.database("modern").statements == []
    assert all("KEY_COLUMN_USAGE" in stmt for stmt in source.statements)


@pytest.mark.asyncio
async def test_graph_query_failure_aborts_run(fake_server, orchestrator):
    _create_everywhere(fake_server, "users", ID_ONLY, [{"id": 1}])
    fake_server.database("legacy").fail_on(
        "KEY_COLUMN_USAGE", lambda: OperationalError(2013, "Lost connection")
    )

    with pytest.raises(SchemaFetchError):
        await orchestrator.run(["users"], MigrationOptions())

    assert fake_server.database("modern").statements == []


@pytest.mark.asyncio
async def test_empty_working_set_returns_no_results(fake_server, orchestrator):
    assert await orchestrator.run([], MigrationOptions()) == {}
    assert fake_server.connections == []


@pytest.mark.asyncio
async def test_duplicate_tables_are_migrated_once(fake_server, orchestrator):
    _create_everywhere(fake_server, "users", ID_ONLY, [{"id": 1}])

    results = await orchestrator.run(["users", "users"], MigrationOptions())

    assert list(results) == ["users"]
    assert results["users"].rows_migrated == 1
