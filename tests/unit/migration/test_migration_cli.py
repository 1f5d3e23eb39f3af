import json
import logging
import os
import re

import pytest

from migration import cli
from migration.errors import CyclicDependencyError
from migration.result import MigrationResult


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / "migration.env"
    lines = []
    for prefix in ("SOURCE", "TARGET"):
        lines += [
            f"{prefix}_DB_HOST={prefix.lower()}-db",
            f"{prefix}_DB_USER=app",
            f"{prefix}_DB_PASSWORD=pw",
            f"{prefix}_DB_DATABASE={prefix.lower()}",
            f"{prefix}_DB_PORT=3306",
        ]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def clean_connection_env(monkeypatch):
    for prefix in ("SOURCE", "TARGET"):
        for suffix in ("HOST", "USER", "PASSWORD", "DATABASE", "PORT"):
            monkeypatch.delenv(f"{prefix}_DB_{suffix}", raising=False)
    yield
    # load_dotenv writes straight into os.environ
    for prefix in ("SOURCE", "TARGET"):
        for suffix in ("HOST", "USER", "PASSWORD", "DATABASE", "PORT"):
            os.environ.pop(f"{prefix}_DB_{suffix}", None)


class _StubOrchestrator:
    calls = []
    results = {}
    error = None

    def __init__(self, source, target):
        self.source = source
        self.target = target

    async def run(self, tables, options):
        type(self).calls.append((self.source, self.target, list(tables), options))
        if type(self).error is not None:
            raise type(self).error
        return type(self).results


@pytest.fixture
def stub_orchestrator(monkeypatch):
    _StubOrchestrator.calls = []
    _StubOrchestrator.results = {}
    _StubOrchestrator.error = None
    monkeypatch.setattr(cli, "MigrationOrchestrator", _StubOrchestrator)
    return _StubOrchestrator


def _report(output: str):
    assert output.startswith("Migration Results:")
    return json.loads(output[len("Migration Results:") :])


def test_successful_run_prints_report_and_exits_zero(
    env_file, clean_connection_env, stub_orchestrator, capsys
):
    stub_orchestrator.results = {
        "users": MigrationResult(table="users", success=True, rows_migrated=3),
    }

    code = cli.main(
        ["--env-file", str(env_file), "--no-log-file", "--tables", "users", "--chunk-size", "50"]
    )

    assert code == 0
    source, target, tables, options = stub_orchestrator.calls[0]
    assert source.host == "source-db"
    assert target.database == "target"
    assert tables == ["users"]
    assert options.chunk_size == 50
    assert _report(capsys.readouterr().out) == {
        "users": {"table": "users", "success": True, "rowsMigrated": 3, "errors": []}
    }


def test_any_failed_table_exits_one(env_file, clean_connection_env, stub_orchestrator, capsys):
    stub_orchestrator.results = {
        "users": MigrationResult(table="users", success=True, rows_migrated=3),
        "orders": MigrationResult(
            table="orders", errors=("No common columns found for table orders",)
        ),
    }

    code = cli.main(["--env-file", str(env_file), "--no-log-file", "--dry-run"])

    assert code == 1
    assert stub_orchestrator.calls[0][3].dry_run is True
    report = _report(capsys.readouterr().out)
    assert report["orders"]["success"] is False


def test_cycle_exits_one_without_report(env_file, clean_connection_env, stub_orchestrator, capsys):
    stub_orchestrator.error = CyclicDependencyError(["a", "b", "a"])

    code = cli.main(["--env-file", str(env_file), "--no-log-file"])

    assert code == 1
    assert "Migration Results:" not in capsys.readouterr().out


def test_missing_configuration_exits_one(tmp_path, clean_connection_env, stub_orchestrator):
    empty = tmp_path / "empty.env"
    empty.write_text("")

    assert cli.main(["--env-file", str(empty), "--no-log-file"]) == 1
    assert stub_orchestrator.calls == []


def test_configure_logging_writes_per_run_file(tmp_path):
    log_file = cli.configure_logging(tmp_path / "logs")

    logging.getLogger("migration.test").info("hello from the run log")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert re.fullmatch(r"migration_log_\d{8}_\d{6}\.log", log_file.name)
    assert "hello from the run log" in log_file.read_text(encoding="utf-8")


def test_negated_flags_override_environment(
    env_file, clean_connection_env, stub_orchestrator, monkeypatch
):
    monkeypatch.setenv("TRUNCATE_TARGET", "true")
    monkeypatch.setenv("DRY_RUN", "true")
    stub_orchestrator.results = {"users": MigrationResult(table="users", success=True)}

    code = cli.main(
        ["--env-file", str(env_file), "--no-log-file", "--no-truncate", "--no-dry-run"]
    )

    assert code == 0
    options = stub_orchestrator.calls[0][3]
    assert options.truncate_target is False
    assert options.dry_run is False
