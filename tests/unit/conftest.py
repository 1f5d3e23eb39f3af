"""Unit test environment helpers."""

import pytest

from dal.connection_config import ConnectionDescriptor
from tests._support.fake_mysql import FakeMysqlServer


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Keep tracing, metrics, and migration settings out of unit tests."""
    for name in (
        "DAL_TRACE_QUERIES",
        "MIGRATION_METRICS_ENABLED",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
        "MIGRATION_TABLES",
        "TRUNCATE_TARGET",
        "CHUNK_SIZE",
        "IGNORE_COLUMNS",
        "FOREIGN_KEY_STRATEGY",
        "DRY_RUN",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def fake_server():
    """An empty in-memory MySQL server."""
    return FakeMysqlServer()


@pytest.fixture
def source_descriptor():
    return ConnectionDescriptor(
        host="source-db", user="reader", password="s3cret", database="legacy", connection_limit=4
    )


@pytest.fixture
def target_descriptor():
    return ConnectionDescriptor(
        host="target-db", user="writer", password="s3cret", database="modern", connection_limit=4
    )
