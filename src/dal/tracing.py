import hashlib
from contextlib import contextmanager
from typing import Any, Awaitable, Dict, Iterator, Optional

from common.observability.context import run_id_var, table_var
from common.observability.metrics import is_metrics_enabled


def trace_enabled() -> bool:
    """Return True when DAL query tracing is enabled or OTEL exporter defaults apply."""
    return is_metrics_enabled("DAL_TRACE_QUERIES")


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


def _attach_context(span) -> None:
    run_id = run_id_var.get()
    if run_id:
        span.set_attribute("run_id", run_id)
    table = table_var.get()
    if table:
        span.set_attribute("migration.table", table)


async def trace_query_operation(
    name: str,
    provider: str,
    sql: Optional[str],
    operation: Awaitable,
):
    """Trace a DAL query operation with OTEL when enabled."""
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("dal")
    with tracer.start_as_current_span(name) as span:
        _attach_context(span)
        span.set_attribute("db.provider", provider)
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise


class _NoopSpan:
    def set_attribute(self, key: str, value: Any) -> None:
        _ = (key, value)


@contextmanager
def trace_span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[Any]:
    """Open a span for a coarse unit of work, or a no-op stand-in when tracing is off."""
    if not trace_enabled():
        yield _NoopSpan()
        return

    from opentelemetry import trace

    tracer = trace.get_tracer("migration")
    with tracer.start_as_current_span(name) as span:
        _attach_context(span)
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)
        yield span
