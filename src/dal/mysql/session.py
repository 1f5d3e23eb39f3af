import asyncio
import logging
import re
import weakref
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import aiomysql

from common.errors import ConnectionAcquireError
from common.sanitization import describe_exception
from dal.connection_config import ConnectionDescriptor
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)

CreatePoolFn = Callable[..., Awaitable[Any]]

_SESSION_VARIABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class MysqlSession:
    """A scoped aiomysql pool for one database.

    The pool is created on first use with ``minsize=0`` and
    ``maxsize=connection_limit``; each query checks one connection out and
    returns it, so concurrent queries run on distinct connections. Session
    variables set through ``set_session_variable`` apply to every connection
    of the pool, including ones opened later.
    """

    def __init__(
        self, descriptor: ConnectionDescriptor, create_pool: Optional[CreatePoolFn] = None
    ):
        """Bind the session to a descriptor; no connection is opened yet."""
        self._descriptor = descriptor
        self._create_pool = create_pool or aiomysql.create_pool
        self._pool = None
        self._pool_lock = asyncio.Lock()
        self._in_use = 0
        self._waiters = 0
        self._closed = False
        self._session_variables: Dict[str, Any] = {}
        self._generation = 0
        self._synced: "weakref.WeakKeyDictionary[Any, int]" = weakref.WeakKeyDictionary()

    @property
    def database(self) -> str:
        """Name of the database this session is bound to."""
        return self._descriptor.database

    @property
    def open_connections(self) -> int:
        """Number of physical connections currently held by the pool."""
        return self._pool.size if self._pool is not None else 0

    def _connect_error(self, exc: Exception) -> ConnectionAcquireError:
        return ConnectionAcquireError(
            f"Could not connect to {self._descriptor.describe()}: {describe_exception(exc)}"
        )

    async def _get_pool(self):
        async with self._pool_lock:
            if self._pool is None:
                try:
                    self._pool = await self._create_pool(
                        minsize=0,
                        maxsize=self._descriptor.connection_limit,
                        cursorclass=aiomysql.DictCursor,
                        **self._descriptor.connect_kwargs(),
                    )
                except Exception as exc:
                    raise self._connect_error(exc) from exc
            return self._pool

    def _must_queue(self) -> bool:
        """Apply the session's waiting rules; True when the caller will wait on the pool."""
        if self._closed:
            raise ConnectionAcquireError("Session is closed.")
        limit = self._descriptor.connection_limit
        if self._in_use < limit:
            return False
        if not self._descriptor.wait_for_connections:
            raise ConnectionAcquireError(
                f"Connection limit {limit} reached for {self._descriptor.describe()}."
            )
        queue_limit = self._descriptor.queue_limit
        if queue_limit and self._waiters >= queue_limit:
            raise ConnectionAcquireError(
                f"Connection queue limit {queue_limit} reached for "
                f"{self._descriptor.describe()}."
            )
        return True

    async def _sync_session_variables(self, conn) -> None:
        if self._synced.get(conn) == self._generation:
            return
        async with conn.cursor() as cursor:
            for name, value in self._session_variables.items():
                await cursor.execute(f"SET {name} = %s", (value,))
        self._synced[conn] = self._generation

    @asynccontextmanager
    async def connection(self):
        """Check out one pooled connection with the current session variables applied."""
        queued = self._must_queue()
        pool = await self._get_pool()
        async with AsyncExitStack() as stack:
            if queued:
                self._waiters += 1
            try:
                conn = await stack.enter_async_context(pool.acquire())
            except Exception as exc:
                raise self._connect_error(exc) from exc
            finally:
                if queued:
                    self._waiters -= 1
            self._in_use += 1
            try:
                await self._sync_session_variables(conn)
                yield conn
            finally:
                self._in_use -= 1

    async def set_session_variable(self, name: str, value: Any) -> None:
        """Set a session variable on every connection of this session.

        The statement runs immediately on one connection so failures surface
        to the caller; other connections pick it up on their next checkout.
        """
        if not _SESSION_VARIABLE_PATTERN.match(name):
            raise ValueError(f"Invalid session variable name: {name!r}")
        missing = object()
        previous = self._session_variables.get(name, missing)
        self._session_variables[name] = value
        self._generation += 1
        try:
            async with self.connection():
                pass
        except Exception:
            if previous is missing:
                self._session_variables.pop(name, None)
            else:
                self._session_variables[name] = previous
            raise

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a statement and return the affected row count."""

        async def _run():
            async with self.connection() as conn:
                async with conn.cursor() as cursor:
                    await cursor.execute(sql, params)
                    return cursor.rowcount

        return await trace_query_operation(
            "dal.query.execute",
            provider="mysql",
            sql=sql,
            operation=_run(),
        )

    async def fetch(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a query and return all rows as dictionaries."""

        async def _run():
            async with self.connection() as conn:
                async with conn.cursor() as cursor:
                    await cursor.execute(sql, params)
                    rows = await cursor.fetchall()
                    return [dict(row) for row in rows]

        return await trace_query_operation(
            "dal.query.fetch",
            provider="mysql",
            sql=sql,
            operation=_run(),
        )

    async def fetchval(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Return the first column of the first row, or None."""
        rows = await self.fetch(sql, params)
        if not rows:
            return None
        return next(iter(rows[0].values()))

    async def close(self) -> None:
        """Close the pool; later checkouts fail with ConnectionAcquireError."""
        self._closed = True
        async with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return
        pool.close()
        await pool.wait_closed()


@asynccontextmanager
async def open_session(
    descriptor: ConnectionDescriptor, create_pool: Optional[CreatePoolFn] = None
):
    """Yield a fresh ``MysqlSession`` and close its pool on exit."""
    session = MysqlSession(descriptor, create_pool=create_pool)
    try:
        yield session
    finally:
        await session.close()
