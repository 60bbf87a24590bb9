"""Session and AsyncSession: logged, timed access to a connection."""

from __future__ import annotations

import logging
import time
from typing import Any, TYPE_CHECKING

from .connection.sync_conn import SyncConnection
from .connection.async_conn import AsyncConnection

if TYPE_CHECKING:
    from .engine import Engine

log = logging.getLogger("dolphinc")


def _preview(script: str | bytes, limit: int = 200) -> str:
    if isinstance(script, (bytes, bytearray)):
        script = bytes(script).decode('utf-8', errors='replace')
    return script if len(script) <= limit else script[:limit] + "..."


class Session:
    """Synchronous session for running scripts on DolphinDB.

    Usage::

        with Session(engine) as session:
            session.run("t = table(1..10 as id)")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._conn: SyncConnection | None = None

    def __enter__(self) -> Session:
        self._conn = self.engine.connect()
        self._conn.open()
        log.debug("Session opened to %s:%s", self.engine.host, self.engine.port)
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
            log.debug("Session closed")

    @property
    def connection(self) -> SyncConnection:
        if self._conn is None:
            raise RuntimeError("Session is not open. Use 'with Session(engine) as s:'")
        return self._conn

    @property
    def session_id(self) -> bytes | None:
        return self.connection.session_id

    def run(self, script: str | bytes) -> None:
        """Execute a script."""
        log.debug("run: %s", _preview(script))
        t0 = time.perf_counter()
        self.connection.run(script)
        elapsed = time.perf_counter() - t0
        log.debug("run completed in %.3fms", elapsed * 1000)

    def login(self, username: str, password: str) -> None:
        """Authenticate the underlying connection."""
        log.debug("login: %s", username)
        t0 = time.perf_counter()
        self.connection.login(username, password)
        elapsed = time.perf_counter() - t0
        log.debug("login completed in %.3fms", elapsed * 1000)


class AsyncSession:
    """Asynchronous session for running scripts on DolphinDB.

    Usage::

        async with AsyncSession(engine) as session:
            await session.run("x = 1")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> AsyncSession:
        self._conn = self.engine.async_connect()
        await self._conn.open()
        log.debug("AsyncSession opened to %s:%s", self.engine.host, self.engine.port)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            log.debug("AsyncSession closed")

    @property
    def connection(self) -> AsyncConnection:
        if self._conn is None:
            raise RuntimeError("AsyncSession is not open")
        return self._conn

    @property
    def session_id(self) -> bytes | None:
        return self.connection.session_id

    async def run(self, script: str | bytes) -> None:
        log.debug("async run: %s", _preview(script))
        t0 = time.perf_counter()
        await self.connection.run(script)
        elapsed = time.perf_counter() - t0
        log.debug("async run completed in %.3fms", elapsed * 1000)

    async def login(self, username: str, password: str) -> None:
        log.debug("async login: %s", username)
        t0 = time.perf_counter()
        await self.connection.login(username, password)
        elapsed = time.perf_counter() - t0
        log.debug("async login completed in %.3fms", elapsed * 1000)
