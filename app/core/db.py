"""Database connection and session management.

``DatabaseManager`` owns the process-wide async engine. It moves through a
small state machine::

    DISCONNECTED -> CONNECTING -> CONNECTED
                              \\-> ERROR -> (scheduled retry) -> CONNECTING
    CONNECTED -> DISCONNECTED  (close, or a driver disconnect which re-enters
                                the reconnect cycle)

Failed connection attempts are retried in the background with exponential
backoff; the retry counter wraps after ``max_attempts`` so retrying never
stops while the manager is open.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from prometheus_client import Gauge
from sqlalchemy import event, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.config import Settings, settings
from app.core.errors import NotPrimaryError, ServiceUnavailableError
from app.database.base import Base

logger: logging.Logger = logging.getLogger("app.core.db")

DATABASE_CONNECTED = Gauge(
    "app_database_connected",
    "Whether the database connection is currently established",
)

RECONNECT_ERRORS = (SQLAlchemyError, OSError, ConnectionError)


class ConnectionState(str, Enum):
    """Lifecycle states of the database connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


def backoff_delay(
    retry_count: int, initial_delay: float, factor: float, max_delay: float
) -> float:
    """Compute the wait before the next reconnect attempt.

    Args:
        retry_count: Number of consecutive failed attempts so far
        initial_delay: Delay before the first retry, in seconds
        factor: Multiplier applied per failed attempt
        max_delay: Upper bound for the delay, in seconds

    Returns:
        ``min(initial_delay * factor ** retry_count, max_delay)``
    """
    return min(initial_delay * factor**retry_count, max_delay)


def normalize_database_url(database_url: str) -> str:
    """Select async drivers for plain PostgreSQL and SQLite URLs."""
    if database_url.startswith("postgresql+psycopg2://"):
        return database_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def configured_hosts(url: URL) -> list[str]:
    """List the hosts a URL points at, including libpq-style multi-host lists."""
    hosts: list[str] = []
    if url.host:
        hosts.append(f"{url.host}:{url.port}" if url.port else url.host)
    extra = url.query.get("host")
    if extra:
        values = extra if isinstance(extra, tuple) else tuple(extra.split(","))
        hosts.extend(value for value in values if value)
    return hosts


class DatabaseManager:
    """Supervises the single database connection for the process."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 10,
        echo: bool = False,
        create_schema: bool = False,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        factor: float = 2.0,
        max_attempts: int = 5,
    ) -> None:
        self.url = make_url(normalize_database_url(database_url))
        self.pool_size = pool_size
        self.echo = echo
        self.create_schema = create_schema
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.factor = factor
        self.max_attempts = max_attempts

        self.retry_count = 0
        self._state = ConnectionState.DISCONNECTED
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closing = False

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "DatabaseManager":
        """Build a manager from application settings."""
        return cls(
            config.DATABASE_URL,
            pool_size=config.MAX_CONNECTIONS,
            echo=config.DB_ECHO,
            create_schema=config.DB_CREATE_SCHEMA,
            initial_delay=config.DB_RECONNECT_INITIAL_DELAY,
            max_delay=config.DB_RECONNECT_MAX_DELAY,
            factor=config.DB_RECONNECT_FACTOR,
            max_attempts=config.DB_RECONNECT_MAX_ATTEMPTS,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ServiceUnavailableError("Database is not connected")
        return self._engine

    @property
    def hosts(self) -> list[str]:
        return configured_hosts(self.url)

    def _set_state(self, state: ConnectionState) -> None:
        if state != self._state:
            logger.info(f"Database state {self._state.value} -> {state.value}")
        self._state = state
        DATABASE_CONNECTED.set(1 if state == ConnectionState.CONNECTED else 0)

    def next_delay(self) -> float:
        """Delay before the next reconnect attempt."""
        return backoff_delay(
            self.retry_count, self.initial_delay, self.factor, self.max_delay
        )

    def _engine_kwargs(self) -> dict[str, Any]:
        if self.url.get_backend_name() == "sqlite":
            kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
            if self.url.database in (None, "", ":memory:"):
                # One shared connection keeps an in-memory database alive
                kwargs["poolclass"] = StaticPool
            return kwargs
        return {
            "pool_size": self.pool_size,
            "max_overflow": 0,
            "pool_pre_ping": True,
        }

    def _create_engine(self) -> AsyncEngine:
        engine = create_async_engine(self.url, echo=self.echo, **self._engine_kwargs())
        event.listen(engine.sync_engine, "handle_error", self._on_engine_error)
        return engine

    def _on_engine_error(self, context: Any) -> None:
        if context.is_disconnect and self._loop is not None:
            self._loop.call_soon(self._handle_disconnect)

    def _handle_disconnect(self) -> None:
        if self._state != ConnectionState.CONNECTED or self._closing:
            return
        logger.warning("Database connection lost, scheduling reconnect")
        self._set_state(ConnectionState.DISCONNECTED)
        self._schedule_reconnect()

    async def _connect(self) -> None:
        if self._engine is None:
            self._engine = self._create_engine()
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        if self.create_schema:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def initialize(self) -> ConnectionState:
        """Connect to the database.

        Calling this while connecting or connected is a no-op. A failed
        attempt leaves the manager in ``ERROR`` with a reconnect scheduled.

        Returns:
            The state after the attempt
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return self._state

        self._closing = False
        self._loop = asyncio.get_running_loop()
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self._connect()
        except RECONNECT_ERRORS as e:
            logger.error(f"Database initialization failed: {e}")
            self._set_state(ConnectionState.ERROR)
            self._schedule_reconnect()
            return self._state

        await self._cancel_reconnect()
        self.retry_count = 0
        self._set_state(ConnectionState.CONNECTED)
        return self._state

    def _schedule_reconnect(self) -> None:
        if self._closing:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        loop = self._loop or asyncio.get_running_loop()
        self._reconnect_task = loop.create_task(self._reconnect_loop())

    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _reconnect_loop(self) -> None:
        while not self._closing:
            if self._state is ConnectionState.CONNECTED:
                return
            delay = self.next_delay()
            logger.warning(
                f"Reconnecting to database in {delay:.1f}s "
                f"(attempt {self.retry_count + 1}/{self.max_attempts})"
            )
            await asyncio.sleep(delay)
            if self._closing or self._state is ConnectionState.CONNECTED:
                return

            self._set_state(ConnectionState.CONNECTING)
            try:
                await self._connect()
            except RECONNECT_ERRORS as e:
                self._set_state(ConnectionState.ERROR)
                self.retry_count += 1
                if self.retry_count >= self.max_attempts:
                    logger.error(
                        f"Database still unreachable after {self.max_attempts} "
                        f"attempts: {e}; restarting backoff"
                    )
                    self.retry_count = 0
                else:
                    logger.warning(f"Database reconnect failed: {e}")
                continue

            self.retry_count = 0
            self._set_state(ConnectionState.CONNECTED)
            logger.info("Database reconnected")
            return

    async def _primary_status(self) -> tuple[bool, bool, str | None]:
        """Return ``(in_recovery, read_only, server_address)`` for PostgreSQL."""
        async with self.engine.connect() as conn:
            in_recovery = (await conn.execute(text("SELECT pg_is_in_recovery()"))).scalar()
            read_only = (await conn.execute(text("SHOW transaction_read_only"))).scalar()
            server = (
                await conn.execute(
                    text("SELECT host(inet_server_addr()) || ':' || inet_server_port()")
                )
            ).scalar()
        return bool(in_recovery), read_only == "on", server

    async def verify_primary_writable(self, attempts: int = 1) -> None:
        """Confirm the connection targets a writable primary node.

        Non-PostgreSQL backends have no replicas and always pass.

        Args:
            attempts: Number of checks before giving up, spaced with the
                reconnect backoff

        Raises:
            NotPrimaryError: If the server is a standby or read-only
            ServiceUnavailableError: If the database is not connected
        """
        if self.engine.dialect.name != "postgresql":
            return

        for attempt in range(1, attempts + 1):
            in_recovery, read_only, server = await self._primary_status()
            if not in_recovery and not read_only:
                return
            if attempt < attempts:
                delay = backoff_delay(
                    attempt - 1, self.initial_delay, self.factor, self.max_delay
                )
                logger.warning(
                    f"Attempt {attempt}/{attempts}: {server} is not a writable "
                    f"primary, retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

        hosts = self.hosts
        raise NotPrimaryError(
            f"Could not establish a writable connection to the primary: "
            f"current server {server or 'unknown'} is "
            f"{'a standby' if in_recovery else 'read-only'}; "
            f"available hosts: {', '.join(hosts) or 'none'}",
            current=server,
            hosts=hosts,
        )

    def _require_session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._state != ConnectionState.CONNECTED or self._session_factory is None:
            raise ServiceUnavailableError(
                f"Database is not available (state: {self._state.value})"
            )
        return self._session_factory

    @contextlib.asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Borrow a session from the shared engine.

        Yields:
            AsyncSession: Database session
        """
        factory = self._require_session_factory()
        async with factory() as session:
            yield session

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Borrow a session wrapped in a transaction.

        The transaction commits when the block exits normally and rolls back
        on any exception.

        Yields:
            AsyncSession: Session inside an open transaction
        """
        async with self.session() as session:
            async with session.begin():
                yield session

    async def health(self) -> dict[str, Any]:
        """Report connection state and whether a ping succeeds."""
        status: dict[str, Any] = {"state": self._state.value, "database": False}
        if self._state == ConnectionState.CONNECTED and self._engine is not None:
            try:
                async with self._engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                status["database"] = True
            except RECONNECT_ERRORS as e:
                status["error"] = str(e)
        return status

    async def close(self) -> None:
        """Cancel pending reconnects and dispose the engine. Safe to repeat."""
        self._closing = True
        await self._cancel_reconnect()

        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Disconnected from database")
        self._engine = None
        self._session_factory = None
        self.retry_count = 0
        self._set_state(ConnectionState.DISCONNECTED)
