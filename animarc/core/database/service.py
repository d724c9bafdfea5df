"""
Database Service - Async Engine and Session Management

Purpose
-------
Own the SQLAlchemy async engine and session factory, and hand out sessions
with explicit transaction semantics to the repositories.

Responsibilities
----------------
- Build the async engine from Config (or explicit arguments)
- Provide get_session() for reads and get_transaction() for atomic writes
- Create the schema for development and tests
- Lightweight health check

Non-Responsibilities
--------------------
- Business logic or domain rules
- Retry of domain-level conflicts (services own that)
- Migrations

Design Notes
------------
- Instance-based: services and repositories receive the DatabaseService
  they use, so tests can run against an isolated in-memory database.
- In-memory SQLite shares one connection (StaticPool) so every session
  sees the same schema; other SQLite files use NullPool.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from animarc.core.config.config import Config
from animarc.core.database.base import Base
from animarc.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    DatabaseNotInitializedError,
)
from animarc.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseService:
    """
    Centralized async database engine and session management.

    Public API
    ----------
    - initialize() -> Build engine and session factory (idempotent)
    - shutdown() -> Dispose engine
    - get_session() -> Session without automatic commit
    - get_transaction() -> Session inside an atomic transaction (preferred for writes)
    - create_all() -> Create every table registered on Base.metadata
    - health_check() -> Fast reachability check

    Example
    -------
    >>> db = DatabaseService("sqlite+aiosqlite:///:memory:")
    >>> await db.initialize()
    >>> async with db.get_transaction() as session:
    ...     session.add(row)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        echo: Optional[bool] = None,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        pool_recycle: Optional[int] = None,
    ) -> None:
        self._url = url or Config.DATABASE_URL
        self._echo = Config.DATABASE_ECHO if echo is None else echo
        self._pool_size = pool_size or Config.DATABASE_POOL_SIZE
        self._max_overflow = (
            Config.DATABASE_MAX_OVERFLOW if max_overflow is None else max_overflow
        )
        self._pool_recycle = pool_recycle or Config.DATABASE_POOL_RECYCLE

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._init_lock = asyncio.Lock()

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @property
    def url_scheme(self) -> str:
        return self._url.split(":", 1)[0] if ":" in self._url else "unknown"

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def _engine_kwargs(self) -> Dict[str, Any]:
        if self._url.startswith("sqlite"):
            if ":memory:" in self._url or "mode=memory" in self._url:
                return {
                    "echo": self._echo,
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False},
                }
            return {"echo": self._echo, "poolclass": NullPool}

        return {
            "echo": self._echo,
            "pool_size": self._pool_size,
            "max_overflow": self._max_overflow,
            "pool_recycle": self._pool_recycle,
            "pool_pre_ping": True,
        }

    async def initialize(self) -> None:
        """
        Initialize the database engine and session factory.

        Idempotent: returns immediately when already initialized.
        """
        async with self._init_lock:
            if self._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            if not self._url:
                raise ConfigurationError("DATABASE_URL", "is empty")

            self._engine = create_async_engine(self._url, **self._engine_kwargs())
            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            logger.info(
                "DatabaseService initialized",
                extra={"url_scheme": self.url_scheme, "echo": self._echo},
            )

    async def shutdown(self) -> None:
        """Dispose the engine. Safe to call multiple times."""
        async with self._init_lock:
            if self._engine is None:
                return

            try:
                await self._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                self._engine = None
                self._session_factory = None

    async def create_all(self) -> None:
        """Create all tables registered on ``Base.metadata``."""
        engine = self._require_engine()
        # Importing the models registers their tables on Base.metadata
        import animarc.database.models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info(
            "Database schema created",
            extra={"tables": sorted(Base.metadata.tables)},
        )

    # ========================================================================
    # Sessions
    # ========================================================================

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session without automatic commit.

        For write operations, prefer `get_transaction()` which provides
        automatic commit/rollback semantics.
        """
        factory = self._require_factory()
        async with factory() as session:
            yield session

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session wrapped in an atomic transaction.

        Commits on normal exit and rolls back on any exception. Operational
        driver failures are re-raised as DatabaseError; everything else
        (IntegrityError included, which stores use for idempotent inserts)
        propagates unchanged.

        Usage Example
        -------------
        >>> async with db.get_transaction() as session:
        ...     await session.execute(update(...))
        """
        factory = self._require_factory()
        start = time.perf_counter()

        async with factory() as session:
            try:
                async with session.begin():
                    yield session
            except OperationalError as exc:
                logger.error(
                    "Transaction failed in the database driver",
                    extra={
                        "error": str(exc),
                        "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    },
                )
                raise DatabaseError("transaction", exc) from exc
            except Exception as exc:
                logger.debug(
                    "Transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    },
                )
                raise

    # ========================================================================
    # Health Check
    # ========================================================================

    async def health_check(self) -> bool:
        """True if the database answers ``SELECT 1``."""
        if self._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError()
        return self._engine

    def _require_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise DatabaseNotInitializedError()
        return self._session_factory
