"""
Portfolio Database Connection Setup
Process-scoped async engine lifecycle with connection retries and health checks.
"""

import asyncio
import logging
import re
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from portfolio.core.config import Settings, settings as default_settings
from portfolio.models import Base

logger = logging.getLogger(__name__)


def mask_url(url: str) -> str:
    """Hide credentials in a database URL for logging."""
    return re.sub(r"://[^:/@]+:[^@]+@", "://***:***@", url)


class Database:
    """
    Shared database connection state.

    Created once per process (or once per serverless invocation) and
    injected into request handlers. The engine is established lazily on
    connect(); pool_pre_ping replaces connections dropped by the server.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        config: Optional[Settings] = None,
        pooled: bool = True,
        engine: Optional[AsyncEngine] = None,
        max_retries: Optional[int] = None,
    ):
        self.config = config or default_settings
        self.url = url or self.config.database_url
        self.pooled = pooled
        self.max_retries = max_retries or self.config.db_connect_retries
        self.retry_interval = self.config.db_retry_interval

        self._engine: Optional[AsyncEngine] = engine
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None
        self.is_connected = False
        self.connected_at: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Engine construction
    # -------------------------------------------------------------------------

    def _engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": self.config.debug, "pool_pre_ping": True}
        backend = make_url(self.url).get_backend_name()
        if not self.pooled:
            options["poolclass"] = NullPool
        elif backend != "sqlite":
            options.update(
                pool_size=self.config.db_pool_size,
                max_overflow=self.config.db_max_overflow,
                pool_recycle=3600,
            )
        if backend == "sqlite":
            options["connect_args"] = {"check_same_thread": False}
        return options

    @staticmethod
    def _build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        """Lazily created async engine."""
        if self._engine is None:
            self._engine = create_async_engine(self.url, **self._engine_options())
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            self._sessionmaker = self._build_sessionmaker(self.engine)
        return self._sessionmaker

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self, create_tables: bool = True) -> bool:
        """
        Establish the connection, retrying up to max_retries times.

        Returns False instead of raising when every attempt fails so the
        API can still serve static content without a database.
        """
        logger.info(f"Connecting to database at {mask_url(self.url)}")

        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.engine.begin() as conn:
                    await conn.execute(text("SELECT 1"))
                    if create_tables:
                        await conn.run_sync(Base.metadata.create_all)

                self.is_connected = True
                self.connected_at = datetime.now(timezone.utc)
                logger.info("Database connected successfully")
                return True

            except Exception as e:
                self.is_connected = False
                logger.error(f"Database connection error (attempt {attempt}/{self.max_retries}): {e}")
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_interval)

        logger.error("Max database connection attempts reached, continuing without database")
        return False

    async def disconnect(self) -> None:
        """Dispose of all pooled connections."""
        if self._engine is not None:
            try:
                await self._engine.dispose()
                logger.info("Database connections closed")
            except Exception as e:
                logger.error(f"Error disconnecting from database: {e}")
        self.is_connected = False

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for async database sessions.

        Usage:
            async with database.session() as session:
                store = SubmissionStore(session)
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def get_status(self) -> dict[str, Any]:
        """Connection status without touching the network."""
        url = make_url(self.url)
        return {
            "connected": self.is_connected,
            "state": "CONNECTED" if self.is_connected else "DISCONNECTED",
            "backend": url.get_backend_name(),
            "host": url.host or "local",
            "database": url.database or "Unknown",
            "connectedAt": self.connected_at.isoformat() if self.connected_at else None,
        }

    async def health_check(self) -> dict[str, Any]:
        """Ping the database and report its health."""
        timestamp = datetime.now(timezone.utc).isoformat()
        if not self.is_connected:
            return {
                "status": "disconnected",
                "timestamp": timestamp,
                "error": "Not connected to database",
            }
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {
                "status": "healthy",
                "timestamp": timestamp,
                "database": make_url(self.url).database,
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": "unhealthy",
                "timestamp": timestamp,
                "error": str(e),
            }


# =============================================================================
# FastAPI Dependencies
# =============================================================================


def get_database(request: Request) -> Database:
    """Database instance created in the application lifespan."""
    return request.app.state.database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_database(request).session() as session:
        yield session
