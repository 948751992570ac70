"""
SQLAlchemy async engine and session management

This module provides:
1. AsyncEngineManager: event-loop aware engine + session maker (+ sqlite write lock)
2. Base / UtcDateTime: declarative base and a timezone-safe datetime column type
3. Database class: injected into units of work and repositories

Backends:
- PostgreSQL (asyncpg) in production: concurrent writers, uniqueness enforced by the server
- SQLite (aiosqlite) for local runs and tests: WAL mode, writers serialized in-process
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

import anyio
from sqlalchemy import DateTime, event
from sqlalchemy.engine.interfaces import Dialect
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


# =============================================================================
# Event-loop-aware Engine Manager
# =============================================================================


class AsyncEngineManager:
    """
    Manages a SQLAlchemy async engine with event loop awareness.

    Ensures the engine is always bound to the current event loop to prevent
    "Task got Future attached to a different loop" errors (TestClient portals,
    pytest-asyncio function loops).
    """

    def __init__(self, *, url: Optional[str] = None) -> None:
        self._url = url
        self._engine: Optional[AsyncEngine] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None
        self._write_lock: Optional[anyio.Lock] = None

    @property
    def url(self) -> str:
        return self._url or settings.DATABASE_URL_ASYNC

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')

    def get_engine(self) -> AsyncEngine:
        """Get engine for current event loop, creating a new one if needed"""
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            if self._engine is None:
                self._engine = self._create_engine()
            return self._engine

        if self._loop is not current_loop:
            if self._engine is not None:
                Logger.base.warning('🔄 [DB] Event loop changed, disposing old engine...')
                # Can't await dispose() in a sync method; the old pool is garbage collected
                self._engine = None
                self._session_maker = None
                self._write_lock = None

            Logger.base.info(f'🔗 [DB] Creating engine for event loop {id(current_loop)}')
            self._engine = self._create_engine()
            self._loop = current_loop

        assert self._engine is not None
        return self._engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        engine = self.get_engine()
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_maker

    def get_write_lock(self) -> anyio.Lock:
        """Process-local lock serializing write transactions (sqlite has a single writer)"""
        self.get_engine()
        if self._write_lock is None:
            self._write_lock = anyio.Lock()
        return self._write_lock

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        self._write_lock = None
        self._loop = None

    def _create_engine(self) -> AsyncEngine:
        if self.is_sqlite:
            engine = create_async_engine(
                self.url,
                echo=False,
                connect_args={'timeout': 30},
            )
            event.listen(engine.sync_engine, 'connect', _enable_sqlite_wal)
            return engine

        return create_async_engine(
            self.url,
            echo=False,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=settings.DB_POOL_PRE_PING,
        )


def _enable_sqlite_wal(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.close()


# Global engine manager (settings.DATABASE_URL_ASYNC)
_engine_manager = AsyncEngineManager()


def get_engine() -> AsyncEngine:
    return _engine_manager.get_engine()


# =============================================================================
# Base Model
# =============================================================================


class Base(DeclarativeBase):
    pass


class UtcDateTime(TypeDecorator[datetime]):
    """Stores UTC; always returns timezone-aware datetimes (sqlite drops tzinfo)"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None) if dialect.name == 'sqlite' else value

    def process_result_value(
        self, value: Optional[datetime], dialect: Dialect
    ) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# =============================================================================
# Table Creation
# =============================================================================


async def create_db_and_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create database tables if they don't exist"""
    # Register models on Base.metadata
    import src.service.grid.driven_adapter.model  # noqa: F401

    current_engine = engine or get_engine()
    try:
        async with current_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    except Exception as e:
        error_msg = str(e).lower()
        if any(
            keyword in error_msg
            for keyword in ['already exists', 'duplicate key', 'unique constraint']
        ):
            Logger.base.info('Tables already exist, skipping creation')
        else:
            Logger.base.error(f'Error creating tables: {e}')
            raise


# =============================================================================
# Database Class (for DI)
# =============================================================================


class Database:
    """
    Database handle for the dependency injection container

    Uses the global engine manager by default; tests pass an explicit url
    to get an isolated database.
    """

    def __init__(self, *, url: Optional[str] = None) -> None:
        self._engine_manager = AsyncEngineManager(url=url) if url else _engine_manager

    @property
    def is_sqlite(self) -> bool:
        return self._engine_manager.is_sqlite

    @property
    def engine(self) -> AsyncEngine:
        return self._engine_manager.get_engine()

    def write_lock(self) -> anyio.Lock:
        return self._engine_manager.get_write_lock()

    def create_session(self) -> AsyncSession:
        """New session; the caller is responsible for closing it"""
        return self._engine_manager.get_session_maker()()

    async def create_tables(self) -> None:
        await create_db_and_tables(self.engine)

    async def dispose(self) -> None:
        await self._engine_manager.dispose()
