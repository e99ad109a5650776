"""Database abstraction layer using SQLAlchemy 2.0 async.

This module provides the database session management and engine configuration
for SQLAlchemy with async support, using the aiosqlite driver.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from clientportal.core.config import Settings, get_settings
from clientportal.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DatabaseManager:
    """Database connection and session manager.

    This class manages the async database engine and session factory.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the database manager."""
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine."""
        if self._engine is None:
            self._engine = create_async_engine(
                self.settings.database_url,
                echo=self.settings.db_echo,
                connect_args={"check_same_thread": False}
                if self.settings.database_url.startswith("sqlite")
                else {},
            )
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.debug("Database session factory created")
        return self._session_factory

    async def create_tables(self) -> None:
        """Create all database tables.

        Used in development and tests. In production, use migrations instead.
        """
        # Register models with Base.metadata before create_all
        from clientportal.infrastructure.persistence import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created")

    async def disconnect(self) -> None:
        """Close the database engine and all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations.

        Example:
            async with db.session() as session:
                result = await session.execute(select(UserModel))
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if database connection is working."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error("Database connection check failed", error=str(e))
            return False


_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get the process-wide database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to get a request-scoped database session."""
    db = get_db_manager()
    async with db.session() as session:
        yield session


async def init_database() -> None:
    """Initialize the database on application startup.

    Tables are created automatically in development and testing; production
    deployments run the Alembic migrations instead.
    """
    db = get_db_manager()
    settings = db.settings

    if settings.database_url.startswith("sqlite") and ":memory:" not in settings.database_url:
        db_path = Path(settings.database_url.split(":///")[-1])
        db_path.parent.mkdir(parents=True, exist_ok=True)

    if not await db.check_connection():
        raise RuntimeError("Failed to connect to database")

    if settings.is_production:
        logger.info("Production mode: skipping auto-create, use migrations")
    else:
        await db.create_tables()


async def close_database() -> None:
    """Close the database connection on application shutdown."""
    await get_db_manager().disconnect()
