"""Database configuration and session management."""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, StaticPool

from config import get_settings
from core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

_is_sqlite = "sqlite" in settings.database_url.lower()

if _is_sqlite:
    # SQLite doesn't support pool_size and max_overflow; an in-memory database
    # only survives on a single shared connection.
    engine = create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool if ":memory:" in settings.database_url else NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
    )

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


def _import_models() -> None:
    # Registers every table on Base.metadata
    from domain.client import models as client_models  # noqa: F401
    from domain.file import models as file_models  # noqa: F401
    from domain.project import models as project_models  # noqa: F401
    from domain.task import models as task_models  # noqa: F401
    from domain.user import models as user_models  # noqa: F401


async def init_database() -> None:
    """Create tables if they do not exist."""
    _import_models()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise


async def drop_database() -> None:
    """Drop every table (tests and local resets only)."""
    _import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
