"""Database connection management using async SQLAlchemy."""

from typing import AsyncGenerator

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from membership_checkout.shared.core.settings import get_settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Global engine and session factory
_engine = None
_async_session_factory = None


async def init_db() -> None:
    """Initialize database connection."""
    global _engine, _async_session_factory

    settings = get_settings()
    url = make_url(settings.database_url)

    engine_options = {"echo": False, "pool_pre_ping": True}
    if not url.get_backend_name().startswith("sqlite"):
        engine_options.update(pool_size=5, max_overflow=10)

    _engine = create_async_engine(settings.database_url, **engine_options)

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    if settings.db_create_all:
        # Register every table on Base.metadata before creating them
        from membership_checkout.shared.infrastructure.database import models  # noqa: F401

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_created")

    logger.info("database_initialized", database=url.render_as_string(hide_password=True))


async def close_db() -> None:
    """Close database connection."""
    global _engine, _async_session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("database_closed")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session."""
    global _async_session_factory

    if _async_session_factory is None:
        await init_db()

    async with _async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type alias for dependency injection
DatabaseSession = AsyncSession
