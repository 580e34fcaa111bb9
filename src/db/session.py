"""Async SQLAlchemy session factory."""
import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import Settings, get_settings
from services.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def engine_options(settings: Settings) -> dict[str, Any]:
    """Pool options for the configured database (SQLite uses a static pool)."""
    if settings.database_url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=False,
    **engine_options(settings),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush() for refreshing objects,
    commit happens once here at request end. This ensures atomic transactions
    per request - if anything fails, all changes are rolled back.

    The commit runs before the response is sent (FastAPI >= 0.118), so a
    failed commit surfaces as a 500 instead of a success for unsaved work.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception("Database error committing request transaction")
            raise PersistenceError("Failed to save changes") from e
        except Exception:
            await session.rollback()
            raise
