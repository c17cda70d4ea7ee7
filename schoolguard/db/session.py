"""
Database Session Management
Async engine and session handling
"""

from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from schoolguard.core.config import settings
from schoolguard.core.logging import get_logger
from schoolguard.db.base import Base

logger = get_logger(__name__)

# Engine
engine = None
async_session_maker = None


async def init_db(database_url: Optional[str] = None) -> None:
    """Initialize database engine and create tables"""
    global engine, async_session_maker

    url = database_url or settings.DATABASE_URL
    logger.info(f"Connecting to database at {url.split('@')[-1]}")

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=settings.DEBUG)
    else:
        engine = create_async_engine(
            url,
            echo=settings.DEBUG,
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Import all SQLAlchemy models to ensure they're registered with Base
    from schoolguard.db import models  # noqa: F401

    # Create tables (use migrations for production)
    if settings.ENVIRONMENT in ("development", "testing") or url.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")


async def close_db() -> None:
    """Close database connections"""
    global engine, async_session_maker

    if engine:
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connection closed")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session (dependency injection)"""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_connection() -> bool:
    """Check that the database answers a trivial query"""
    if async_session_maker is None:
        return False
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
        return False
