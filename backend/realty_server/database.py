"""SQLAlchemy async engine and session management."""

import logging

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine; pooling options only apply to server databases."""
    kw: dict = {"echo": False}
    if "sqlite" not in database_url:
        kw.update(pool_size=20, max_overflow=10, pool_pre_ping=True)
    return create_async_engine(database_url, **kw)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def connect_db(engine: AsyncEngine) -> bool:
    """Check that the database is reachable.

    Runs in the background at startup. A failure is logged and reported
    through the return value; the server keeps serving either way.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection error: {e}")
        return False
    logger.info("Database connected successfully")
    return True


async def get_db(request: Request) -> AsyncSession:
    """Dependency that yields an async database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
