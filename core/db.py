"""
Async MySQL database engine and session management.

Purpose:
- Create SQLAlchemy async engine for MySQL with aiomysql driver
- Provide per-request async sessions for dependency injection
- Provide Base declarative class for ORM models

Production notes:
- Use connection pooling with appropriate pool_size and max_overflow
- pool_pre_ping drops stale MySQL connections before they reach a handler
"""
import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from core.errors import DatabaseUnavailableError

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine; in-memory SQLite shares one connection so tables survive."""
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def ping(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession bound to the process container.

    The connection is opened eagerly so that an unreachable database fails the
    request with DatabaseUnavailableError before any handler logic runs.
    """
    container = request.app.state.container
    async with container.session_maker() as session:
        try:
            await session.connection()
        except (OperationalError, DBAPIError, OSError) as e:
            logger.error("Database connection failed: %s", e)
            raise DatabaseUnavailableError(str(e)) from e
        try:
            yield session
        finally:
            await session.close()
