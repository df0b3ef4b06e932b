"""
Per-process service container.

Built once by create_app() and stored on app.state.container; request
handlers reach it through Depends(get_container) instead of module globals.
"""
import logging

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from config.settings import Settings
from core.db import Base, build_engine, build_session_maker, ping
from models import db_models  # noqa: F401  registers tables on Base.metadata
from services.fare_service import FareTable, default_fare_table, load_fare_table

logger = logging.getLogger(__name__)


class ServiceContainer:
    def __init__(self, settings: Settings, engine: AsyncEngine, fare_table: FareTable):
        self.settings = settings
        self.engine = engine
        self.session_maker: async_sessionmaker[AsyncSession] = build_session_maker(engine)
        self.fare_table = fare_table

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContainer":
        engine = build_engine(settings.database_url, echo=settings.DEBUG)
        logger.info("Async DB engine created for %s", settings.DB_HOST if not settings.DATABASE_URL else "DATABASE_URL")
        if settings.FARE_MATRIX_FILE:
            fare_table = load_fare_table(settings.FARE_MATRIX_FILE)
        else:
            fare_table = default_fare_table()
        return cls(settings, engine, fare_table)

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        await ping(self.engine)

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
