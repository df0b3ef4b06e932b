import asyncio
import logging

from config.settings import get_settings
from core.container import ServiceContainer
from core.logging import configure_logging

logger = logging.getLogger(__name__)


async def main():
    """
    One-time script to create all tables in the configured MySQL database.
    Uses the same container (and engine) the API builds from settings.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    container = ServiceContainer.from_settings(settings)
    try:
        await container.create_all()
    finally:
        await container.dispose()
    logger.info("Database schema created/updated successfully.")


if __name__ == "__main__":
    asyncio.run(main())
