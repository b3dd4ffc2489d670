import asyncio

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings
from libs.common.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # SQLite picks its own pool; queue-pool sizing does not apply.
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


# Create async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    future=True,
    **_engine_options(settings.DATABASE_URL),
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def wait_for_database(
    db_engine: AsyncEngine,
    retries: int = settings.DB_CONNECT_RETRIES,
    delay: float = settings.DB_CONNECT_RETRY_DELAY,
) -> None:
    """Block until the database answers ``SELECT 1``.

    Retries a fixed number of times with a fixed delay; the last
    ``OperationalError`` propagates so startup aborts.
    """
    for attempt in range(1, retries + 1):
        try:
            async with db_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection established (attempt %d)", attempt)
            return
        except OperationalError as exc:
            if attempt == retries:
                logger.error("Database unreachable after %d attempts", retries)
                raise
            logger.warning(
                "Database connection failed (attempt %d/%d): %s; retrying in %.1fs",
                attempt,
                retries,
                exc.orig,
                delay,
            )
            await asyncio.sleep(delay)
