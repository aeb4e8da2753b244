import asyncio
import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


logger = logging.getLogger(__name__)


_engine: AsyncEngine | None = None
_SessionLocal: async_sessionmaker[AsyncSession] | None = None


def to_async_url(dsn: str) -> str:
    # postgresql://... -> postgresql+asyncpg://...
    if dsn.startswith("postgres://"):
        dsn = dsn.replace("postgres://", "postgresql://", 1)
    return dsn.replace("postgresql://", "postgresql+asyncpg://", 1)


def init_engine_if_needed():
    """Ленивая инициализация движка и фабрики сессий."""
    global _engine, _SessionLocal
    if _engine is not None and _SessionLocal is not None:
        return

    _engine = create_async_engine(
        to_async_url(settings.DATABASE_URL),
        pool_pre_ping=True,
    )
    _SessionLocal = async_sessionmaker(
        _engine, expire_on_commit=False, autoflush=False
    )
    logger.info("SQLAlchemy async engine initialized")


async def wait_for_db() -> None:
    """Ждём, пока Postgres поднимется (docker-compose стартует всё разом)."""
    init_engine_if_needed()
    assert _engine is not None

    retries = settings.DB_CONNECT_RETRIES
    last_err: Exception | None = None
    for attempt in range(retries):
        try:
            async with _engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Connected to Postgres")
            return
        except Exception as e:
            last_err = e
            logger.warning("Postgres not ready (%s). Retry %d/%d...", e, attempt + 1, retries)
            await asyncio.sleep(1)

    logger.error("Failed to connect Postgres after retries: %s", last_err)
    assert last_err is not None
    raise last_err


async def dispose_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _SessionLocal = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: выдаёт AsyncSession и корректно закрывает её."""
    if _SessionLocal is None:
        init_engine_if_needed()
    assert _SessionLocal is not None  # для type-checker
    async with _SessionLocal() as session:
        yield session
