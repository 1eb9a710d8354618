"""
Async engine, session factory and declarative base
"""

from collections.abc import AsyncIterator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from gradelens.core.config import settings

logger = structlog.get_logger()

engine = create_async_engine(settings.database.url, echo=settings.database.echo)

AsyncSessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base shared by all GradeLens tables"""


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session; rolled back if the request fails"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create any missing tables"""
    import gradelens.models  # noqa: F401  registers tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables initialized", url=engine.url.render_as_string(hide_password=True))


async def close_db() -> None:
    await engine.dispose()
    logger.info("Database connections closed")
