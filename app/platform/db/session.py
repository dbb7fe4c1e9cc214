from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from app.platform.config import settings
from app.platform.db.base import Base


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False, future=True)

    return create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_recycle=1800,
        pool_size=20,
        max_overflow=30,  # (burst capacity)
        pool_timeout=30,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False, autocommit=False)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create all tables. Used at startup in place of migrations."""
    # registers the tables on Base.metadata
    from app.features.crawl.models import FrontierEntry  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()
