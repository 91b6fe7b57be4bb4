import functools

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from pipeelo_onboarding.settings import get_settings

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine.

    SQLite connections get foreign key enforcement turned on.
    """
    engine = create_async_engine(database_url, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@functools.lru_cache()
def get_engine() -> AsyncEngine:
    """
    Get SQLAlchemy engine (cached).

    This function lazily initializes the engine to avoid import-time side effects.
    The engine is created using DATABASE_URL from settings.
    """
    settings = get_settings()
    return create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


@functools.lru_cache()
def get_sessionmaker() -> async_sessionmaker:
    """
    Get SQLAlchemy sessionmaker (cached).

    This function lazily initializes the sessionmaker to avoid import-time side effects.
    """
    return async_sessionmaker(bind=get_engine(), expire_on_commit=False)


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all onboarding tables."""
    # Register models on Base.metadata
    import pipeelo_onboarding.persistence.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
