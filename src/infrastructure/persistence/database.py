from typing import Any

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)
from sqlalchemy.orm import DeclarativeBase


# Modern SQLAlchemy 2.0 pattern
class Base(DeclarativeBase):
    """Base class for all database models"""

    pass


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine.

    Pool sizing and asyncpg connection arguments only apply to PostgreSQL;
    other drivers (SQLite in tests) keep their default pools.
    """
    kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if "postgresql" in database_url:
        kwargs.update(
            pool_size=20,
            max_overflow=30,
            pool_recycle=3600,
            query_cache_size=1200,
            connect_args={
                "server_settings": {"jit": "off"},
                "command_timeout": 60,
            },
        )
    return create_async_engine(database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by request handlers and the workflow engine"""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )
