"""
Database Configuration

Async SQLAlchemy 2.0 setup. PostgreSQL through asyncpg in production;
tests and local runs may point DATABASE_URL at aiosqlite instead.
"""

import ssl
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


class Base(DeclarativeBase):
    """Declarative base shared by every model."""


_engine: Optional[AsyncEngine] = None
_async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def is_asyncpg(db_url: str) -> bool:
    return db_url.startswith("postgresql+asyncpg")


def database_url() -> str:
    """
    DATABASE_URL as the driver expects it. asyncpg rejects libpq query
    parameters such as ``sslmode`` and ``channel_binding``, so they are
    dropped and TLS is configured through ``connect_args`` instead.
    """
    db_url = settings.DATABASE_URL
    if is_asyncpg(db_url):
        db_url = db_url.split("?", 1)[0]
    return db_url


def connect_args(db_url: str) -> Dict[str, Any]:
    if not is_asyncpg(db_url):
        return {}
    # Hosted Postgres (Neon) presents certificates asyncpg can't verify by hostname
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return {"ssl": ssl_context}


def get_engine() -> AsyncEngine:
    """Create the engine on first use so importing the app never connects."""
    global _engine
    if _engine is None:
        db_url = database_url()
        options: Dict[str, Any] = {"connect_args": connect_args(db_url)}
        if is_asyncpg(db_url):
            options.update(
                echo=settings.is_development,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
            )
        _engine = create_async_engine(db_url, **options)
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_maker


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for work outside a request. Commits on success and rolls
    back if the block raises.
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session dependency.

    Services commit their own writes; anything still pending when the
    endpoint returns is committed here, and an exception rolls back.
    """
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """
    Create missing tables from the models.

    Development convenience behind AUTO_CREATE_TABLES; deployed databases
    are managed with Alembic.
    """
    import app.models  # noqa: F401  registers every model on Base.metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _async_session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
