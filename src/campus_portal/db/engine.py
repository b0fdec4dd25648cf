"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

Production runs on PostgreSQL (asyncpg); tests and the CLI can point the
same code at SQLite (aiosqlite). Pool sizing only applies to PostgreSQL.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from campus_portal.config import settings
from campus_portal.db.models import Base


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL."""
    kwargs = {}
    if url.startswith("postgresql"):
        # Connection pool: min 5, max 20 connections.
        kwargs = {"pool_size": 5, "max_overflow": 15, "pool_pre_ping": True}
    return create_async_engine(url, echo=echo, **kwargs)


engine = build_engine(settings.database_url, echo=settings.debug)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_schema(target: AsyncEngine) -> None:
    """Create all tables that don't exist yet."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
