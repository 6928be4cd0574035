"""
Database connection using SQLAlchemy + asyncpg.

Topics, debates and arguments live in PostgreSQL. The same database hosts
the pgvector table used for RAG context (see services/vector_store.py),
so a single connection pool serves both.

Services never reach for the module-level engine directly: they receive an
async_sessionmaker, which lets tests hand them a session factory bound to a
throwaway database.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from mindshift.config import get_settings

# Load configuration (database URL, API keys) from environment variables
settings = get_settings()

# Engine and session factory are created lazily so that importing models
# (e.g. from tests) does not require a configured database URL.
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def get_engine() -> AsyncEngine:
    """Shared connection pool for the configured database."""
    global _engine
    if _engine is None:
        # echo=True logs all SQL statements (useful for debugging, disable in production)
        _engine = create_async_engine(settings.database_url, echo=settings.database_echo)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Factory that creates database sessions.

    expire_on_commit=False keeps objects usable after commit (needed for async,
    and for returning ORM rows to the API layer after the transaction closed).
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False
        )
    return _session_factory


async def dispose_engine() -> None:
    """Close all pooled connections (called on shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db() -> AsyncSession:
    """Dependency that yields a database session."""
    async with get_session_factory()() as session:
        yield session
