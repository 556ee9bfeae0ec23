"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support. The SQL document store keeps its
documents in this database.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings

# Create declarative base for models
Base = declarative_base()


def create_engine_from_settings(database_url: str = None) -> AsyncEngine:
    """
    Create the async engine.

    Pool sizing only applies to server databases; SQLite URLs get the
    driver defaults.
    """
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.db_echo, future=True)

    return create_async_engine(
        url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        future=True,
    )


# Create async engine
engine = create_engine_from_settings()

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def create_tables(bind: AsyncEngine = None):
    """Create all tables registered on Base."""
    # Import models to ensure they are registered with Base
    from backend.app.models.document import Document  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
