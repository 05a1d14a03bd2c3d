"""Async database session management."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tenantforge.config import Settings, settings


def build_engine(config: Settings, pool_size: int | None = None) -> AsyncEngine:
    """Create an async engine for the shared PostgreSQL database."""
    return create_async_engine(
        config.async_database_url,
        pool_size=pool_size or config.database_pool_size,
        max_overflow=config.database_max_overflow,
        echo=config.database_echo,
        pool_pre_ping=True,  # Verify connections before use
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_engine = build_engine(settings)
async_session_factory = build_session_factory(async_engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session.

    Usage:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
