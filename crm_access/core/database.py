# crm_access/core/database.py
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from crm_access.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for all persisted tables."""

    pass


# NullPool for SQLite to avoid sharing connections across event loops
engine = create_async_engine(
    settings.DATABASE_URL,
    poolclass=NullPool if settings.DATABASE_URL.startswith("sqlite") else None,
    echo=False,
)

SessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database dependency for FastAPI dependency injection."""
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables registered on the declarative base."""
    # Register tables before create_all
    from crm_access.domains.permissions import tables  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
