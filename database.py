"""Async database engine, session factory and declarative base."""

from collections.abc import AsyncGenerator
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from config import get_settings

settings = get_settings()


def build_engine(database_url: str, echo: bool = False):
    """Create an async engine, keeping a single connection for in-memory SQLite."""
    engine_kwargs = {}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url:
            engine_kwargs["poolclass"] = StaticPool
    return create_async_engine(database_url, echo=echo, **engine_kwargs)


engine = build_engine(settings.database_url, echo=settings.debug)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def apply_updates(instance: Base, updates: dict) -> None:
    """Copy partial-update values onto an ORM instance.

    Explicit nulls are ignored for NOT NULL columns and enum members are
    stored by value.
    """
    columns = instance.__table__.columns
    for field, value in updates.items():
        if isinstance(value, Enum):
            value = value.value
        if value is None and field in columns and not columns[field].nullable:
            continue
        setattr(instance, field, value)
