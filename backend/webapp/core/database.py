"""Async database engine, session factory, and transaction helper.

Engines are created once at startup by the service container and disposed
at shutdown; nothing here holds module-level connection state.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from webapp.core.errors import StoreError


def create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine with connection health checks."""
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory whose objects stay usable after commit."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Run a block in one transaction: commit on success, roll back on error.

    IntegrityError propagates unchanged so callers can map constraint
    violations to domain errors. Any other SQLAlchemy failure becomes a
    StoreError. Domain errors raised inside the block roll back and
    propagate unchanged.

    Yields:
        AsyncSession bound to the open transaction.
    """
    try:
        async with session_factory.begin() as db:
            yield db
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        raise StoreError("Database operation failed") from exc
