"""Object store contract and database-backed implementation.

Services depend only on the ObjectStore protocol. DatabaseObjectStore keeps
payloads in the ``stored_objects`` table, using its own session factory so
every call commits on its own, independently of metadata transactions.
"""

import logging
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from webapp.models.stored_object import StoredObject

logger = logging.getLogger(__name__)


class ObjectStoreError(Exception):
    """An object store operation failed."""


class ObjectNotFoundError(ObjectStoreError):
    """No object exists under the requested key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Object not found: {key}")


class ObjectStore(Protocol):
    """Durable blob storage addressed by key."""

    async def put(self, key: str, data: bytes, content_type: str) -> None: ...

    async def get(self, key: str) -> bytes: ...

    async def delete(self, key: str) -> None: ...


class DatabaseObjectStore:
    """ObjectStore backed by a relational table.

    Args:
        session_factory: Factory for sessions on the blob database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes under key, overwriting any existing object.

        Raises:
            ObjectStoreError: On any database failure.
        """
        try:
            async with self._session_factory.begin() as db:
                await db.execute(_upsert(db, key, data, content_type))
        except SQLAlchemyError as exc:
            logger.warning("Object put failed", extra={"key": key})
            raise ObjectStoreError(f"Failed to store object {key}") from exc

    async def get(self, key: str) -> bytes:
        """Fetch the bytes stored under key.

        Raises:
            ObjectNotFoundError: If no object exists under key.
            ObjectStoreError: On any database failure.
        """
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(StoredObject.data).where(StoredObject.key == key)
                )
                data = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise ObjectStoreError(f"Failed to read object {key}") from exc
        if data is None:
            raise ObjectNotFoundError(key)
        return data

    async def delete(self, key: str) -> None:
        """Delete the object under key. Deleting a missing key succeeds.

        Raises:
            ObjectStoreError: On any database failure.
        """
        try:
            async with self._session_factory.begin() as db:
                await db.execute(delete(StoredObject).where(StoredObject.key == key))
        except SQLAlchemyError as exc:
            logger.warning("Object delete failed", extra={"key": key})
            raise ObjectStoreError(f"Failed to delete object {key}") from exc


def _upsert(db: AsyncSession, key: str, data: bytes, content_type: str):
    """Build a dialect-specific INSERT ... ON CONFLICT DO UPDATE."""
    dialect = db.get_bind().dialect.name
    insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
    stmt = insert(StoredObject).values(key=key, data=data, content_type=content_type)
    return stmt.on_conflict_do_update(
        index_elements=[StoredObject.key],
        set_={"data": stmt.excluded.data, "content_type": stmt.excluded.content_type},
    )
