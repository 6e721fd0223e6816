"""Timing decorator for ObjectStore implementations.

Every call is observed in the object store duration histogram and logged
with its duration, labelled by operation and outcome.
"""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from webapp.core.metrics import OBJECT_STORE_DURATION
from webapp.storage.object_store import ObjectNotFoundError, ObjectStore

logger = structlog.get_logger()


class InstrumentedObjectStore:
    """ObjectStore that times the calls it forwards to another store.

    Args:
        inner: Store that does the work.
    """

    def __init__(self, inner: ObjectStore) -> None:
        self._inner = inner

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        async with _timed("put", key):
            await self._inner.put(key, data, content_type)

    async def get(self, key: str) -> bytes:
        async with _timed("get", key):
            return await self._inner.get(key)

    async def delete(self, key: str) -> None:
        async with _timed("delete", key):
            await self._inner.delete(key)


@asynccontextmanager
async def _timed(operation: str, key: str) -> AsyncIterator[None]:
    outcome = "error"
    start = time.perf_counter()
    try:
        yield
        outcome = "success"
    except ObjectNotFoundError:
        outcome = "not_found"
        raise
    finally:
        duration = time.perf_counter() - start
        OBJECT_STORE_DURATION.labels(operation=operation, outcome=outcome).observe(
            duration
        )
        logger.debug(
            "Object store call",
            operation=operation,
            object_key=key,
            outcome=outcome,
            duration_ms=round(duration * 1000, 2),
        )
