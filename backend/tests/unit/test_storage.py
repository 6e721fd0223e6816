"""Tests for the store adapters: object stores and notification publishers."""

import json

import httpx
import pytest
from prometheus_client import REGISTRY

from webapp.storage.instrumented import InstrumentedObjectStore
from webapp.storage.notifications import (
    HttpNotificationPublisher,
    LoggingNotificationPublisher,
)
from webapp.storage.object_store import (
    DatabaseObjectStore,
    ObjectNotFoundError,
    ObjectStoreError,
)


class TestDatabaseObjectStore:
    async def test_put_then_get(self, session_factory):
        store = DatabaseObjectStore(session_factory)
        await store.put("profile-pics/a.png", b"abc", "image/png")
        assert await store.get("profile-pics/a.png") == b"abc"

    async def test_put_overwrites(self, session_factory):
        store = DatabaseObjectStore(session_factory)
        await store.put("k", b"old", "image/png")
        await store.put("k", b"new", "image/jpeg")
        assert await store.get("k") == b"new"

    async def test_get_missing_raises(self, session_factory):
        store = DatabaseObjectStore(session_factory)
        with pytest.raises(ObjectNotFoundError) as exc_info:
            await store.get("missing")
        assert exc_info.value.key == "missing"

    async def test_delete(self, session_factory):
        store = DatabaseObjectStore(session_factory)
        await store.put("k", b"x", "image/png")
        await store.delete("k")
        with pytest.raises(ObjectNotFoundError):
            await store.get("k")

    async def test_delete_missing_key_succeeds(self, session_factory):
        await DatabaseObjectStore(session_factory).delete("never-stored")


class TestHttpNotificationPublisher:
    async def test_posts_topic_and_message(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        publisher = HttpNotificationPublisher("https://hooks.example.com/n", client=client)

        await publisher.publish("email-verification", {"email": "a@example.com"})
        await publisher.aclose()

        assert len(seen) == 1
        assert str(seen[0].url) == "https://hooks.example.com/n"
        assert json.loads(seen[0].content) == {
            "topic": "email-verification",
            "message": {"email": "a@example.com"},
        }

    async def test_error_status_is_swallowed(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        publisher = HttpNotificationPublisher("https://hooks.example.com/n", client=client)

        await publisher.publish("t", {})
        await publisher.aclose()

    async def test_transport_error_is_swallowed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        publisher = HttpNotificationPublisher("https://hooks.example.com/n", client=client)

        await publisher.publish("t", {})
        await publisher.aclose()


async def test_logging_publisher_accepts_messages():
    publisher = LoggingNotificationPublisher()
    await publisher.publish("t", {"email": "a@example.com", "url": "u"})
    await publisher.aclose()


def _observations(operation: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "webapp_object_store_operation_duration_seconds_count",
        {"operation": operation, "outcome": outcome},
    )
    return value or 0.0


class TestInstrumentedObjectStore:
    async def test_forwards_calls(self, object_store):
        store = InstrumentedObjectStore(object_store)

        await store.put("k", b"abc", "image/png")
        assert await store.get("k") == b"abc"
        await store.delete("k")

        assert [call for call, _ in object_store.calls] == ["put", "get", "delete"]

    async def test_records_durations_by_outcome(self, object_store):
        store = InstrumentedObjectStore(object_store)
        before_put = _observations("put", "success")
        before_missing = _observations("get", "not_found")
        before_error = _observations("delete", "error")

        await store.put("k", b"abc", "image/png")
        with pytest.raises(ObjectNotFoundError):
            await store.get("missing")
        object_store.fail_delete = True
        with pytest.raises(ObjectStoreError):
            await store.delete("k")

        assert _observations("put", "success") == before_put + 1
        assert _observations("get", "not_found") == before_missing + 1
        assert _observations("delete", "error") == before_error + 1
