"""Tests for MediaAttachmentService.

Covers the delete-then-upload replace protocol and its failure ordering:
a failing object delete keeps the existing picture intact.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from tests.conftest import PNG_BYTES, TEST_MEDIA_URL, InMemoryObjectStore
from webapp.core.errors import (
    AttachmentExistsError,
    NotFoundError,
    StoreError,
    UnsupportedTypeError,
)
from webapp.models.media_attachment import MediaAttachment
from webapp.repositories.media_attachment_repository import MediaAttachmentRepository
from webapp.services.media_attachment_service import (
    KEY_PREFIX,
    MediaAttachmentService,
)
from webapp.storage.object_store import ObjectNotFoundError


async def _row_count(session_factory) -> int:
    async with session_factory() as db:
        return await db.scalar(select(func.count()).select_from(MediaAttachment))


class TestUpload:
    async def test_stores_object_and_metadata(
        self, media_service, account, object_store: InMemoryObjectStore
    ):
        view = await media_service.upload(account.id, PNG_BYTES, "image/png", "photo.png")

        assert view.account_id == account.id
        assert view.file_name == "photo.png"
        assert view.content_type == "image/png"
        key = view.url.removeprefix(f"{TEST_MEDIA_URL}/")
        assert key.startswith(f"{KEY_PREFIX}/")
        assert key.endswith("-photo.png")
        assert object_store.objects[key] == (PNG_BYTES, "image/png")

    async def test_content_type_is_normalized(self, media_service, account):
        view = await media_service.upload(
            account.id, PNG_BYTES, "IMAGE/JPEG; charset=binary", "me.jpg"
        )
        assert view.content_type == "image/jpeg"

    async def test_unsafe_filename_is_sanitized(self, media_service, account):
        view = await media_service.upload(
            account.id, PNG_BYTES, "image/png", "../secret dir/my pic.png"
        )
        assert view.file_name == "my_pic.png"

    @pytest.mark.parametrize("content_type", ["application/pdf", "image/gif", None])
    async def test_unsupported_type_touches_no_store(self, content_type):
        session_factory = MagicMock()
        object_store = AsyncMock()
        service = MediaAttachmentService(
            session_factory, object_store, public_base_url=TEST_MEDIA_URL
        )

        with pytest.raises(UnsupportedTypeError):
            await service.upload(uuid.uuid4(), b"%PDF-1.7", content_type, "doc.pdf")

        assert session_factory.call_count == 0
        assert session_factory.begin.call_count == 0
        assert object_store.put.await_count == 0
        assert object_store.delete.await_count == 0

    async def test_second_upload_replaces_first(
        self, media_service, account, object_store, session_factory
    ):
        first = await media_service.upload(account.id, b"one", "image/png", "a.png")
        second = await media_service.upload(account.id, b"two", "image/png", "b.png")

        first_key = first.url.removeprefix(f"{TEST_MEDIA_URL}/")
        second_key = second.url.removeprefix(f"{TEST_MEDIA_URL}/")
        assert await _row_count(session_factory) == 1
        assert (await media_service.get(account.id)).url == second.url
        assert await object_store.get(second_key) == b"two"
        with pytest.raises(ObjectNotFoundError):
            await object_store.get(first_key)

    async def test_replace_aborts_when_old_object_delete_fails(
        self, media_service, account, object_store, session_factory
    ):
        first = await media_service.upload(account.id, b"one", "image/png", "a.png")
        object_store.fail_delete = True

        with pytest.raises(StoreError):
            await media_service.upload(account.id, b"two", "image/png", "b.png")

        assert (await media_service.get(account.id)).id == first.id
        assert len(object_store.objects) == 1
        assert await _row_count(session_factory) == 1

    async def test_put_failure_leaves_no_metadata(
        self, media_service, account, object_store, session_factory
    ):
        object_store.fail_put = True

        with pytest.raises(StoreError):
            await media_service.upload(account.id, PNG_BYTES, "image/png", "a.png")

        assert await _row_count(session_factory) == 0

    async def test_existing_picture_rejected_when_replace_disabled(
        self, session_factory, account, object_store
    ):
        service = MediaAttachmentService(
            session_factory,
            object_store,
            public_base_url=TEST_MEDIA_URL,
            replace_existing=False,
        )
        first = await service.upload(account.id, b"one", "image/png", "a.png")

        with pytest.raises(AttachmentExistsError):
            await service.upload(account.id, b"two", "image/png", "b.png")

        assert (await service.get(account.id)).id == first.id
        assert len(object_store.objects) == 1


class TestGet:
    async def test_no_picture(self, media_service, account):
        with pytest.raises(NotFoundError):
            await media_service.get(account.id)


class TestDelete:
    async def test_removes_object_and_metadata(
        self, media_service, account, object_store, session_factory
    ):
        await media_service.upload(account.id, PNG_BYTES, "image/png", "a.png")

        await media_service.delete(account.id)

        assert object_store.objects == {}
        assert await _row_count(session_factory) == 0
        with pytest.raises(NotFoundError):
            await media_service.get(account.id)

    async def test_second_delete_is_not_found(self, media_service, account):
        await media_service.upload(account.id, PNG_BYTES, "image/png", "a.png")
        await media_service.delete(account.id)

        with pytest.raises(NotFoundError):
            await media_service.delete(account.id)

    async def test_object_delete_failure_keeps_metadata(
        self, media_service, account, object_store
    ):
        view = await media_service.upload(account.id, PNG_BYTES, "image/png", "a.png")
        object_store.fail_delete = True

        with pytest.raises(StoreError):
            await media_service.delete(account.id)

        assert (await media_service.get(account.id)).id == view.id

    async def test_deletes_object_before_metadata(self, media_service, account, object_store):
        await media_service.upload(account.id, PNG_BYTES, "image/png", "a.png")
        object_store.calls.clear()

        await media_service.delete(account.id)

        assert [call for call, _ in object_store.calls] == ["delete"]


def _key(view) -> str:
    return view.url.removeprefix(f"{TEST_MEDIA_URL}/")


class TestUploadPartialFailure:
    """Metadata insert fails after the object was stored."""

    @pytest.fixture
    def failing_insert(self, monkeypatch):
        async def fail(db, **kwargs):
            raise IntegrityError("INSERT INTO media_attachments", {}, Exception("unique"))

        monkeypatch.setattr(MediaAttachmentRepository, "replace_for_account", staticmethod(fail))

    async def test_new_object_is_cleaned_up(
        self, media_service, account, object_store, session_factory, failing_insert
    ):
        with pytest.raises(StoreError):
            await media_service.upload(account.id, PNG_BYTES, "image/png", "a.png")

        put_keys = [key for call, key in object_store.calls if call == "put"]
        assert len(put_keys) == 1
        assert ("delete", put_keys[0]) in object_store.calls
        assert object_store.objects == {}
        assert await _row_count(session_factory) == 0

    async def test_failed_cleanup_leaves_orphan(
        self, media_service, account, object_store, session_factory, failing_insert
    ):
        object_store.fail_delete = True

        with pytest.raises(StoreError):
            await media_service.upload(account.id, PNG_BYTES, "image/png", "a.png")

        assert len(object_store.objects) == 1
        assert await _row_count(session_factory) == 0


class TestConcurrentUploads:
    async def test_displaced_row_object_is_reclaimed(
        self, media_service, account, object_store, session_factory, monkeypatch
    ):
        first = await media_service.upload(account.id, b"one", "image/png", "a.png")
        # The second upload misses the first row, as if it committed in between
        monkeypatch.setattr(
            MediaAttachmentRepository,
            "get_by_account",
            staticmethod(AsyncMock(return_value=None)),
        )

        second = await media_service.upload(account.id, b"two", "image/png", "b.png")

        assert ("delete", _key(first)) in object_store.calls
        assert set(object_store.objects) == {_key(second)}
        assert await _row_count(session_factory) == 1

    async def test_both_replacing_the_same_row_succeed(
        self, media_service, account, object_store, session_factory, monkeypatch
    ):
        await media_service.upload(account.id, b"old", "image/png", "old.png")

        lookup = MediaAttachmentRepository.get_by_account
        both_read = asyncio.Event()
        readers = 0

        async def lookup_together(db, account_id):
            nonlocal readers
            found = await lookup(db, account_id)
            readers += 1
            if readers == 2:
                both_read.set()
            await both_read.wait()
            return found

        monkeypatch.setattr(
            MediaAttachmentRepository, "get_by_account", staticmethod(lookup_together)
        )

        results = await asyncio.gather(
            media_service.upload(account.id, b"a", "image/png", "a.png"),
            media_service.upload(account.id, b"b", "image/png", "b.png"),
        )

        assert readers >= 2
        assert {view.file_name for view in results} == {"a.png", "b.png"}
        assert await _row_count(session_factory) == 1
        current = await media_service.get(account.id)
        assert set(object_store.objects) == {_key(current)}
