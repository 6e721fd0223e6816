"""Profile pictures: at most one image per account.

The metadata row lives in the relational store and the image bytes in the
object store, and no transaction spans both. The protocol is ordered so
that a failure keeps the existing picture rather than half-removing it:

Upload (replace):
1. Look up the current attachment for the account.
2. If there is one: delete its object, then its row. If the object delete
   fails, stop with StoreError; the old attachment is untouched.
3. Store the new bytes under a fresh key.
4. Insert the new row.

If step 4 fails after step 3, the new object has no row. Cleanup is
attempted once; if that also fails the object stays as an orphan.
Concurrent uploads for one account resolve to the last committed row.
"""

import uuid

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from webapp.core.database import transaction
from webapp.core.errors import (
    AttachmentExistsError,
    NotFoundError,
    StoreError,
    UnsupportedTypeError,
)
from webapp.core.file_validation import normalize_image_type, sanitize_filename
from webapp.models.media_attachment import MediaAttachment
from webapp.repositories.media_attachment_repository import MediaAttachmentRepository
from webapp.schemas.media import MediaAttachmentView
from webapp.storage.object_store import ObjectStore, ObjectStoreError

logger = structlog.get_logger()

KEY_PREFIX = "profile-pics"
_RESOURCE = "Profile picture"


class MediaAttachmentService:
    """Upload, fetch, and delete an account's profile picture.

    Args:
        session_factory: Factory for metadata database sessions.
        object_store: Blob storage for image bytes.
        public_base_url: URL prefix under which object keys are addressable.
        replace_existing: Replace an existing picture on upload. When False,
            uploading over an existing picture fails with AttachmentExistsError.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        object_store: ObjectStore,
        *,
        public_base_url: str,
        replace_existing: bool = True,
    ) -> None:
        self._session_factory = session_factory
        self._object_store = object_store
        self._public_base_url = public_base_url.rstrip("/")
        self._replace_existing = replace_existing

    async def upload(
        self,
        account_id: uuid.UUID,
        data: bytes,
        content_type: str | None,
        original_name: str | None,
    ) -> MediaAttachmentView:
        """Store a new profile picture, replacing any existing one.

        Args:
            account_id: Owning account.
            data: Image bytes.
            content_type: Declared MIME type.
            original_name: Client filename.

        Returns:
            Metadata of the stored picture.

        Raises:
            UnsupportedTypeError: If content_type is not PNG or JPEG. Raised
                before any store is touched.
            AttachmentExistsError: If a picture exists and replacing is disabled.
            StoreError: If a store operation fails.
        """
        mime = normalize_image_type(content_type)
        if mime is None:
            logger.info(
                "Profile picture rejected", account_id=str(account_id), content_type=content_type
            )
            raise UnsupportedTypeError(content_type)

        async with transaction(self._session_factory) as db:
            existing = await MediaAttachmentRepository.get_by_account(db, account_id)

        if existing is not None:
            if not self._replace_existing:
                raise AttachmentExistsError()
            # A concurrent upload may already have removed it
            await self._remove(existing, missing_ok=True)

        file_name = sanitize_filename(original_name)
        object_key = f"{KEY_PREFIX}/{uuid.uuid4()}-{file_name}"

        try:
            await self._object_store.put(object_key, data, mime)
        except ObjectStoreError as exc:
            logger.error(
                "Profile picture upload failed", account_id=str(account_id), object_key=object_key
            )
            raise StoreError("Failed to store profile picture") from exc

        try:
            async with transaction(self._session_factory) as db:
                attachment, displaced = await MediaAttachmentRepository.replace_for_account(
                    db,
                    account_id=account_id,
                    object_key=object_key,
                    file_name=file_name,
                    content_type=mime,
                    url=f"{self._public_base_url}/{object_key}",
                )
        except (IntegrityError, StoreError) as exc:
            logger.error(
                "Profile picture metadata write failed",
                account_id=str(account_id),
                object_key=object_key,
            )
            await self._discard_object(object_key)
            raise StoreError("Failed to save profile picture metadata") from exc

        # Rows written by a concurrent upload that committed in between
        for key in displaced:
            await self._discard_object(key)

        logger.info(
            "Profile picture uploaded",
            account_id=str(account_id),
            replaced=existing is not None,
        )
        return MediaAttachmentView.model_validate(attachment)

    async def get(self, account_id: uuid.UUID) -> MediaAttachmentView:
        """Return the account's profile picture metadata.

        Raises:
            NotFoundError: If the account has no picture.
        """
        async with transaction(self._session_factory) as db:
            attachment = await MediaAttachmentRepository.get_by_account(db, account_id)
        if attachment is None:
            raise NotFoundError(_RESOURCE)
        return MediaAttachmentView.model_validate(attachment)

    async def delete(self, account_id: uuid.UUID) -> None:
        """Delete the account's profile picture (object first, then metadata).

        Raises:
            NotFoundError: If the account has no picture.
            StoreError: If the object delete fails; metadata is kept.
        """
        async with transaction(self._session_factory) as db:
            attachment = await MediaAttachmentRepository.get_by_account(db, account_id)
        if attachment is None:
            raise NotFoundError(_RESOURCE)

        await self._remove(attachment)
        logger.info("Profile picture deleted", account_id=str(account_id))

    async def _remove(
        self, attachment: MediaAttachment, *, missing_ok: bool = False
    ) -> None:
        """Delete an attachment's object, then its row.

        Args:
            attachment: Row to remove.
            missing_ok: Treat a row that is already gone as removed.

        Raises:
            StoreError: If the object delete fails (row untouched).
            NotFoundError: If the row was removed concurrently and
                missing_ok is False.
        """
        try:
            await self._object_store.delete(attachment.object_key)
        except ObjectStoreError as exc:
            logger.error(
                "Profile picture object delete failed",
                account_id=str(attachment.account_id),
                object_key=attachment.object_key,
            )
            raise StoreError("Failed to delete profile picture") from exc

        async with transaction(self._session_factory) as db:
            deleted = await MediaAttachmentRepository.delete_by_id(db, attachment.id)
        if not deleted and not missing_ok:
            raise NotFoundError(_RESOURCE)

    async def _discard_object(self, object_key: str) -> None:
        """Best-effort delete of an object no row references."""
        try:
            await self._object_store.delete(object_key)
        except ObjectStoreError:
            logger.warning("Orphaned profile picture object", object_key=object_key)
