"""Repository for MediaAttachment operations.

Metadata side of the profile picture protocol. The object store side is
handled by MediaAttachmentService.
"""

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from webapp.models.media_attachment import MediaAttachment


class MediaAttachmentRepository:
    """Stateless repository for MediaAttachment table operations.

    All methods are static; there is no instance state.
    """

    @staticmethod
    async def get_by_account(
        db: AsyncSession, account_id: uuid.UUID
    ) -> MediaAttachment | None:
        """Fetch the attachment owned by an account.

        Args:
            db: Async database session.
            account_id: Owning account.

        Returns:
            MediaAttachment if present, None otherwise.
        """
        stmt = select(MediaAttachment).where(MediaAttachment.account_id == account_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_by_id(db: AsyncSession, attachment_id: uuid.UUID) -> bool:
        """Delete one attachment row.

        Returns:
            True if a row was deleted.
        """
        stmt = (
            delete(MediaAttachment)
            .where(MediaAttachment.id == attachment_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count > 0

    @staticmethod
    async def replace_for_account(
        db: AsyncSession,
        *,
        account_id: uuid.UUID,
        object_key: str,
        file_name: str,
        content_type: str,
        url: str,
    ) -> tuple[MediaAttachment, list[str]]:
        """Insert the attachment for an account, displacing any existing row.

        A row can only be present here if a concurrent upload committed
        between the caller's lookup and this call. Its object key is
        returned so the caller can reclaim the blob.

        Args:
            db: Async database session.
            account_id: Owning account.
            object_key: Key of the already stored payload.
            file_name: Sanitized original filename.
            content_type: MIME type.
            url: Addressable location of the payload.

        Returns:
            The new MediaAttachment and the object keys of displaced rows.

        Raises:
            sqlalchemy.exc.IntegrityError: If a concurrent insert for the
                same account wins the unique constraint.
        """
        stmt = (
            delete(MediaAttachment)
            .where(MediaAttachment.account_id == account_id)
            .execution_options(synchronize_session=False)
            .returning(MediaAttachment.object_key)
        )
        result = await db.execute(stmt)
        displaced = list(result.scalars().all())

        attachment = MediaAttachment(
            account_id=account_id,
            object_key=object_key,
            file_name=file_name,
            content_type=content_type,
            url=url,
        )
        db.add(attachment)
        await db.flush()
        await db.refresh(attachment)
        return attachment, displaced
