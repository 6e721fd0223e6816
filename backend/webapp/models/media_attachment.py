"""Media attachment model - profile picture metadata.

At most one row per account, enforced by a unique constraint on
account_id. The binary payload lives in the object store under
``object_key``.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from webapp.models.base import Base


class MediaAttachment(Base):
    """Profile picture metadata.

    Attributes:
        id: UUID primary key.
        account_id: Owning account. Unique.
        object_key: Key of the payload in the object store.
        file_name: Sanitized original filename.
        content_type: MIME type declared at upload.
        url: Addressable location of the payload.
        uploaded_at: Upload timestamp.
    """

    __tablename__ = "media_attachments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    object_key: Mapped[str] = mapped_column(String(512), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(50), nullable=False)
    url: Mapped[str] = mapped_column(Text(), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
