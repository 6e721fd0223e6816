"""Stored object model - blob rows of the database-backed object store.

Kept apart from the metadata tables: only DatabaseObjectStore reads or
writes it, through its own sessions.
"""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, String, func
from sqlalchemy.orm import Mapped, mapped_column

from webapp.models.base import Base


class StoredObject(Base):
    """Binary payload addressed by key.

    Attributes:
        key: Object key (e.g. ``profile-pics/<uuid>-photo.png``).
        content_type: MIME type of the payload.
        data: Raw bytes.
        created_at: Write timestamp.
    """

    __tablename__ = "stored_objects"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
