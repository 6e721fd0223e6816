"""Account model - registered users of the web application."""

import uuid

from sqlalchemy import Boolean, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from webapp.models.base import Base, TimestampMixin


class Account(Base, TimestampMixin):
    """Registered account.

    Attributes:
        id: UUID primary key, generated on insert.
        first_name: Given name.
        last_name: Family name.
        email: Unique, lowercased email address. Immutable after creation.
        password_hash: bcrypt hash. Never serialized outward.
        is_verified: Whether the email address has been verified.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=false(),
        default=False,
    )

    def __repr__(self) -> str:
        return f"Account(id={self.id!s}, is_verified={self.is_verified})"
