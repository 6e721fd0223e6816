"""Verification token model - single-use email verification tokens.

Tokens are stored as SHA-256 hashes of the value sent to the user, so a
leaked table does not leak usable links. Consumed (deleted) on first
validation or on expiry detection.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from webapp.models.base import Base


class VerificationToken(Base):
    """Email verification token.

    Attributes:
        token: SHA-256 hex digest of the plain token. Primary key.
        account_id: Owning account (canonical owner reference).
        email: Address the link was sent to.
        issued_at: Issuance timestamp.
        expires_at: issued_at + TTL.
    """

    __tablename__ = "verification_tokens"
    __table_args__ = (
        Index("ix_verification_tokens_expires_at", "expires_at"),
    )

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
