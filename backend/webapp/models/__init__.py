"""ORM models.

Importing this package registers every table on Base.metadata.
"""

from webapp.models.account import Account
from webapp.models.base import Base, TimestampMixin
from webapp.models.media_attachment import MediaAttachment
from webapp.models.stored_object import StoredObject
from webapp.models.verification_token import VerificationToken

__all__ = [
    "Account",
    "Base",
    "MediaAttachment",
    "StoredObject",
    "TimestampMixin",
    "VerificationToken",
]
