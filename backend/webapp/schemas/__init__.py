"""Pydantic request/response schemas for API endpoints."""

from webapp.schemas.account import AccountCreate, AccountView
from webapp.schemas.media import MediaAttachmentView

__all__ = [
    "AccountCreate",
    "AccountView",
    "MediaAttachmentView",
]
