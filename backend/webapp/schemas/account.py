"""Account request/response schemas.

Request models use ConfigDict(extra="forbid") to reject unexpected fields.
Email syntax is checked by AccountService, not here, so that an invalid
address surfaces as INVALID_EMAIL rather than a generic validation error.
"""

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

_TrimmedStr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
]


class AccountCreate(BaseModel):
    """Request body for POST /v1/user."""

    model_config = ConfigDict(extra="forbid")

    first_name: _TrimmedStr
    last_name: _TrimmedStr
    email: _TrimmedStr
    # Not stripped: surrounding spaces are part of the secret
    password: str = Field(min_length=1, max_length=128)


class AccountView(BaseModel):
    """Sanitized account returned to callers. Never carries the hash."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime
