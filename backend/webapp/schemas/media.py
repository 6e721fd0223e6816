"""Profile picture response schema."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class MediaAttachmentView(BaseModel):
    """Profile picture metadata returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    account_id: uuid.UUID
    file_name: str
    content_type: str
    url: str
    uploaded_at: datetime
