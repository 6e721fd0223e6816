"""Email verification endpoint (the link sent to new accounts)."""

from typing import Annotated

from fastapi import APIRouter, Query

from webapp.api.deps import Verification
from webapp.core.responses import DataResponse

router = APIRouter()


@router.get("/verify")
async def verify_email(
    verification: Verification,
    token: Annotated[str, Query(min_length=1, max_length=256)],
) -> DataResponse[dict]:
    """Consume a verification token and mark its account verified."""
    await verification.validate(token)
    return DataResponse(data={"message": "Email verified successfully!"})
