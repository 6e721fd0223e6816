"""Account endpoints.

POST /v1/user creates an account and sends a verification link.
GET and PUT /v1/user/self read and update the authenticated account.
"""

from typing import Any

from fastapi import APIRouter, Body, Response, status

from webapp.api.deps import Accounts, CurrentAccount, Verification
from webapp.core.errors import NoChangeError
from webapp.core.responses import DataResponse
from webapp.schemas.account import AccountCreate, AccountView
from webapp.services.account_service import NO_CHANGE

router = APIRouter()


@router.post("/user", status_code=status.HTTP_201_CREATED)
async def create_account(
    body: AccountCreate,
    accounts: Accounts,
    verification: Verification,
) -> DataResponse[AccountView]:
    """Register a new account and issue its email verification token.

    The verification message is delivered in the background; the response
    does not wait for it.
    """
    account = await accounts.create(body)
    await verification.issue(account.id, account.email)
    return DataResponse(data=account)


@router.get("/user/self")
async def get_self(account: CurrentAccount) -> DataResponse[AccountView]:
    """Return the authenticated account."""
    return DataResponse(data=account)


@router.put("/user/self", status_code=status.HTTP_204_NO_CONTENT)
async def update_self(
    account: CurrentAccount,
    accounts: Accounts,
    patch: dict[str, Any] = Body(...),
) -> Response:
    """Update names and/or password of the authenticated account.

    Returns 204 when something changed and 400 NO_CHANGE when every
    provided value already matched.
    """
    result = await accounts.update(account.id, patch)
    if result is NO_CHANGE:
        raise NoChangeError()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
