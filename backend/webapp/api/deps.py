"""Shared dependencies for API endpoints.

Services come from the ServiceContainer stored on ``app.state`` by the
lifespan. Protected endpoints depend on CurrentAccount, which runs the
AuthGate against the Authorization header on every request.
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from webapp.container import ServiceContainer
from webapp.schemas.account import AccountView
from webapp.services.account_service import AccountService
from webapp.services.media_attachment_service import MediaAttachmentService
from webapp.services.verification_token_service import VerificationTokenService


def get_container(request: Request) -> ServiceContainer:
    """Return the container built at startup."""
    container: ServiceContainer = request.app.state.container
    return container


Container = Annotated[ServiceContainer, Depends(get_container)]


def get_account_service(container: Container) -> AccountService:
    return container.accounts


def get_verification_service(container: Container) -> VerificationTokenService:
    return container.verification


def get_media_service(container: Container) -> MediaAttachmentService:
    return container.media


async def get_current_account(
    container: Container,
    authorization: Annotated[str | None, Header()] = None,
) -> AccountView:
    """Authenticate the request with Basic credentials.

    Raises:
        AuthRequiredError, AccountNotFoundError, UnverifiedError,
        InvalidCredentialsError: Mapped to 401/404/403/401 by the app.
    """
    return await container.auth_gate.authenticate(authorization)


# Reusable type aliases for dependency injection
Accounts = Annotated[AccountService, Depends(get_account_service)]
Verification = Annotated[VerificationTokenService, Depends(get_verification_service)]
Media = Annotated[MediaAttachmentService, Depends(get_media_service)]
CurrentAccount = Annotated[AccountView, Depends(get_current_account)]
