"""Basic-auth gate for protected operations.

Per request: NoCredentials -> Decoded -> Authenticated | Rejected.
The account is re-read on every request; nothing is cached.

The unverified check runs before the password check so that an
unverified account always gets the same, distinguishable 403.
"""

import base64
import binascii
import logging

from webapp.core.errors import (
    AccountNotFoundError,
    AuthRequiredError,
    InvalidCredentialsError,
    UnverifiedError,
)
from webapp.core.security import CredentialHasher
from webapp.schemas.account import AccountView
from webapp.services.account_service import AccountService

logger = logging.getLogger(__name__)

_SCHEME = "basic"


def decode_basic_credentials(header: str | None) -> tuple[str, str]:
    """Decode an ``Authorization: Basic <base64(email:password)>`` header.

    Args:
        header: Raw Authorization header value.

    Returns:
        (email, password). The password may contain colons.

    Raises:
        AuthRequiredError: If the header is absent, not Basic, not valid
            base64/UTF-8, or has no colon separator.
    """
    if not header:
        raise AuthRequiredError()

    scheme, _, encoded = header.strip().partition(" ")
    encoded = encoded.strip()
    if scheme.lower() != _SCHEME or not encoded:
        raise AuthRequiredError()

    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise AuthRequiredError() from exc

    email, sep, password = decoded.partition(":")
    if not sep or not email:
        raise AuthRequiredError()
    return email, password


class AuthGate:
    """Resolve the account behind a Basic credential header.

    Args:
        accounts: Account lookup.
        hasher: Password verifier.
    """

    def __init__(self, accounts: AccountService, hasher: CredentialHasher) -> None:
        self._accounts = accounts
        self._hasher = hasher

    async def authenticate(self, authorization: str | None) -> AccountView:
        """Authenticate a request.

        Args:
            authorization: Raw Authorization header value.

        Returns:
            The sanitized, verified account.

        Raises:
            AuthRequiredError: Missing or malformed credentials.
            AccountNotFoundError: No account for the email.
            UnverifiedError: Account email not yet verified.
            InvalidCredentialsError: Password does not match.
        """
        email, password = decode_basic_credentials(authorization)

        account = await self._accounts.get_by_email(email)
        if account is None:
            raise AccountNotFoundError()

        if not account.is_verified:
            logger.info(
                "Blocked request from unverified account",
                extra={"account_id": str(account.id)},
            )
            raise UnverifiedError()

        if not await self._hasher.verify(password, account.password_hash):
            raise InvalidCredentialsError()

        return AccountView.model_validate(account)
