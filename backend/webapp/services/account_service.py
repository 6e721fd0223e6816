"""Account lifecycle: create, read, and update accounts.

Updates are checked for no-ops before anything is written: names compare by
equality, and a password compares by verifying it against the stored hash
(hashes are salted, so re-hashing and comparing would always differ).
"""

import logging
import uuid
from collections.abc import Mapping
from enum import Enum
from typing import Any

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from webapp.core.database import transaction
from webapp.core.errors import (
    AlreadyExistsError,
    InvalidEmailError,
    InvalidFieldsError,
    NotFoundError,
    ValidationError,
)
from webapp.core.security import CredentialHasher
from webapp.models.account import Account
from webapp.repositories.account_repository import AccountRepository
from webapp.schemas.account import AccountCreate, AccountView

logger = logging.getLogger(__name__)

# Keys a caller may send to update(). Order matters only for error details.
UPDATABLE_FIELDS: tuple[str, ...] = ("first_name", "last_name", "password")

_NAME_FIELDS: tuple[str, ...] = ("first_name", "last_name")
_MAX_FIELD_LENGTH = 255


class NoChange(Enum):
    """Sentinel returned by update() when every provided value is unchanged."""

    NO_CHANGE = "no_change"


NO_CHANGE = NoChange.NO_CHANGE


class AccountService:
    """Create, read, and update accounts.

    Args:
        session_factory: Factory for metadata database sessions.
        hasher: Password hasher.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: CredentialHasher,
    ) -> None:
        self._session_factory = session_factory
        self._hasher = hasher

    async def create(self, data: AccountCreate) -> AccountView:
        """Register a new, unverified account.

        Args:
            data: Validated create request.

        Returns:
            The sanitized account.

        Raises:
            InvalidEmailError: If the email is not a syntactically valid address.
            AlreadyExistsError: If an account with this email exists.
        """
        email = _normalize_email(data.email)
        password_hash = await self._hasher.hash(data.password)

        try:
            async with transaction(self._session_factory) as db:
                account = await AccountRepository.create(
                    db,
                    first_name=data.first_name,
                    last_name=data.last_name,
                    email=email,
                    password_hash=password_hash,
                )
        except IntegrityError as exc:
            raise AlreadyExistsError() from exc

        logger.info("Account created", extra={"account_id": str(account.id)})
        return AccountView.model_validate(account)

    async def get(self, account_id: uuid.UUID) -> AccountView:
        """Fetch a sanitized account.

        Raises:
            NotFoundError: If the account does not exist.
        """
        async with transaction(self._session_factory) as db:
            account = await AccountRepository.get_by_id(db, account_id)
        if account is None:
            raise NotFoundError("Account", str(account_id))
        return AccountView.model_validate(account)

    async def get_by_email(self, email: str) -> Account | None:
        """Fetch the full account record, hash included, by email.

        For credential checks only; never return this object to a client.
        """
        async with transaction(self._session_factory) as db:
            return await AccountRepository.get_by_email(db, email)

    async def update(
        self, account_id: uuid.UUID, patch: Mapping[str, Any]
    ) -> AccountView | NoChange:
        """Apply a partial update to names and/or password.

        Args:
            account_id: Account to update.
            patch: Subset of first_name, last_name, password.

        Returns:
            The sanitized updated account, or NO_CHANGE if every provided
            value already matches what is stored.

        Raises:
            InvalidFieldsError: If patch contains keys outside UPDATABLE_FIELDS.
            ValidationError: If a value is not a non-empty string.
            NotFoundError: If the account does not exist.
        """
        invalid = [key for key in patch if key not in UPDATABLE_FIELDS]
        if invalid:
            raise InvalidFieldsError(invalid)
        _check_values(patch)

        async with transaction(self._session_factory) as db:
            current = await AccountRepository.get_by_id(db, account_id)
        if current is None:
            raise NotFoundError("Account", str(account_id))

        # Names are trimmed the same way create() trims them
        names = {field: patch[field].strip() for field in _NAME_FIELDS if field in patch}
        changes: dict[str, str] = {
            field: value
            for field, value in names.items()
            if value != getattr(current, field)
        }
        if "password" in patch and not await self._hasher.verify(
            patch["password"], current.password_hash
        ):
            changes["password_hash"] = await self._hasher.hash(patch["password"])

        if not changes:
            return NO_CHANGE

        async with transaction(self._session_factory) as db:
            account = await AccountRepository.update(db, account_id, **changes)
        if account is None:
            raise NotFoundError("Account", str(account_id))

        logger.info(
            "Account updated",
            extra={"account_id": str(account_id), "fields": sorted(changes)},
        )
        return AccountView.model_validate(account)


def _normalize_email(email: str) -> str:
    """Validate email syntax and return the lowercased address.

    Raises:
        InvalidEmailError: If the address is not syntactically valid.
    """
    try:
        result = validate_email(email, check_deliverability=False)
    except EmailNotValidError as exc:
        raise InvalidEmailError(email) from exc
    return result.normalized.lower()


def _check_values(patch: Mapping[str, Any]) -> None:
    """Require every patch value to be a non-empty string of bounded length."""
    for field, value in patch.items():
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(
                f"{field} must be a non-empty string",
                details=[{"field": field, "error": "INVALID_VALUE"}],
            )
        if len(value) > _MAX_FIELD_LENGTH:
            raise ValidationError(
                f"{field} must be at most {_MAX_FIELD_LENGTH} characters",
                details=[{"field": field, "error": "TOO_LONG"}],
            )
