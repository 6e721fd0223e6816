"""Email verification tokens: issue and validate.

Tokens are single-use. The plain value is only ever sent to the user; the
database keeps its SHA-256 hash. Validation removes the row in one atomic
statement, so a token can succeed at most once even under concurrent
requests, and an expired token is gone after the first attempt.

Delivery of the verification link is handed to the notification publisher
in a background task; issuing never waits on it.
"""

import asyncio
import hashlib
import logging
import secrets
import uuid
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import quote, urlencode

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from webapp.core.database import transaction
from webapp.core.errors import ExpiredTokenError, InvalidTokenError, NotFoundError
from webapp.repositories.account_repository import AccountRepository
from webapp.repositories.verification_token_repository import (
    VerificationTokenRepository,
)
from webapp.storage.notifications import NotificationPublisher

logger = logging.getLogger(__name__)

_DEFAULT_TTL = timedelta(minutes=2)
_TOKEN_BYTES = 32
_VERIFY_PATH = "/v1/verify"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a plain token, as stored in the database."""
    return hashlib.sha256(token.encode()).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; every stored value is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class IssuedToken:
    """Result of issuing a verification token.

    Attributes:
        token: Plain token value (sent to the user, never stored).
        url: Fully formed verification link.
        expires_at: Expiry timestamp.
    """

    token: str
    url: str
    expires_at: datetime


class VerificationTokenService:
    """Issue and validate single-use email verification tokens.

    Args:
        session_factory: Factory for metadata database sessions.
        publisher: Destination for verification messages.
        base_url: Public base URL used to build verification links.
        topic: Topic verification messages are published to.
        ttl: Token lifetime.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: NotificationPublisher,
        *,
        base_url: str,
        topic: str = "email-verification",
        ttl: timedelta = _DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher
        self._base_url = base_url.rstrip("/")
        self._topic = topic
        self._ttl = ttl
        self._clock = clock
        self._pending: set[asyncio.Task[None]] = set()

    async def issue(self, account_id: uuid.UUID, email: str) -> IssuedToken:
        """Create a token for an account and queue the verification message.

        Args:
            account_id: Owning account.
            email: Address to send the link to.

        Returns:
            The plain token, its link, and its expiry.
        """
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        issued_at = self._clock()
        expires_at = issued_at + self._ttl

        async with transaction(self._session_factory) as db:
            await VerificationTokenRepository.create(
                db,
                token_hash=hash_token(token),
                account_id=account_id,
                email=email,
                issued_at=issued_at,
                expires_at=expires_at,
            )

        url = self.build_url(token)
        self._spawn(
            self._publish({"email": email, "url": url, "timestamp": issued_at.isoformat()})
        )
        logger.info("Verification token issued", extra={"account_id": str(account_id)})
        return IssuedToken(token=token, url=url, expires_at=expires_at)

    async def validate(self, token: str) -> uuid.UUID:
        """Consume a token and mark its account verified.

        The row is removed whether the token turns out valid or expired.

        Args:
            token: Plain token from the verification link.

        Returns:
            ID of the account that is now verified.

        Raises:
            InvalidTokenError: If no such token exists (or it was already used).
            ExpiredTokenError: If the token existed but had expired.
            NotFoundError: If the owning account no longer exists.
        """
        if not token:
            raise InvalidTokenError()

        now = self._clock()
        expired = False
        account_found = False
        async with transaction(self._session_factory) as db:
            consumed = await VerificationTokenRepository.consume(
                db, token_hash=hash_token(token)
            )
            if consumed is not None:
                expired = _as_utc(consumed.expires_at) < now
                if not expired:
                    account_found = await AccountRepository.mark_verified(
                        db, consumed.account_id
                    )

        # Raise only after commit: the consumed row must stay deleted.
        if consumed is None:
            raise InvalidTokenError()
        if expired:
            logger.info(
                "Expired verification token consumed",
                extra={"account_id": str(consumed.account_id)},
            )
            raise ExpiredTokenError()
        if not account_found:
            raise NotFoundError("Account", str(consumed.account_id))

        logger.info("Email verified", extra={"account_id": str(consumed.account_id)})
        return consumed.account_id

    async def purge_expired(self) -> int:
        """Delete every token past its expiry.

        Returns:
            Number of tokens removed.
        """
        async with transaction(self._session_factory) as db:
            removed = await VerificationTokenRepository.delete_expired(
                db, now=self._clock()
            )
        if removed:
            logger.info("Purged expired verification tokens", extra={"count": removed})
        return removed

    def build_url(self, token: str) -> str:
        """Build the verification link for a plain token."""
        query = urlencode({"token": token}, quote_via=quote)
        return f"{self._base_url}{_VERIFY_PATH}?{query}"

    async def wait_for_notifications(self) -> None:
        """Wait until every queued verification message has been handed off."""
        if self._pending:
            await asyncio.gather(*self._pending)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, payload: dict[str, Any]) -> None:
        try:
            await self._publisher.publish(self._topic, payload)
        except Exception:
            logger.warning("Verification message not published", exc_info=True)
