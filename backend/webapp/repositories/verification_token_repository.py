"""Repository for VerificationToken operations.

Single-use verification tokens stored as hashed values. Consumption is a
single DELETE ... RETURNING statement so that two concurrent validations
can never both observe the same row.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from webapp.models.verification_token import VerificationToken


@dataclass(frozen=True)
class ConsumedToken:
    """Snapshot of a token row removed by consume().

    Attributes:
        account_id: Owning account.
        email: Address the token was issued for.
        expires_at: Expiry timestamp as stored.
    """

    account_id: uuid.UUID
    email: str
    expires_at: datetime


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations.

    All methods are static; there is no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        token_hash: str,
        account_id: uuid.UUID,
        email: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> VerificationToken:
        """Store a new verification token.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.
            account_id: Owning account.
            email: Address the token is sent to.
            issued_at: Issuance timestamp.
            expires_at: Token expiry timestamp.

        Returns:
            Created VerificationToken.
        """
        vt = VerificationToken(
            token=token_hash,
            account_id=account_id,
            email=email,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        db.add(vt)
        await db.flush()
        # No server-generated fields to refresh
        return vt

    @staticmethod
    async def consume(db: AsyncSession, *, token_hash: str) -> ConsumedToken | None:
        """Atomically find and delete a token.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.

        Returns:
            The removed row's values, or None if no row matched.
        """
        stmt = (
            delete(VerificationToken)
            .where(VerificationToken.token == token_hash)
            .execution_options(synchronize_session=False)
            .returning(
                VerificationToken.account_id,
                VerificationToken.email,
                VerificationToken.expires_at,
            )
        )
        result = await db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return ConsumedToken(
            account_id=row.account_id,
            email=row.email,
            expires_at=row.expires_at,
        )

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all tokens that expired before ``now``.

        Args:
            db: Async database session.
            now: Reference time.

        Returns:
            Number of deleted rows.
        """
        stmt = (
            delete(VerificationToken)
            .where(VerificationToken.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
