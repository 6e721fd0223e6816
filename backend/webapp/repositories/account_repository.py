"""Repository for Account CRUD operations.

Provides database access for the accounts table. Callers pass an
AsyncSession on every call and control transaction boundaries.
"""

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from webapp.models.account import Account

# Fields that may be updated via AccountRepository.update().
# Never add 'id', 'email', 'created_at', or 'updated_at':
# - id: primary key, immutable
# - email: unique identity, immutable after creation
# - created_at/updated_at: server-managed timestamps
# is_verified is excluded; only mark_verified() sets it.
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "first_name",
        "last_name",
        "password_hash",
    }
)


class AccountRepository:
    """Stateless repository for Account table operations.

    All methods are static; there is no instance state.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, account_id: uuid.UUID) -> Account | None:
        """Fetch an account by primary key.

        Args:
            db: Async database session.
            account_id: UUID primary key.

        Returns:
            Account if found, None otherwise.
        """
        return await db.get(Account, account_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Account | None:
        """Fetch an account by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            Account if found, None otherwise.
        """
        stmt = select(Account).where(Account.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
    ) -> Account:
        """Create a new, unverified account.

        Email is normalized to lowercase before storage.

        Returns:
            Created Account with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        account = Account(
            first_name=first_name,
            last_name=last_name,
            email=email.strip().lower(),
            password_hash=password_hash,
            is_verified=False,
        )
        db.add(account)
        await db.flush()
        await db.refresh(account)
        return account

    @staticmethod
    async def update(
        db: AsyncSession,
        account_id: uuid.UUID,
        **kwargs: str,
    ) -> Account | None:
        """Update account fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            account_id: UUID of the account to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated Account if found, None if it does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        account = await db.get(Account, account_id)
        if account is None:
            return None

        for field, value in kwargs.items():
            setattr(account, field, value)

        await db.flush()
        await db.refresh(account)
        return account

    @staticmethod
    async def mark_verified(db: AsyncSession, account_id: uuid.UUID) -> bool:
        """Flip is_verified to true.

        Args:
            db: Async database session.
            account_id: UUID of the account.

        Returns:
            True if the account exists, False otherwise.
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(is_verified=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count > 0
