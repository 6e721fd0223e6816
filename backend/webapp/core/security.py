"""Password hashing with bcrypt.

bcrypt is CPU-bound, so both operations run in a worker thread to keep the
event loop free while a hash is computed.
"""

import asyncio

import bcrypt

# bcrypt only looks at the first 72 bytes of the secret
_BCRYPT_MAX_BYTES = 72


class CredentialHasher:
    """One-way salted hashing and constant-time verification of passwords.

    Args:
        rounds: bcrypt cost factor.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash_sync(self, password: str) -> str:
        """Hash a password on the calling thread."""
        return bcrypt.hashpw(
            password.encode()[:_BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=self._rounds)
        ).decode()

    def verify_sync(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash on the calling thread.

        Malformed hashes verify as False rather than raising.
        """
        try:
            return bcrypt.checkpw(
                password.encode()[:_BCRYPT_MAX_BYTES], password_hash.encode()
            )
        except ValueError:
            return False

    async def hash(self, password: str) -> str:
        """Hash a password.

        Args:
            password: Plain-text password.

        Returns:
            bcrypt hash string (includes salt and cost).
        """
        return await asyncio.to_thread(self.hash_sync, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Candidate plain-text password.
            password_hash: Stored bcrypt hash.

        Returns:
            True if the password matches.
        """
        return await asyncio.to_thread(self.verify_sync, password, password_hash)
