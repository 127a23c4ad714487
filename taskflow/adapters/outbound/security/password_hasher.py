# taskflow/adapters/outbound/security/password_hasher.py

import asyncio
import logging

import bcrypt

from taskflow.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    Credential hasher.

    Responsibilities:
    - Adaptive, salted password hashing with a fixed work factor
    - Password verification (a mismatch is False, never an exception)

    Hashing runs in a worker thread so the event loop is not blocked, and
    every call is bounded by `timeout` seconds.
    """

    def __init__(self, rounds: int = None, timeout: float = None):
        self.rounds = rounds or settings.BCRYPT_ROUNDS
        self.timeout = timeout or settings.HASHER_TIMEOUT_SECONDS

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    # ———— SYNC METHODS ————

    def hash_password_sync(self, password: str) -> str:
        """Synchronously hash a password."""
        hashed = bcrypt.hashpw(self._encode(password), bcrypt.gensalt(rounds=self.rounds))
        return hashed.decode("utf-8")

    def verify_password_sync(self, plain_password: str, hashed_password: str) -> bool:
        """Synchronously verify a plain password against a bcrypt hash."""
        if not plain_password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(self._encode(plain_password), hashed_password.encode("utf-8"))
        except ValueError:
            # Malformed hash: treated as a failed verification
            logger.warning("Password verification against a malformed hash.")
            return False

    # ———— ASYNC METHODS ————

    async def hash_password(self, password: str) -> str:
        """Asynchronously hash a password."""
        return await asyncio.wait_for(
            asyncio.to_thread(self.hash_password_sync, password), timeout=self.timeout
        )

    async def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a plain password against a hashed password."""
        return await asyncio.wait_for(
            asyncio.to_thread(self.verify_password_sync, plain_password, hashed_password),
            timeout=self.timeout,
        )
