# taskflow/application/use_cases/attempt_limiter.py

"""
Limite de tentativas de autenticação por IP (signup/signin).

Fixed-window counters kept in the revocation cache. Only failed attempts are
counted, so a user who signs in successfully never consumes the budget.
"""

import logging

from taskflow.application.ports.outbound import IRevocationCache
from taskflow.domain.exceptions import CacheUnavailableException, TooManyAttemptsException

logger = logging.getLogger(__name__)

ATTEMPT_COUNTER_PREFIX = "ratelimit:auth:"


class AuthAttemptLimiter:
    """
    Refuses signup/signin from a client that failed too often in the window.

    A cache outage fails open: the request proceeds and a warning is logged.
    """

    def __init__(self, cache: IRevocationCache, *, max_attempts: int = 10, window_seconds: int = 15 * 60):
        self.cache = cache
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds

    @staticmethod
    def counter_key(client_id: str) -> str:
        return f"{ATTEMPT_COUNTER_PREFIX}{client_id}"

    async def check(self, client_id: str) -> None:
        """
        Raises:
            TooManyAttemptsException: The client already used up its failed attempts.
        """
        try:
            raw = await self.cache.get(self.counter_key(client_id))
        except CacheUnavailableException:
            logger.warning("Attempt counter unavailable, auth rate limit not enforced")
            return

        try:
            failures = int(raw) if raw else 0
        except ValueError:
            failures = 0
        if failures >= self.max_attempts:
            logger.warning(f"Auth rate limit reached for client={client_id} failures={failures}")
            raise TooManyAttemptsException(retry_after=self.window_seconds, details={"client": client_id})

    async def record_failure(self, client_id: str) -> int:
        """Count one failed attempt; returns the failures in the current window (0 if unknown)."""
        try:
            return await self.cache.incr(self.counter_key(client_id), self.window_seconds)
        except CacheUnavailableException:
            logger.warning("Could not record failed auth attempt")
            return 0
