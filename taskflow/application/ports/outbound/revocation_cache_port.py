# taskflow/application/ports/outbound/revocation_cache_port.py

from abc import ABC, abstractmethod
from typing import Optional


class IRevocationCache(ABC):
    """
    Key/value store with per-entry expiry.

    Used both as the refresh token whitelist and the access token blacklist.
    Implementations raise CacheUnavailableException when the store cannot be
    reached or a call times out.
    """

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def delete_by_prefix(self, prefix: str) -> int:
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        pass

    @abstractmethod
    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Increment a counter; the TTL is set when the counter is created."""

    @abstractmethod
    async def ping(self) -> bool:
        pass

    def connect(self) -> None:
        """Open the underlying client (no-op for stores without a connection)."""

    async def close(self) -> None:
        """Release the underlying client."""
