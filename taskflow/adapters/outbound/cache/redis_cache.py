# taskflow/adapters/outbound/cache/redis_cache.py

"""
Redis-backed revocation cache.

Thin wrapper over redis.asyncio that bounds every command with a timeout and
turns connection errors and timeouts into CacheUnavailableException. It takes
no fail-open/fail-closed decision itself: the session manager decides how a
cache outage is handled on each path.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from taskflow.application.ports.outbound import IRevocationCache
from taskflow.domain.exceptions import CacheUnavailableException

logger = logging.getLogger(__name__)

# Keys deleted per round trip by delete_by_prefix
_SCAN_BATCH = 500


def _key_namespace(key: str) -> str:
    """Everything up to the last ':' (keys embed ids and digests, logs only need the namespace)."""
    return key.rsplit(":", 1)[0] + ":" if ":" in key else "<root>"


class RedisRevocationCache(IRevocationCache):
    """Revocation cache client with an explicit connect/close lifecycle."""

    DEFAULT_OPERATION_TIMEOUT = 1.0

    def __init__(self, redis_url: str, *, operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
                 client: Optional[aioredis.Redis] = None):
        self.redis_url = redis_url
        self.operation_timeout = operation_timeout
        self.client: Optional[aioredis.Redis] = client

    def connect(self) -> None:
        """Create the connection pool (connections are opened lazily)."""
        if self.client is None:
            self.client = aioredis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_timeout=self.operation_timeout,
                socket_connect_timeout=self.operation_timeout,
            )
            logger.info("Redis revocation cache client created")

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info("Redis connection closed")

    async def _call(self, operation: str, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        if self.client is None:
            raise CacheUnavailableException(
                message="Revocation cache is not connected.", details={"operation": operation}
            )
        try:
            return await asyncio.wait_for(fn(), timeout=self.operation_timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Cache {operation} failed for {_key_namespace(key)}: {type(e).__name__}")
            raise CacheUnavailableException(
                details={"operation": operation, "namespace": _key_namespace(key)},
                original_error=e,
            ) from e

    async def ping(self) -> bool:
        return bool(await self._call("ping", "", lambda: self.client.ping()))

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            # Nothing to cache: the entry would already be expired
            return
        await self._call("put", key, lambda: self.client.set(key, value, ex=int(ttl_seconds)))

    async def get(self, key: str) -> Optional[str]:
        return await self._call("get", key, lambda: self.client.get(key))

    async def delete(self, key: str) -> None:
        await self._call("delete", key, lambda: self.client.delete(key))

    async def exists(self, key: str) -> bool:
        return bool(await self._call("exists", key, lambda: self.client.exists(key)))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            await self.delete(key)
            return False
        return bool(await self._call("expire", key, lambda: self.client.expire(key, int(ttl_seconds))))

    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Fixed-window counter: INCR, and EXPIRE only on the first hit."""

        async def _incr_with_expiry() -> int:
            count = await self.client.incr(key)
            if count == 1:
                await self.client.expire(key, max(1, int(ttl_seconds)))
            return int(count)

        return await self._call("incr", key, _incr_with_expiry)

    async def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with `prefix` using SCAN (never KEYS)."""

        async def _scan_and_delete() -> int:
            deleted = 0
            batch = []
            async for key in self.client.scan_iter(match=f"{prefix}*", count=_SCAN_BATCH):
                batch.append(key)
                if len(batch) >= _SCAN_BATCH:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
            return deleted

        return await self._call("delete_by_prefix", prefix, _scan_and_delete)
