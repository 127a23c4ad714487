# taskflow/application/use_cases/session_use_cases.py

"""
Session manager: issuance, validation, renewal and revocation of token pairs.

Refresh token lineage: ISSUED -> ACTIVE -> (REVOKED | EXPIRED). ACTIVE is not
stored; it is "record exists, not revoked, not expired". Revoked and expired
tokens are rejected the same way.

Two stores are involved and are updated independently:
- the ledger (database), authoritative for refresh tokens;
- the revocation cache (Redis), holding the refresh whitelist in front of the
  ledger and the access token blacklist.

Cache read failures are treated as misses; ledger failures always propagate.
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from taskflow.adapters.outbound.security.token_codec import TokenCodec
from taskflow.application.ports.outbound import IRevocationCache, ITokenLedger, IUserRepository
from taskflow.domain.exceptions import (
    CacheUnavailableException,
    InvalidTokenException,
    LogoutIncompleteException,
    RevokedOrExpiredRefreshException,
    TransientStoreFailure,
)
from taskflow.domain.models.token_models import AccessTokenPayload, RefreshTokenRecord, TokenPair
from taskflow.domain.models.user_domain_model import UserRole
from taskflow.domain.services.auth_service import AuthService
from taskflow.shared.utils.datetime_utils import DateTimeUtil

logger = logging.getLogger(__name__)

# Redis key prefixes
REFRESH_WHITELIST_PREFIX = "refresh:"
ACCESS_BLACKLIST_PREFIX = "blacklist:access:"

DEVICE_INFO_MAX_LENGTH = 512
IP_ADDRESS_MAX_LENGTH = 45


class SessionManager:
    """
    Orchestrates the token codec, the ledger and the revocation cache.

    Holds no per-request state: every collaborator is injected and all shared
    state lives in the ledger and the cache, so operations on different
    (user_id, token_id) pairs can run concurrently.
    """

    def __init__(
            self,
            codec: TokenCodec,
            ledger: ITokenLedger,
            cache: IRevocationCache,
            users: IUserRepository,
            *,
            token_hash_key: str,
            whitelist_ttl_seconds: int = 7 * 24 * 60 * 60,
            clock: Callable[[], datetime] = DateTimeUtil.utcnow,
    ):
        self.codec = codec
        self.ledger = ledger
        self.cache = cache
        self.users = users
        self._token_hash_key = token_hash_key
        self.whitelist_ttl_seconds = whitelist_ttl_seconds
        self.clock = clock

    # ———— KEYS AND DIGESTS ————

    def digest(self, token: str) -> str:
        return AuthService.digest_token(token, self._token_hash_key)

    @staticmethod
    def whitelist_key(user_id: str, token_id: str) -> str:
        return f"{REFRESH_WHITELIST_PREFIX}{user_id}:{token_id}"

    def blacklist_key(self, access_token: str) -> str:
        return f"{ACCESS_BLACKLIST_PREFIX}{self.digest(access_token)}"

    def _now(self) -> datetime:
        return DateTimeUtil.for_storage(self.clock())

    # ———— WHITELIST ————

    def _whitelist_ttl(self, expires_at: datetime) -> int:
        """Cache TTL for a record: never longer than the record itself lives."""
        return min(self.whitelist_ttl_seconds, DateTimeUtil.seconds_until(expires_at, self._now()))

    async def _whitelist(self, user_id: str, token_id: str, token_hash: str, expires_at: datetime) -> None:
        """Best-effort whitelist write: the ledger stays authoritative if this fails."""
        value = json.dumps({"hash": token_hash, "expires_at": DateTimeUtil.datetime_to_timestamp(expires_at)})
        try:
            await self.cache.put(self.whitelist_key(user_id, token_id), value, self._whitelist_ttl(expires_at))
        except CacheUnavailableException:
            logger.warning(f"Could not whitelist refresh token user_id={user_id} token_id={token_id}")

    async def _read_whitelist(self, user_id: str, token_id: str) -> Optional[Tuple[str, int]]:
        """(hash, expires_at epoch) from the whitelist; cache errors and bad entries are misses."""
        try:
            raw = await self.cache.get(self.whitelist_key(user_id, token_id))
        except CacheUnavailableException:
            logger.warning(f"Whitelist lookup failed, falling back to ledger user_id={user_id} token_id={token_id}")
            return None
        if not raw:
            return None
        try:
            entry = json.loads(raw)
            return str(entry["hash"]), int(entry["expires_at"])
        except (ValueError, TypeError, KeyError):
            logger.warning(f"Corrupted whitelist entry user_id={user_id} token_id={token_id}")
            return None

    # ———— OPERATIONS ————

    async def issue(
            self,
            user_id: str,
            email: str,
            role: UserRole,
            device_info: Optional[str] = None,
            ip_address: Optional[str] = None,
    ) -> TokenPair:
        """
        Mint an access/refresh token pair and record the refresh token.

        Every call mints a brand-new token id, so retries never collide.

        Raises:
            DatabaseOperationException: The refresh token could not be recorded.
        """
        token_id = str(uuid.uuid4())
        access_token = self.codec.sign_access(user_id, email, role)
        refresh_token = self.codec.sign_refresh(user_id, token_id)
        token_hash = self.digest(refresh_token)

        now = self._now()
        expires_at = now + self.codec.refresh_ttl

        await self.ledger.insert(
            RefreshTokenRecord(
                id=token_id,
                user_id=str(user_id),
                token_hash=token_hash,
                expires_at=expires_at,
                created_at=now,
                device_info=device_info[:DEVICE_INFO_MAX_LENGTH] if device_info else None,
                ip_address=ip_address[:IP_ADDRESS_MAX_LENGTH] if ip_address else None,
            )
        )
        await self._whitelist(str(user_id), token_id, token_hash, expires_at)

        logger.info(f"Session issued user_id={user_id} token_id={token_id}")
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            token_id=token_id,
            refresh_expires_at=expires_at,
        )

    async def validate_refresh(self, raw_token: str, user_id: str, token_id: str) -> bool:
        """
        Check that a refresh token is still active: whitelist first, then ledger.

        A whitelist hit slides the entry's TTL forward, capped at the record's
        real expiry. A missing or mismatching entry falls through to the
        ledger, whose answer is authoritative.

        Raises:
            DatabaseOperationException: The ledger could not be queried.
        """
        presented = self.digest(raw_token)
        now = self._now()

        cached = await self._read_whitelist(user_id, token_id)
        if cached is not None:
            cached_hash, cached_expiry = cached
            expires_at = DateTimeUtil.for_storage(DateTimeUtil.timestamp_to_datetime(cached_expiry))
            if AuthService.digests_match(cached_hash, presented) and expires_at > now:
                try:
                    await self.cache.expire(self.whitelist_key(user_id, token_id), self._whitelist_ttl(expires_at))
                except CacheUnavailableException:
                    logger.debug(f"Could not extend whitelist TTL token_id={token_id}")
                return True

        record = await self.ledger.find_active(token_id, user_id, presented)
        if record is None:
            logger.info(f"Refresh token rejected user_id={user_id} token_id={token_id}")
            return False

        await self._whitelist(user_id, token_id, record.token_hash, record.expires_at)
        return True

    async def refresh_access(
            self,
            raw_refresh_token: str,
            user_id: Optional[str] = None,
            token_id: Optional[str] = None,
    ) -> str:
        """
        Mint a new access token from a valid refresh token.

        The refresh token itself is not rotated: it stays valid until it
        expires or is revoked.

        Raises:
            InvalidTokenException: Refresh token signature/shape is invalid.
            RevokedOrExpiredRefreshException: Token revoked, expired, unknown,
                or its owner is missing/inactive.
        """
        payload = self.codec.verify_refresh(raw_refresh_token)
        user_id = user_id or payload.subject_id
        token_id = token_id or payload.token_id
        context = {"user_id": user_id, "token_id": token_id}

        if user_id != payload.subject_id or token_id != payload.token_id:
            logger.warning(f"Refresh token claims do not match the requested session {context}")
            raise RevokedOrExpiredRefreshException(details=context)

        if not await self.validate_refresh(raw_refresh_token, user_id, token_id):
            raise RevokedOrExpiredRefreshException(details=context)

        user = await self.users.get(user_id)
        if user is None or not user.is_active:
            logger.warning(f"User not found or inactive during refresh user_id={user_id}")
            raise RevokedOrExpiredRefreshException(details=context)

        logger.info(f"Access token renewed user_id={user_id} token_id={token_id}")
        return self.codec.sign_access(user.id, user.email, user.role)

    async def logout(
            self,
            user_id: str,
            token_id: str,
            live_access_token: Optional[str] = None,
            access_ttl_seconds: Optional[int] = None,
    ) -> None:
        """
        Revoke a refresh token and blacklist the access token still in use.

        Every step is attempted even when an earlier one fails. Clearing the
        whitelist entry is best effort (it expires by TTL at worst); failing to
        revoke in the ledger or to blacklist the access token is reported.
        Calling it again with the same arguments is harmless.

        Raises:
            LogoutIncompleteException: Ledger revocation and/or blacklisting failed.
        """
        context = {"user_id": user_id, "token_id": token_id}
        failed_steps: List[str] = []
        errors: List[BaseException] = []

        try:
            await self.ledger.revoke(token_id, user_id)
        except TransientStoreFailure as e:
            failed_steps.append("revoke_refresh")
            errors.append(e)

        try:
            await self.cache.delete(self.whitelist_key(user_id, token_id))
        except CacheUnavailableException:
            logger.warning(f"Could not clear whitelist entry on logout {context}")

        if live_access_token:
            try:
                await self.blacklist_access_token(live_access_token, access_ttl_seconds)
            except TransientStoreFailure as e:
                failed_steps.append("blacklist_access")
                errors.append(e)

        if failed_steps:
            logger.error(f"Logout incomplete {context} failed_steps={failed_steps}")
            raise LogoutIncompleteException(failed_steps, errors, details=dict(context))

        logger.info(f"User logged out {context}")

    async def revoke_all_for_user(self, user_id: str) -> int:
        """
        Revoke every refresh token of a user (password change, account deletion, compromise).

        Access tokens already issued are untouched; callers blacklist the
        presented one explicitly.

        Returns:
            Number of ledger records revoked
        """
        count = await self.ledger.revoke_all_for_user(user_id)
        try:
            await self.cache.delete_by_prefix(f"{REFRESH_WHITELIST_PREFIX}{user_id}:")
        except CacheUnavailableException:
            logger.warning(f"Could not clear whitelist entries for user_id={user_id}")
        logger.info(f"Revoked {count} refresh token(s) for user_id={user_id}")
        return count

    # ———— ACCESS TOKEN BLACKLIST ————

    async def blacklist_access_token(self, access_token: str, ttl_seconds: Optional[int] = None) -> bool:
        """
        Reject this exact access token until it would have expired anyway.

        Only tokens that verify are stored: a forged or already expired token
        is refused by the gate on its own. The TTL comes from the verified
        `exp` and never exceeds the access token lifetime.

        Returns:
            False when there is nothing to store (invalid token or no lifetime left)

        Raises:
            CacheUnavailableException: The blacklist entry could not be written.
        """
        try:
            payload = self.codec.verify_access(access_token)
        except InvalidTokenException:
            logger.debug("Access token not blacklisted: it does not verify")
            return False

        remaining = self.codec.remaining_lifetime(payload.expires_at)
        if ttl_seconds is not None:
            remaining = min(remaining, int(ttl_seconds))
        ttl_seconds = min(remaining, int(self.codec.access_ttl.total_seconds()))
        if ttl_seconds <= 0:
            return False
        await self.cache.put(self.blacklist_key(access_token), "1", ttl_seconds)
        return True

    async def is_access_token_blacklisted(self, access_token: str) -> bool:
        """
        Blacklist lookup. A cache failure counts as "not blacklisted"; the
        caller must still verify the token's signature and expiry.
        """
        try:
            return await self.cache.exists(self.blacklist_key(access_token))
        except CacheUnavailableException:
            logger.warning("Blacklist lookup failed, relying on signature and expiry checks")
            return False

    async def authenticate_access(self, access_token: str) -> AccessTokenPayload:
        """
        Blacklist check, then signature/expiry/claims verification.

        Raises:
            InvalidTokenException: Blacklisted or invalid token.
        """
        if await self.is_access_token_blacklisted(access_token):
            logger.info("Blacklisted access token presented")
            raise InvalidTokenException()
        return self.codec.verify_access(access_token)

    # ———— SESSIONS ————

    async def list_sessions(self, user_id: str) -> List[RefreshTokenRecord]:
        return await self.ledger.list_active_for_user(user_id)
