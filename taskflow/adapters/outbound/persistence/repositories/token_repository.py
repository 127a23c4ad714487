# taskflow/adapters/outbound/persistence/repositories/token_repository.py (async version)

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskflow.adapters.outbound.persistence.models.refresh_token_model import RefreshToken
from taskflow.application.ports.outbound import ITokenLedger
from taskflow.domain.exceptions import DatabaseOperationException
from taskflow.domain.models.token_models import RefreshTokenRecord
from taskflow.domain.services.auth_service import AuthService
from taskflow.shared.utils.datetime_utils import DateTimeUtil

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AsyncTokenRepository(ITokenLedger):
    """
    Repository for the refresh token ledger.

    Every method opens its own session, so calls for different tokens never
    share state, and is bounded by `operation_timeout` seconds. A timeout is
    reported like any other database failure: there is no safe default for
    "did this write happen".
    """

    def __init__(
            self,
            session_factory: async_sessionmaker[AsyncSession],
            *,
            operation_timeout: float = 5.0,
            clock: Callable[[], datetime] = DateTimeUtil.utcnow_naive,
    ):
        self.session_factory = session_factory
        self.operation_timeout = operation_timeout
        self.clock = clock

    async def _run(self, message: str, fn: Callable[[AsyncSession], Awaitable[T]], **context: Any) -> T:
        async def _in_session() -> T:
            async with self.session_factory() as db:
                try:
                    return await fn(db)
                except SQLAlchemyError:
                    await db.rollback()
                    raise

        try:
            return await asyncio.wait_for(_in_session(), timeout=self.operation_timeout)
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            logger.error(f"{message} ({type(e).__name__}) context={context}")
            raise DatabaseOperationException(message=message, details=context, original_error=e) from e

    async def insert(self, record: RefreshTokenRecord) -> RefreshTokenRecord:
        """
        Durably record a newly issued refresh token.

        Args:
            record: The record to insert (token hash only, never the raw token)

        Returns:
            The stored record
        """
        if record.created_at is None:
            record.created_at = self.clock()

        async def _insert(db: AsyncSession) -> RefreshTokenRecord:
            row = RefreshToken.from_domain(record)
            db.add(row)
            await db.commit()
            return row.to_domain()

        return await self._run(
            "Error recording refresh token", _insert, user_id=record.user_id, token_id=record.id
        )

    async def find_active(self, token_id: str, user_id: str, expected_hash: str) -> Optional[RefreshTokenRecord]:
        """
        Find a record that is not revoked, not expired and whose hash matches.

        Returns:
            The active record, or None
        """

        async def _find(db: AsyncSession) -> Optional[RefreshTokenRecord]:
            query = select(RefreshToken).where(
                RefreshToken.id == token_id,
                RefreshToken.user_id == user_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > self.clock(),
            )
            result = await db.execute(query)
            row = result.scalar_one_or_none()
            if row is None or not AuthService.digests_match(row.token_hash, expected_hash):
                return None
            return row.to_domain()

        return await self._run("Error checking refresh token", _find, user_id=user_id, token_id=token_id)

    async def get(self, token_id: str) -> Optional[RefreshTokenRecord]:
        """Fetch a record by id regardless of its state."""

        async def _get(db: AsyncSession) -> Optional[RefreshTokenRecord]:
            row = await db.get(RefreshToken, token_id)
            return row.to_domain() if row else None

        return await self._run("Error fetching refresh token", _get, token_id=token_id)

    async def revoke(self, token_id: str, user_id: str) -> bool:
        """
        Mark one refresh token as revoked.

        Idempotent: a token that is already revoked keeps its original
        revocation time, and an unknown token is not an error.

        Returns:
            True if this call revoked the token, False if nothing changed
        """

        async def _revoke(db: AsyncSession) -> bool:
            stmt = (
                update(RefreshToken)
                .where(
                    RefreshToken.id == token_id,
                    RefreshToken.user_id == user_id,
                    RefreshToken.revoked_at.is_(None),
                )
                .values(revoked_at=self.clock())
            )
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount > 0

        return await self._run("Error revoking refresh token", _revoke, user_id=user_id, token_id=token_id)

    async def revoke_all_for_user(self, user_id: str) -> int:
        """
        Revoke every non-revoked refresh token of a user.

        Returns:
            Number of records revoked
        """

        async def _revoke_all(db: AsyncSession) -> int:
            stmt = (
                update(RefreshToken)
                .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
                .values(revoked_at=self.clock())
            )
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount

        return await self._run("Error revoking user refresh tokens", _revoke_all, user_id=user_id)

    async def sweep_expired(self) -> int:
        """
        Delete records already past their expiry to keep the table size manageable.

        Returns:
            Number of records deleted
        """

        async def _sweep(db: AsyncSession) -> int:
            result = await db.execute(delete(RefreshToken).where(RefreshToken.expires_at < self.clock()))
            await db.commit()
            return result.rowcount

        return await self._run("Error cleaning up expired refresh tokens", _sweep)

    async def list_active_for_user(self, user_id: str) -> List[RefreshTokenRecord]:
        """Active (not revoked, not expired) records of a user, newest first."""

        async def _list(db: AsyncSession) -> List[RefreshTokenRecord]:
            query = (
                select(RefreshToken)
                .where(
                    RefreshToken.user_id == user_id,
                    RefreshToken.revoked_at.is_(None),
                    RefreshToken.expires_at > self.clock(),
                )
                .order_by(RefreshToken.created_at.desc())
            )
            result = await db.execute(query)
            return [row.to_domain() for row in result.scalars().all()]

        return await self._run("Error listing refresh tokens", _list, user_id=user_id)
