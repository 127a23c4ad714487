# taskflow/adapters/outbound/persistence/repositories/user_repository.py

"""
Async repository for User entity (user_repository.py).

Identity store consulted by the session core: lookups by email or id,
creation with an already hashed password, last-login bookkeeping.
Implements IUserRepository following Clean Architecture principles.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskflow.adapters.outbound.persistence.models.user_model import User
from taskflow.application.ports.outbound import IUserRepository
from taskflow.domain.exceptions import DatabaseOperationException, ResourceAlreadyExistsException
from taskflow.domain.models.user_domain_model import User as DomainUser, UserRole, normalize_email
from taskflow.shared.utils.datetime_utils import DateTimeUtil

T = TypeVar("T")


class AsyncUserRepository(IUserRepository):
    """
    Concrete repository for User entity, fully async.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, operation_timeout: float = 5.0):
        self.session_factory = session_factory
        self.operation_timeout = operation_timeout
        self.logger = logging.getLogger(f"{__name__}.{User.__name__}")

    async def _run(self, message: str, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _in_session() -> T:
            async with self.session_factory() as db:
                try:
                    return await fn(db)
                except SQLAlchemyError:
                    await db.rollback()
                    raise

        try:
            return await asyncio.wait_for(_in_session(), timeout=self.operation_timeout)
        except IntegrityError:
            raise
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            self.logger.error(f"{message}: {type(e).__name__}")
            raise DatabaseOperationException(message, original_error=e) from e

    async def get_by_email(self, email: str) -> Optional[DomainUser]:
        async def _get(db: AsyncSession) -> Optional[DomainUser]:
            result = await db.execute(select(User).where(User.email == normalize_email(email)))
            user = result.scalar_one_or_none()
            return user.to_domain() if user else None

        return await self._run("Error fetching user by email", _get)

    async def get(self, id: Any) -> Optional[DomainUser]:
        """Retrieve a user by ID."""

        async def _get(db: AsyncSession) -> Optional[DomainUser]:
            user = await db.get(User, str(id))
            return user.to_domain() if user else None

        return await self._run("Error fetching user", _get)

    async def create(self, id: str, email: str, password_hash: str,
                     role: UserRole = UserRole.standard) -> DomainUser:
        """
        Create a user with an already hashed password.

        Raises:
            ResourceAlreadyExistsException: Email already registered.
        """

        async def _create(db: AsyncSession) -> DomainUser:
            db_user = User(
                id=str(id),
                email=normalize_email(email),
                password_hash=password_hash,
                role=role,
                is_active=True,
                email_verified=False,
            )
            db.add(db_user)
            await db.commit()
            await db.refresh(db_user)
            return db_user.to_domain()

        try:
            return await self._run("Error creating user", _create)
        except IntegrityError:
            self.logger.warning(f"User creation failed - duplicate email (user_id={id})")
            raise ResourceAlreadyExistsException(message="Email already registered")

    async def update_last_login(self, id: str) -> None:
        async def _touch(db: AsyncSession) -> None:
            await db.execute(
                update(User).where(User.id == str(id)).values(last_login_at=DateTimeUtil.for_storage())
            )
            await db.commit()

        await self._run("Error updating last login", _touch)

    async def set_active(self, id: str, is_active: bool) -> None:
        """Activate or deactivate a user (administration and tests)."""

        async def _set(db: AsyncSession) -> None:
            await db.execute(update(User).where(User.id == str(id)).values(is_active=is_active))
            await db.commit()

        await self._run("Error updating user status", _set)
