# taskflow/application/use_cases/auth_use_cases.py

"""
Service for user authentication.

This module implements signup, signin, access token renewal and logout on top
of the identity store and the session manager, following Clean Architecture
principles.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from taskflow.adapters.outbound.security.password_hasher import PasswordHasher
from taskflow.application.ports.outbound import IUserRepository
from taskflow.application.use_cases.session_use_cases import SessionManager
from taskflow.domain.exceptions import (
    InvalidCredentialsException,
    InvalidTokenException,
    ResourceAlreadyExistsException,
    ResourceNotFoundException,
)
from taskflow.domain.models.token_models import RefreshTokenRecord, TokenPair
from taskflow.domain.models.user_domain_model import User, normalize_email

logger = logging.getLogger(__name__)

# Verified against when the email is unknown, so both failure paths cost one bcrypt check
_DUMMY_PASSWORD = "taskflow-dummy-password"


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: TokenPair


class AsyncAuthService:
    """
    Application service for authentication-related operations.

    Responsibilities:
    - Register new users
    - Authenticate users and issue token pairs
    - Renew access tokens and log users out
    """

    _dummy_hash: Optional[str] = None

    def __init__(self, users: IUserRepository, sessions: SessionManager, hasher: PasswordHasher):
        self.users = users
        self.sessions = sessions
        self.hasher = hasher

    async def _get_dummy_hash(self) -> str:
        if AsyncAuthService._dummy_hash is None:
            AsyncAuthService._dummy_hash = await self.hasher.hash_password(_DUMMY_PASSWORD)
        return AsyncAuthService._dummy_hash

    async def signup(
            self,
            email: str,
            password: str,
            device_info: Optional[str] = None,
            ip_address: Optional[str] = None,
    ) -> AuthResult:
        """
        Register a new user and open a session.

        Raises:
            ResourceAlreadyExistsException: Email already registered.
        """
        email = normalize_email(email)
        if await self.users.get_by_email(email):
            logger.warning("Registration failed - duplicate email")
            raise ResourceAlreadyExistsException(message="Email already registered")

        password_hash = await self.hasher.hash_password(password)
        user = await self.users.create(str(uuid.uuid4()), email, password_hash)

        tokens = await self.sessions.issue(user.id, user.email, user.role, device_info, ip_address)
        logger.info(f"User registered successfully: user_id={user.id}")
        return AuthResult(user=user, tokens=tokens)

    async def signin(
            self,
            email: str,
            password: str,
            device_info: Optional[str] = None,
            ip_address: Optional[str] = None,
    ) -> AuthResult:
        """
        Authenticate a user and open a session.

        Unknown email, inactive account and wrong password all fail the same way.

        Raises:
            InvalidCredentialsException: If credentials are incorrect or the account is inactive.
        """
        user = await self.users.get_by_email(email)

        if user is None:
            await self.hasher.verify_password(password, await self._get_dummy_hash())
            logger.warning("Authentication failed: unknown email")
            raise InvalidCredentialsException()

        password_ok = await self.hasher.verify_password(password, user.password_hash)

        if not user.is_active:
            logger.warning(f"Inactive user tried to sign in: user_id={user.id}")
            raise InvalidCredentialsException(details={"user_id": user.id})

        if not password_ok:
            logger.warning(f"Authentication failed: wrong password for user_id={user.id}")
            raise InvalidCredentialsException(details={"user_id": user.id})

        await self.users.update_last_login(user.id)
        tokens = await self.sessions.issue(user.id, user.email, user.role, device_info, ip_address)

        logger.info(f"User signed in successfully: user_id={user.id}")
        return AuthResult(user=user, tokens=tokens)

    async def refresh(self, refresh_token: Optional[str]) -> str:
        """
        Issue a new access token from the refresh token cookie.

        Raises:
            InvalidTokenException: Missing or malformed refresh token.
            RevokedOrExpiredRefreshException: Refresh token no longer active.
        """
        if not refresh_token:
            raise InvalidTokenException(message="Refresh token not provided")
        return await self.sessions.refresh_access(refresh_token)

    async def logout(self, refresh_token: Optional[str], access_token: Optional[str]) -> bool:
        """
        Best-effort logout.

        A refresh token that cannot be parsed (already expired, tampered) skips
        server-side bookkeeping: the client-side cookie is cleared regardless.
        For a token that verifies, ledger and blacklist failures propagate.

        Returns:
            True if a session was revoked server-side
        """
        if not refresh_token:
            if access_token:
                await self.sessions.blacklist_access_token(access_token)
            return False

        try:
            payload = self.sessions.codec.verify_refresh(refresh_token)
        except InvalidTokenException:
            logger.info("Logout with an unparseable refresh token; clearing cookie only")
            return False

        await self.sessions.logout(payload.subject_id, payload.token_id, access_token)
        return True

    async def revoke_all_sessions(self, user_id: str, current_access_token: Optional[str] = None) -> int:
        """Revoke every refresh token of the user and blacklist the presented access token."""
        count = await self.sessions.revoke_all_for_user(user_id)
        if current_access_token:
            await self.sessions.blacklist_access_token(current_access_token)
        return count

    async def list_sessions(self, user_id: str) -> List[RefreshTokenRecord]:
        return await self.sessions.list_sessions(user_id)

    async def get_current_user(self, user_id: str) -> User:
        """
        Raises:
            ResourceNotFoundException: The user no longer exists.
        """
        user = await self.users.get(user_id)
        if user is None:
            raise ResourceNotFoundException(message="User not found", resource_id=user_id)
        return user
