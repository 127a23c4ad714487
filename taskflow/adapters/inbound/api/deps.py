# taskflow/adapters/inbound/api/deps.py (async version)

"""
Dependencies for injection into API endpoints.

This module defines functions that provide dependencies via FastAPI
Depends() for the session core and the per-request authentication gate.

Gate order: bearer token present -> not blacklisted -> signature, expiry,
issuer/audience and token kind valid. Every failure is the same 401.
"""

import logging
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskflow.application.use_cases.attempt_limiter import AuthAttemptLimiter
from taskflow.application.use_cases.auth_use_cases import AsyncAuthService
from taskflow.application.use_cases.session_use_cases import SessionManager
from taskflow.domain.exceptions import DomainException, ForbiddenException, InvalidTokenException
from taskflow.domain.models.token_models import AccessTokenPayload
from taskflow.domain.models.user_domain_model import UserRole

# Configure logger
logger = logging.getLogger(__name__)

# auto_error=False: a missing header is reported by the gate itself, in the API error format
bearer_scheme = HTTPBearer(auto_error=False)


########################################################################
# Service providers
########################################################################

def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_auth_service(request: Request) -> AsyncAuthService:
    return request.app.state.auth_service


def get_attempt_limiter(request: Request) -> AuthAttemptLimiter:
    return request.app.state.attempt_limiter


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_bearer_token(
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[str]:
    """Raw bearer token, or None when the header is absent or not a Bearer header."""
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


########################################################################
# Rate limiting
########################################################################


async def limit_auth_attempts(
        request: Request,
        limiter: AuthAttemptLimiter = Depends(get_attempt_limiter),
) -> AuthAttemptLimiter:
    """
    Refuse signup/signin (429) once the client IP used up its failed attempts.

    The endpoint reports failures back through `limiter.record_failure`.
    """
    await limiter.check(client_ip(request))
    return limiter


########################################################################
# Authentication gate
########################################################################


async def authenticate(
        request: Request,
        token: Optional[str] = Depends(get_bearer_token),
        sessions: SessionManager = Depends(get_session_manager),
) -> AccessTokenPayload:
    """
    Require a valid, non-blacklisted access token.

    On success the decoded payload is attached to `request.state.user`.

    Raises:
        InvalidTokenException: Missing, blacklisted, forged, expired or wrong-kind token.
    """
    if token is None:
        raise InvalidTokenException(message="No token provided")

    payload = await sessions.authenticate_access(token)

    request.state.user = payload
    request.state.access_token = token
    return payload


async def optional_authenticate(
        request: Request,
        token: Optional[str] = Depends(get_bearer_token),
        sessions: SessionManager = Depends(get_session_manager),
) -> Optional[AccessTokenPayload]:
    """
    Same checks as `authenticate`, but any failure proceeds unauthenticated.
    """
    request.state.user = None
    if token is None:
        return None

    try:
        payload = await sessions.authenticate_access(token)
    except DomainException as e:
        logger.debug(f"Optional authentication skipped: {e.internal_code}")
        return None

    request.state.user = payload
    request.state.access_token = token
    return payload


########################################################################
# Authorization
########################################################################


def require_role(*allowed_roles: UserRole):
    """
    Dependency factory: the authenticated user's role must be one of `allowed_roles`.

    Usage: Depends(require_role(UserRole.administrator))
    """

    async def check_role(current_user: AccessTokenPayload = Depends(authenticate)) -> AccessTokenPayload:
        if current_user.role not in allowed_roles:
            logger.warning(f"User {current_user.subject_id} lacks role {[r.value for r in allowed_roles]}")
            raise ForbiddenException(details={"user_id": current_user.subject_id})
        return current_user

    return check_role


require_admin = require_role(UserRole.administrator)
