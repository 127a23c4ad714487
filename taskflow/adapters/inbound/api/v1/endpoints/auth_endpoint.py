# taskflow/adapters/inbound/api/v1/endpoints/auth_endpoint.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from taskflow.adapters.configuration.config import settings
from taskflow.adapters.inbound.api.deps import (
    authenticate,
    client_ip,
    get_auth_service,
    get_bearer_token,
    limit_auth_attempts,
    require_admin,
)
from taskflow.application.dtos import AccessTokenData, AuthData, SessionOutput, UserCreate, UserLogin, UserOutput
from taskflow.application.use_cases.attempt_limiter import AuthAttemptLimiter
from taskflow.application.use_cases.auth_use_cases import AsyncAuthService, AuthResult
from taskflow.domain.exceptions import (
    InvalidCredentialsException,
    InvalidTokenException,
    ResourceAlreadyExistsException,
    TransientStoreFailure,
)
from taskflow.domain.models.token_models import AccessTokenPayload
from taskflow.shared.utils.error_responses import auth_errors
from taskflow.shared.utils.success_responses import auth_success

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={404: {"description": "Not found"}}
)


def _client_context(request: Request):
    return request.headers.get("user-agent"), client_ip(request)


# Failures counted against the client by the auth attempt limiter
_COUNTED_FAILURES = (InvalidCredentialsException, ResourceAlreadyExistsException)


def _set_refresh_cookie(response: Response, result: AuthResult) -> None:
    """HTTP-only, SameSite=strict refresh cookie scoped to the auth routes."""
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=result.tokens.refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        path=settings.COOKIE_PATH,
        domain=settings.COOKIE_DOMAIN,
        secure=settings.is_production,
        httponly=True,
        samesite=settings.COOKIE_SAMESITE,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        path=settings.COOKIE_PATH,
        domain=settings.COOKIE_DOMAIN,
        secure=settings.is_production,
        httponly=True,
        samesite=settings.COOKIE_SAMESITE,
    )


def _auth_payload(result: AuthResult) -> dict:
    data = AuthData(
        access_token=result.tokens.access_token,
        user=UserOutput.model_validate(result.user),
    )
    return {"success": True, "data": data.model_dump(mode="json")}


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Creates the account and opens a session. The refresh token is set as an HTTP-only cookie.",
    responses={**auth_success, **auth_errors}
)
async def signup(
        user_input: UserCreate,
        request: Request,
        response: Response,
        service: AsyncAuthService = Depends(get_auth_service),
        limiter: AuthAttemptLimiter = Depends(limit_auth_attempts),
):
    device_info, ip_address = _client_context(request)
    try:
        result = await service.signup(user_input.email, user_input.password, device_info, ip_address)
    except _COUNTED_FAILURES:
        await limiter.record_failure(ip_address)
        raise
    _set_refresh_cookie(response, result)
    return _auth_payload(result)


@router.post(
    "/signin",
    status_code=status.HTTP_200_OK,
    summary="Sign in",
    description="Authenticates user credentials and returns an access token plus a refresh token cookie.",
    responses={**auth_success, **auth_errors}
)
async def signin(
        user_input: UserLogin,
        request: Request,
        response: Response,
        service: AsyncAuthService = Depends(get_auth_service),
        limiter: AuthAttemptLimiter = Depends(limit_auth_attempts),
):
    device_info, ip_address = _client_context(request)
    try:
        result = await service.signin(user_input.email, user_input.password, device_info, ip_address)
    except _COUNTED_FAILURES:
        await limiter.record_failure(ip_address)
        raise
    _set_refresh_cookie(response, result)
    return _auth_payload(result)


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
    description="Issues a new access token from the refresh token cookie. The refresh token is not rotated.",
    responses=auth_errors
)
async def refresh(
        request: Request,
        service: AsyncAuthService = Depends(get_auth_service),
):
    access_token = await service.refresh(request.cookies.get(settings.REFRESH_COOKIE_NAME))
    return {"success": True, "data": AccessTokenData(access_token=access_token).model_dump()}


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="Logout",
    description="Revokes the refresh token, blacklists the presented access token and clears the cookie.",
    responses=auth_errors
)
async def logout(
        request: Request,
        access_token: Optional[str] = Depends(get_bearer_token),
        service: AsyncAuthService = Depends(get_auth_service),
):
    try:
        await service.logout(request.cookies.get(settings.REFRESH_COOKIE_NAME), access_token)
    except TransientStoreFailure as e:
        # Not reported as success, but the cookie is cleared either way
        logger.error(f"Logout could not be recorded: {e.internal_code} details={e.details}")
        error = JSONResponse(
            status_code=e.status_code,
            content={"success": False, "error": e.message, "code": e.internal_code},
        )
        _clear_refresh_cookie(error)
        return error

    response = JSONResponse(content={"success": True, "message": "Logged out successfully"})
    _clear_refresh_cookie(response)
    return response


@router.post(
    "/logout-all",
    status_code=status.HTTP_200_OK,
    summary="Logout from every device",
    description="Revokes every refresh token of the current user and blacklists the presented access token.",
    responses=auth_errors
)
async def logout_all(
        request: Request,
        current_user: AccessTokenPayload = Depends(authenticate),
        service: AsyncAuthService = Depends(get_auth_service),
):
    count = await service.revoke_all_sessions(current_user.subject_id, request.state.access_token)
    response = JSONResponse(content={"success": True, "data": {"revoked_sessions": count}})
    _clear_refresh_cookie(response)
    return response


@router.get(
    "/user",
    status_code=status.HTTP_200_OK,
    summary="Current user",
    responses=auth_errors
)
async def get_user(
        current_user: AccessTokenPayload = Depends(authenticate),
        service: AsyncAuthService = Depends(get_auth_service),
):
    user = await service.get_current_user(current_user.subject_id)
    return {"success": True, "data": {"user": UserOutput.model_validate(user).model_dump(mode="json")}}


@router.get(
    "/sessions",
    status_code=status.HTTP_200_OK,
    summary="Active sessions",
    description="Lists the current user's active refresh tokens (never their hashes).",
    responses=auth_errors
)
async def list_sessions(
        request: Request,
        current_user: AccessTokenPayload = Depends(authenticate),
        service: AsyncAuthService = Depends(get_auth_service),
):
    current_token_id = None
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if refresh_token:
        try:
            current_token_id = service.sessions.codec.verify_refresh(refresh_token).token_id
        except InvalidTokenException:
            current_token_id = None

    records = await service.list_sessions(current_user.subject_id)
    sessions = [
        SessionOutput(
            id=record.id,
            created_at=record.created_at,
            expires_at=record.expires_at,
            device_info=record.device_info,
            ip_address=record.ip_address,
            current=record.id == current_token_id,
        ).model_dump(mode="json")
        for record in records
    ]
    return {"success": True, "data": {"sessions": sessions}}


@router.post(
    "/users/{user_id}/revoke-sessions",
    status_code=status.HTTP_200_OK,
    summary="Revoke every session of a user (administrators)",
    responses=auth_errors
)
async def revoke_user_sessions(
        user_id: str,
        admin: AccessTokenPayload = Depends(require_admin),
        service: AsyncAuthService = Depends(get_auth_service),
):
    await service.get_current_user(user_id)
    count = await service.revoke_all_sessions(user_id)
    logger.info(f"Administrator {admin.subject_id} revoked {count} session(s) of user_id={user_id}")
    return {"success": True, "data": {"revoked_sessions": count}}
