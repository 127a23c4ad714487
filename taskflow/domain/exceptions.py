# taskflow/domain/exceptions.py

"""
Domain exceptions for the identity and session core.

Every exception that may reach the HTTP layer derives from DomainException,
which carries an HTTP status, an internal code and a structured `details`
dict. `details` holds context for logging (user id, token id, failed step)
and must never contain raw tokens, token hashes or passwords.
"""

from typing import Any, Dict, List, Optional


class DomainException(Exception):
    """Base class for domain errors rendered by ErrorHandlerMiddleware."""

    status_code: int = 400
    internal_code: str = "DOMAIN_ERROR"
    default_message: str = "Domain error."

    def __init__(
            self,
            message: Optional[str] = None,
            details: Optional[Dict[str, Any]] = None,
            original_error: Optional[BaseException] = None,
    ):
        self.message = message or self.default_message
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


########################################################################
# Authentication
########################################################################

class InvalidCredentialsException(DomainException):
    """Wrong email/password or inactive account. Always one generic message."""

    status_code = 401
    internal_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class InvalidTokenException(DomainException):
    """Any access or refresh token verification failure (forged, expired, wrong kind)."""

    status_code = 401
    internal_code = "INVALID_TOKEN"
    default_message = "Invalid or expired token"


class RevokedOrExpiredRefreshException(DomainException):
    """Refresh token is revoked, expired or was never issued."""

    status_code = 401
    internal_code = "INVALID_REFRESH_TOKEN"
    default_message = "Invalid or expired refresh token"


class ForbiddenException(DomainException):
    status_code = 403
    internal_code = "FORBIDDEN"
    default_message = "Insufficient permissions"


########################################################################
# Resources
########################################################################

class ResourceNotFoundException(DomainException):
    status_code = 404
    internal_code = "RESOURCE_NOT_FOUND"
    default_message = "Resource not found."

    def __init__(self, message: Optional[str] = None, resource_id: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        if resource_id is not None:
            self.details.setdefault("resource_id", str(resource_id))


class ResourceAlreadyExistsException(DomainException):
    status_code = 409
    internal_code = "RESOURCE_ALREADY_EXISTS"
    default_message = "Resource already exists."


class TooManyAttemptsException(DomainException):
    """Too many failed authentication attempts from one client within the window."""

    status_code = 429
    internal_code = "TOO_MANY_ATTEMPTS"
    default_message = "Too many authentication attempts, please try again later"

    def __init__(self, retry_after: int, **kwargs):
        super().__init__(**kwargs)
        self.retry_after = max(1, int(retry_after))
        self.headers = {"Retry-After": str(self.retry_after)}


########################################################################
# Stores (ledger and cache)
########################################################################

class TransientStoreFailure(DomainException):
    """The cache or the ledger could not be reached or timed out."""

    status_code = 503
    internal_code = "STORE_UNAVAILABLE"
    default_message = "Storage temporarily unavailable."


class CacheUnavailableException(TransientStoreFailure):
    internal_code = "CACHE_UNAVAILABLE"
    default_message = "Revocation cache unavailable."


class DatabaseOperationException(TransientStoreFailure):
    internal_code = "DATABASE_ERROR"
    default_message = "Database operation failed."


class LogoutIncompleteException(TransientStoreFailure):
    """
    One or more logout steps could not be recorded.

    All steps are attempted before this is raised; `failed_steps` names the
    ones that failed ("revoke_refresh", "blacklist_access").
    """

    internal_code = "LOGOUT_INCOMPLETE"
    default_message = "Logout could not be fully recorded."

    def __init__(self, failed_steps: List[str], errors: List[BaseException], **kwargs):
        self.failed_steps = list(failed_steps)
        self.errors = list(errors)
        super().__init__(original_error=errors[0] if errors else None, **kwargs)
        self.details["failed_steps"] = self.failed_steps


########################################################################
# Startup
########################################################################

class ConfigurationError(Exception):
    """Invalid or missing deployment configuration. Fatal: the process must not start."""
