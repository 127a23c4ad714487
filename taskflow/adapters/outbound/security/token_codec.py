# taskflow/adapters/outbound/security/token_codec.py

"""
Signed token codec for access and refresh tokens.

Both kinds are HMAC-signed JWTs but use distinct secret keys, so a leaked
access key cannot forge refresh tokens and vice versa. Verification checks,
in order: signature, expiry, issuer/audience, discriminator tag. Every
failure collapses into the same InvalidTokenException so callers (and
attackers) cannot tell "expired" from "forged" from "wrong kind".
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from jose import jwt, JWTError

from taskflow.adapters.configuration.config import Settings, MIN_SECRET_BYTES, SUPPORTED_JWT_ALGORITHMS
from taskflow.domain.exceptions import ConfigurationError, InvalidTokenException
from taskflow.domain.models.token_models import AccessTokenPayload, RefreshTokenPayload, TokenType
from taskflow.domain.models.user_domain_model import UserRole
from taskflow.domain.services.auth_service import AuthService
from taskflow.shared.utils.datetime_utils import DateTimeUtil

# Configure logger
logger = logging.getLogger(__name__)

# Signature, issuer/audience and expiry are checked here, in a fixed order
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_iat": False,
    "verify_nbf": False,
}


class TokenCodec:
    """
    Produces and verifies signed bearer tokens.

    Responsibilities:
    - Access token signing/verification (short-lived, stateless)
    - Refresh token signing/verification (long-lived, tracked by the ledger)
    """

    def __init__(
            self,
            access_secret: str,
            refresh_secret: str,
            *,
            algorithm: str = "HS256",
            issuer: str = "taskflow-api",
            audience: str = "taskflow-client",
            access_ttl: timedelta = timedelta(minutes=15),
            refresh_ttl: timedelta = timedelta(days=7),
            leeway_seconds: int = 0,
            clock: Callable[[], datetime] = DateTimeUtil.utcnow,
    ):
        self._validate_secret("access", access_secret)
        self._validate_secret("refresh", refresh_secret)
        if access_secret == refresh_secret:
            raise ConfigurationError("Access and refresh signing secrets must be different")
        if algorithm not in SUPPORTED_JWT_ALGORITHMS:
            raise ConfigurationError(f"Unsupported JWT algorithm: {algorithm}")

        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.leeway_seconds = leeway_seconds
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "TokenCodec":
        return cls(
            access_secret=settings.JWT_ACCESS_SECRET.get_secret_value(),
            refresh_secret=settings.JWT_REFRESH_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            leeway_seconds=settings.JWT_LEEWAY_SECONDS,
            **kwargs,
        )

    @staticmethod
    def _validate_secret(kind: str, secret: Optional[str]) -> None:
        if not secret:
            raise ConfigurationError(f"The {kind} token secret is not set")
        if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigurationError(f"The {kind} token secret must be at least {MIN_SECRET_BYTES} bytes long")

    # ———— SIGNING ————

    def _sign(self, subject: str, token_type: TokenType, ttl: timedelta, secret: str,
              claims: Dict[str, Any]) -> str:
        now = self.clock()
        payload = AuthService.create_token_payload(
            subject=subject,
            issued_at=now,
            expires_at=now + ttl,
            token_type=token_type,
            issuer=self.issuer,
            audience=self.audience,
            additional_claims=claims,
        )
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def sign_access(self, user_id: str, email: str, role: UserRole) -> str:
        """
        Create a short-lived access token.

        Each token gets its own `jti`, so two sessions opened in the same second
        never share an access token (nor a blacklist entry).
        """
        token = self._sign(
            str(user_id), TokenType.access, self.access_ttl, self._access_secret,
            {"email": email, "role": UserRole(role).value, "jti": str(uuid.uuid4())},
        )
        logger.debug(f"Access token created for subject={user_id}")
        return token

    def sign_refresh(self, user_id: str, token_id: str) -> str:
        """Create a long-lived refresh token carrying its ledger identifier."""
        token = self._sign(
            str(user_id), TokenType.refresh, self.refresh_ttl, self._refresh_secret,
            {"jti": str(token_id)},
        )
        logger.debug(f"Refresh token created for subject={user_id} token_id={token_id}")
        return token

    # ———— VERIFICATION ————

    def _decode(self, token: str, secret: str, expected_type: TokenType) -> Dict[str, Any]:
        if not token or not isinstance(token, str):
            raise InvalidTokenException()
        try:
            # 1. signature
            claims = jwt.decode(token, secret, algorithms=[self.algorithm], options=_DECODE_OPTIONS)
        except JWTError as e:
            logger.debug(f"{expected_type.value} token rejected: {type(e).__name__}")
            raise InvalidTokenException() from None

        # 2. expiry
        exp = claims.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise InvalidTokenException()
        now = DateTimeUtil.datetime_to_timestamp(self.clock())
        if exp + self.leeway_seconds <= now:
            raise InvalidTokenException()

        # 3. issuer / audience
        if claims.get("iss") != self.issuer or claims.get("aud") != self.audience:
            raise InvalidTokenException()

        # 4. discriminator tag
        if claims.get("type") != expected_type.value:
            raise InvalidTokenException()

        if not claims.get("sub"):
            raise InvalidTokenException()
        return claims

    def verify_access(self, token: str) -> AccessTokenPayload:
        """
        Validate an access token.

        Raises:
            InvalidTokenException: On any failure.
        """
        claims = self._decode(token, self._access_secret, TokenType.access)
        email = claims.get("email")
        token_id = claims.get("jti")
        try:
            role = UserRole(claims.get("role"))
        except ValueError:
            raise InvalidTokenException() from None
        if not email or not token_id:
            raise InvalidTokenException()

        return AccessTokenPayload(
            subject_id=claims["sub"],
            token_id=token_id,
            email=email,
            role=role,
            issuer=claims["iss"],
            audience=claims["aud"],
            expires_at=claims["exp"],
            issued_at=claims.get("iat"),
        )

    def verify_refresh(self, token: str) -> RefreshTokenPayload:
        """
        Validate a refresh token's signature and shape (not its ledger state).

        Raises:
            InvalidTokenException: On any failure.
        """
        claims = self._decode(token, self._refresh_secret, TokenType.refresh)
        token_id = claims.get("jti")
        if not token_id:
            raise InvalidTokenException()

        return RefreshTokenPayload(
            subject_id=claims["sub"],
            token_id=token_id,
            issuer=claims["iss"],
            audience=claims["aud"],
            expires_at=claims["exp"],
            issued_at=claims.get("iat"),
        )

    # ———— HELPERS ————

    def remaining_lifetime(self, expires_at: int) -> int:
        """Seconds left until the epoch `expires_at`, clamped at zero."""
        now = DateTimeUtil.datetime_to_timestamp(self.clock())
        return max(0, int(expires_at) - now)
