# taskflow/domain/services/auth_service.py

import hashlib
import hmac
from datetime import datetime
from typing import Optional, Dict, Any

from taskflow.domain.models.token_models import TokenType
from taskflow.shared.utils.datetime_utils import DateTimeUtil


class AuthService:
    """
    Domain service for authentication-related business logic.
    """

    @staticmethod
    def create_token_payload(
            subject: str,
            issued_at: datetime,
            expires_at: datetime,
            token_type: TokenType,
            issuer: str,
            audience: str,
            additional_claims: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a token payload with standard claims.

        Args:
            subject: The subject of the token (user ID)
            issued_at: Issuance instant
            expires_at: Expiry instant
            token_type: Discriminator tag ("access" or "refresh")
            issuer: Issuer claim
            audience: Audience claim
            additional_claims: Kind-specific claims

        Returns:
            Dict with all token claims
        """
        payload = {
            "sub": str(subject),
            "type": token_type.value,
            "iss": issuer,
            "aud": audience,
            "iat": DateTimeUtil.datetime_to_timestamp(issued_at),
            "exp": DateTimeUtil.datetime_to_timestamp(expires_at),
        }

        # Standard claims always win over additional ones
        if additional_claims:
            payload = {**additional_claims, **payload}

        return payload

    @staticmethod
    def digest_token(token: str, key: str) -> str:
        """
        Keyed one-way digest of a raw token, stored instead of the token itself.

        HMAC-SHA256 with a server-side key: fast and deterministic so it can be
        used as a lookup value, unlike the adaptive password hash.
        """
        return hmac.new(key.encode("utf-8"), token.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def digests_match(expected: Optional[str], presented: str) -> bool:
        """Constant-time comparison of two token digests."""
        if not expected:
            return False
        return hmac.compare_digest(expected, presented)
