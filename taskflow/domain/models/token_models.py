# taskflow/domain/models/token_models.py

"""
Modelos de domínio para tokens e sessões.

Payloads exist only inside signed tokens; RefreshTokenRecord mirrors one row
of the refresh token ledger.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from taskflow.domain.models.user_domain_model import UserRole


class TokenType(str, Enum):
    """Discriminator tag embedded in every signed token."""
    access = "access"
    refresh = "refresh"


@dataclass(frozen=True)
class AccessTokenPayload:
    subject_id: str
    token_id: str
    email: str
    role: UserRole
    issuer: str
    audience: str
    expires_at: int
    issued_at: Optional[int] = None
    type: TokenType = TokenType.access


@dataclass(frozen=True)
class RefreshTokenPayload:
    subject_id: str
    token_id: str
    issuer: str
    audience: str
    expires_at: int
    issued_at: Optional[int] = None
    type: TokenType = TokenType.refresh


@dataclass(frozen=True)
class TokenPair:
    """Result of a successful issuance. `token_id` identifies the refresh token."""
    access_token: str
    refresh_token: str
    token_id: str
    refresh_expires_at: datetime


@dataclass
class RefreshTokenRecord:
    """
    Ledger row for one issued refresh token.

    A record with `revoked_at` set is permanently invalid regardless of expiry.
    Timestamps are naive UTC.
    """
    id: str
    user_id: str
    token_hash: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    device_info: Optional[str] = None
    ip_address: Optional[str] = None
