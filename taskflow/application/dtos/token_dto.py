# taskflow/application/dtos/token_dto.py

"""
Schemas for token responses and session listings.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from taskflow.application.dtos.base_dto import CustomBaseModel
from taskflow.application.dtos.user_dto import UserOutput


class AccessTokenData(CustomBaseModel):
    access_token: str = Field(..., description="Short-lived bearer token.")
    token_type: str = Field("bearer", description="Always 'bearer'.")


class AuthData(AccessTokenData):
    user: UserOutput


class SessionOutput(CustomBaseModel):
    """One active refresh token. The token hash is never exposed."""
    id: str = Field(..., description="Refresh token identifier.")
    created_at: Optional[datetime] = None
    expires_at: datetime
    device_info: Optional[str] = None
    ip_address: Optional[str] = None
    current: bool = Field(False, description="True for the session making this request.")
