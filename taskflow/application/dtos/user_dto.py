# taskflow/application/dtos/user_dto.py

"""
Schemas for user data.

This module defines DTOs (Data Transfer Objects) for validating and
serializing data related to users: signup, signin and the public profile.
The password hash never appears in any output schema.
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from taskflow.application.dtos.base_dto import CustomBaseModel
from taskflow.domain.models.user_domain_model import UserRole, normalize_email


class UserBase(CustomBaseModel):
    """
    Schema base for user data.
    """
    email: EmailStr = Field(..., max_length=255, description="Email of the user. Must be valid and unique.")

    @field_validator("email")
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class UserLogin(UserBase):
    """
    Schema for user signin.
    """
    password: str = Field(..., min_length=1, max_length=128, description="User's password.")


class UserCreate(UserBase):
    """
    Schema for creating a new user.
    """
    password: str = Field(..., min_length=8, max_length=128, description="User's password (8-128 characters).")


class UserOutput(UserBase):
    """
    Schema for returning user data without exposing sensitive data.
    """
    id: str = Field(..., description="User's unique identifier.")
    role: UserRole = Field(..., description="User's role.")
    email_verified: bool = Field(False, description="Indicates if the email was verified.")
    created_at: Optional[datetime] = Field(None, description="User creation date and time.")
    last_login_at: Optional[datetime] = Field(None, description="Date and time of the last signin.")
