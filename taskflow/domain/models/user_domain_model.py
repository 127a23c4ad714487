# taskflow/domain/models/user_domain_model.py

"""
Modelo de domínio para User.

Define a entidade User de forma pura, sem dependências
de frameworks de persistência ou infraestrutura.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    """Two-valued role compared for equality by the authorization check."""
    standard = "standard"
    administrator = "administrator"


@dataclass
class User:
    """
    Modelo de domínio para usuários.

    `password_hash` is opaque: it is never logged nor returned by the API.
    """
    id: str
    email: str
    password_hash: str
    role: UserRole = UserRole.standard
    is_active: bool = True
    email_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value}, active={self.is_active})>"


def normalize_email(email: str) -> str:
    """Case-normalise an email for storage and lookup."""
    return email.strip().lower()
