# taskflow/adapters/outbound/persistence/models/user_model.py

"""
Modelo de usuário.

Este módulo define o modelo de persistência de usuários e sua
conversão para o modelo de domínio.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String
from sqlalchemy.orm import relationship

from taskflow.adapters.outbound.persistence.models.base_model import Base
from taskflow.domain.models.user_domain_model import User as DomainUser, UserRole


class User(Base):
    """
    Modelo de usuário do sistema.

    Attributes:
        id: Identificador único do usuário (UUID em texto)
        email: Email normalizado (minúsculas), único
        password_hash: Hash bcrypt da senha
        role: Papel do usuário (standard, administrator)
        is_active: Usuários inativos não podem autenticar
        email_verified: Indica se o email foi verificado
        created_at / updated_at / last_login_at: Timestamps em UTC (naive)
        refresh_tokens: Refresh tokens emitidos para o usuário
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", native_enum=False, length=20),
        nullable=False,
        default=UserRole.standard,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=False), nullable=False)
    updated_at = Column(DateTime(timezone=False), nullable=True)
    last_login_at = Column(DateTime(timezone=False), nullable=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        """Representação em string do objeto User (sem o hash da senha)."""
        return f"<User(email={self.email}, role={self.role}, active={self.is_active})>"

    def to_domain(self) -> DomainUser:
        """
        Converte o modelo de persistência para o modelo de domínio.

        Returns:
            DomainUser: Instância do modelo de domínio
        """
        return DomainUser(
            id=self.id,
            email=self.email,
            password_hash=self.password_hash,
            role=UserRole(self.role),
            is_active=self.is_active,
            email_verified=self.email_verified,
            created_at=self.created_at,
            updated_at=self.updated_at,
            last_login_at=self.last_login_at,
        )
