# taskflow/adapters/outbound/persistence/models/refresh_token_model.py

"""
Modelo do ledger de refresh tokens.

Uma linha por emissão. A revogação apenas marca `revoked_at`; linhas só são
apagadas pela limpeza periódica de tokens já expirados.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from taskflow.adapters.outbound.persistence.models.base_model import Base
from taskflow.domain.models.token_models import RefreshTokenRecord


class RefreshToken(Base):
    """
    Modelo para armazenar refresh tokens emitidos.

    Attributes:
        id: Identificador do token (o mesmo `jti` embutido no token assinado)
        user_id: Dono do token
        token_hash: HMAC-SHA256 do token bruto (o token nunca é armazenado)
        expires_at: Data e hora de expiração
        created_at: Data e hora de emissão
        revoked_at: Data e hora da revogação (nulo enquanto válido)
        device_info: User-Agent do cliente, se conhecido
        ip_address: Endereço de origem, se conhecido
    """
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index("ix_refresh_tokens_user_id_revoked_at", "user_id", "revoked_at"),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=False), nullable=False, index=True)
    created_at = Column(DateTime(timezone=False), nullable=False)
    revoked_at = Column(DateTime(timezone=False), nullable=True)
    device_info = Column(String(512), nullable=True)
    ip_address = Column(String(45), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, user_id={self.user_id}, revoked={self.revoked_at is not None})>"

    def to_domain(self) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            id=self.id,
            user_id=self.user_id,
            token_hash=self.token_hash,
            expires_at=self.expires_at,
            created_at=self.created_at,
            revoked_at=self.revoked_at,
            device_info=self.device_info,
            ip_address=self.ip_address,
        )

    @classmethod
    def from_domain(cls, record: RefreshTokenRecord) -> "RefreshToken":
        return cls(
            id=record.id,
            user_id=record.user_id,
            token_hash=record.token_hash,
            expires_at=record.expires_at,
            created_at=record.created_at,
            revoked_at=record.revoked_at,
            device_info=record.device_info,
            ip_address=record.ip_address,
        )
