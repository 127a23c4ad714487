# taskflow/application/ports/outbound/__init__.py

from .revocation_cache_port import IRevocationCache
from .token_ledger_port import ITokenLedger
from .user_repository_port import IUserRepository

__all__ = [
    "IRevocationCache",
    "ITokenLedger",
    "IUserRepository",
]
