# taskflow/adapters/outbound/persistence/repositories/__init__.py

from .token_repository import AsyncTokenRepository
from .user_repository import AsyncUserRepository

__all__ = [
    "AsyncTokenRepository",
    "AsyncUserRepository",
]
