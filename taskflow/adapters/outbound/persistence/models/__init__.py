# taskflow/adapters/outbound/persistence/models/__init__.py

from .base_model import Base
from .user_model import User
from .refresh_token_model import RefreshToken

__all__ = [
    "Base",
    "User",
    "RefreshToken",
]
