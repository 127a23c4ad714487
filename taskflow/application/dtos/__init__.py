# taskflow/application/dtos/__init__.py

from .user_dto import UserCreate, UserLogin, UserOutput
from .token_dto import AccessTokenData, AuthData, SessionOutput

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserOutput",
    "AccessTokenData",
    "AuthData",
    "SessionOutput",
]
