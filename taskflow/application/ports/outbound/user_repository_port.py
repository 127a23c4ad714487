# taskflow/application/ports/outbound/user_repository_port.py

from abc import ABC, abstractmethod
from typing import Optional

from taskflow.domain.models.user_domain_model import User


class IUserRepository(ABC):
    """Identity store interface. Emails are case-normalised by implementations."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get(self, id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create(self, id: str, email: str, password_hash: str) -> User:
        pass

    @abstractmethod
    async def update_last_login(self, id: str) -> None:
        pass
