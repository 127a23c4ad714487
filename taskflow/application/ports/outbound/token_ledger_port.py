# taskflow/application/ports/outbound/token_ledger_port.py

from abc import ABC, abstractmethod
from typing import List, Optional

from taskflow.domain.models.token_models import RefreshTokenRecord


class ITokenLedger(ABC):
    """
    Durable record of every issued refresh token.

    Source of truth for refresh token validity; the revocation cache only
    accelerates it. Implementations raise DatabaseOperationException on
    failures and timeouts.
    """

    @abstractmethod
    async def insert(self, record: RefreshTokenRecord) -> RefreshTokenRecord:
        pass

    @abstractmethod
    async def find_active(self, token_id: str, user_id: str, expected_hash: str) -> Optional[RefreshTokenRecord]:
        pass

    @abstractmethod
    async def revoke(self, token_id: str, user_id: str) -> bool:
        pass

    @abstractmethod
    async def revoke_all_for_user(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def sweep_expired(self) -> int:
        pass

    @abstractmethod
    async def list_active_for_user(self, user_id: str) -> List[RefreshTokenRecord]:
        pass
