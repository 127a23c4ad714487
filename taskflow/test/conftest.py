# taskflow/test/conftest.py

import os
from typing import Dict, Optional
from uuid import uuid4

# Configuração de teste ANTES de qualquer import do pacote
os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret-0123456789-abcdefghijklmnop"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789-abcdefghijklmnop"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from taskflow.adapters.configuration.config import settings
from taskflow.adapters.outbound.persistence.database import Database
from taskflow.adapters.outbound.persistence.repositories import AsyncTokenRepository, AsyncUserRepository
from taskflow.adapters.outbound.security.password_hasher import PasswordHasher
from taskflow.adapters.outbound.security.token_codec import TokenCodec
from taskflow.application.ports.outbound import IRevocationCache
from taskflow.application.use_cases.auth_use_cases import AsyncAuthService
from taskflow.application.use_cases.session_use_cases import SessionManager
from taskflow.domain.exceptions import CacheUnavailableException
from taskflow.main import create_app

TEST_PASSWORD = "TestPassword123!"


class InMemoryRevocationCache(IRevocationCache):
    """
    Cache falso em memória. `fail = True` simula o Redis fora do ar.
    """

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail = False
        self.connected = False

    def _check(self, operation: str) -> None:
        if self.fail:
            raise CacheUnavailableException(details={"operation": operation})

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._check("put")
        if ttl_seconds <= 0:
            return
        self.store[key] = value
        self.ttls[key] = int(ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        self._check("get")
        return self.store.get(key)

    async def delete(self, key: str) -> None:
        self._check("delete")
        self.store.pop(key, None)
        self.ttls.pop(key, None)

    async def delete_by_prefix(self, prefix: str) -> int:
        self._check("delete_by_prefix")
        keys = [k for k in self.store if k.startswith(prefix)]
        for key in keys:
            self.store.pop(key, None)
            self.ttls.pop(key, None)
        return len(keys)

    async def exists(self, key: str) -> bool:
        self._check("exists")
        return key in self.store

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        self._check("expire")
        if key not in self.store:
            return False
        if ttl_seconds <= 0:
            await self.delete(key)
            return False
        self.ttls[key] = int(ttl_seconds)
        return True

    async def incr(self, key: str, ttl_seconds: int) -> int:
        self._check("incr")
        count = int(self.store.get(key, "0")) + 1
        self.store[key] = str(count)
        if count == 1:
            self.ttls[key] = int(ttl_seconds)
        return count

    async def ping(self) -> bool:
        self._check("ping")
        return True

    def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False


@pytest.fixture
def fake_cache() -> InMemoryRevocationCache:
    return InMemoryRevocationCache()


@pytest_asyncio.fixture
async def database():
    """Banco SQLite em memória compartilhado via StaticPool."""
    db = Database(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec.from_settings(settings)


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def ledger(database) -> AsyncTokenRepository:
    return AsyncTokenRepository(database.session_factory)


@pytest.fixture
def users(database) -> AsyncUserRepository:
    return AsyncUserRepository(database.session_factory)


@pytest.fixture
def session_manager(codec, ledger, fake_cache, users) -> SessionManager:
    return SessionManager(
        codec,
        ledger,
        fake_cache,
        users,
        token_hash_key=settings.token_hash_key,
        whitelist_ttl_seconds=settings.REFRESH_WHITELIST_TTL_SECONDS,
    )


@pytest.fixture
def auth_service(users, session_manager, hasher) -> AsyncAuthService:
    return AsyncAuthService(users, session_manager, hasher)


@pytest_asyncio.fixture
async def test_user(users, hasher):
    """Usuário ativo persistido com a senha TEST_PASSWORD."""
    password_hash = await hasher.hash_password(TEST_PASSWORD)
    return await users.create(str(uuid4()), f"usertest-{uuid4()}@example.com", password_hash)


@pytest.fixture
def app(database, fake_cache, hasher):
    return create_app(database=database, cache=fake_cache, hasher=hasher)


@pytest_asyncio.fixture
async def async_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def signed_up(async_client):
    """
    Cria um usuário pela API e retorna (user_data, access_token).
    O refresh token fica no cookie jar do cliente.
    """
    user_data = {"email": f"usertest-{uuid4()}@example.com", "password": TEST_PASSWORD}
    response = await async_client.post("/api/v1/auth/signup", json=user_data)
    assert response.status_code == 201, f"Erro ao registrar usuário: {response.text}"
    return user_data, response.json()["data"]["access_token"]
