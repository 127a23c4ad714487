# taskflow/test/routes/test_authentication_flow.py

# Para rodar o arquivo
# pytest taskflow/test/routes/test_authentication_flow.py -v

"""
Testes de ponta a ponta das rotas de autenticação.

Fluxo: cadastro -> login -> rota protegida -> renovação -> logout,
com o refresh token transportado no cookie HTTP-only.
"""

from uuid import uuid4

import pytest
from jose import jwt

from taskflow.adapters.configuration.config import settings
from taskflow.domain.models.user_domain_model import UserRole

TEST_PASSWORD = "TestPassword123!"
COOKIE = "refreshToken"


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_signup_sets_refresh_cookie(async_client):
    email = f"usertest-{uuid4()}@example.com"
    response = await async_client.post("/api/v1/auth/signup", json={"email": email, "password": TEST_PASSWORD})

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["data"]["token_type"] == "bearer"
    assert body["data"]["user"]["email"] == email
    assert "password_hash" not in body["data"]["user"]
    assert "refresh_token" not in body["data"]

    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{COOKIE}=")
    assert "HttpOnly" in set_cookie
    assert "Path=/api/v1/auth" in set_cookie
    assert "samesite=strict" in set_cookie.lower()


@pytest.mark.asyncio
async def test_signup_duplicate_email_returns_409(async_client, signed_up):
    user_data, _ = signed_up
    response = await async_client.post("/api/v1/auth/signup", json=user_data)

    assert response.status_code == 409
    assert response.json()["code"] == "RESOURCE_ALREADY_EXISTS"


@pytest.mark.asyncio
async def test_signup_with_short_password_returns_422(async_client):
    response = await async_client.post(
        "/api/v1/auth/signup", json={"email": f"usertest-{uuid4()}@example.com", "password": "short"}
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_signin_with_wrong_password_returns_generic_401(async_client, signed_up):
    user_data, _ = signed_up
    wrong = await async_client.post(
        "/api/v1/auth/signin", json={"email": user_data["email"], "password": "WrongPassword123!"}
    )
    unknown = await async_client.post(
        "/api/v1/auth/signin", json={"email": f"nobody-{uuid4()}@example.com", "password": TEST_PASSWORD}
    )

    for response in (wrong, unknown):
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Invalid email or password",
            "code": "INVALID_CREDENTIALS",
        }


@pytest.mark.asyncio
async def test_protected_route_requires_bearer_token(async_client):
    response = await async_client.get("/api/v1/auth/user")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_protected_route_with_garbage_token(async_client):
    response = await async_client.get("/api/v1/auth/user", headers=_bearer("not-a-token"))
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_get_current_user(async_client, signed_up):
    user_data, access_token = signed_up
    response = await async_client.get("/api/v1/auth/user", headers=_bearer(access_token))

    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == user_data["email"]


@pytest.mark.asyncio
async def test_refresh_uses_cookie_and_does_not_rotate(async_client, signed_up):
    assert signed_up
    refresh_token = async_client.cookies.get(COOKIE)

    first = await async_client.post("/api/v1/auth/refresh")
    second = await async_client.post("/api/v1/auth/refresh")

    assert first.status_code == 200, first.text
    assert second.status_code == 200
    assert "set-cookie" not in first.headers
    assert async_client.cookies.get(COOKIE) == refresh_token

    new_access = first.json()["data"]["access_token"]
    me = await async_client.get("/api/v1/auth/user", headers=_bearer(new_access))
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_refresh_without_cookie_returns_401(async_client):
    response = await async_client.post("/api/v1/auth/refresh")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_refresh_and_blacklists_access(async_client, signed_up):
    _, access_token = signed_up
    refresh_token = async_client.cookies.get(COOKIE)

    response = await async_client.post("/api/v1/auth/logout", headers=_bearer(access_token))

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert "Max-Age=0" in response.headers["set-cookie"]

    # Access token ainda não expirado, mas recusado
    me = await async_client.get("/api/v1/auth/user", headers=_bearer(access_token))
    assert me.status_code == 401

    # Refresh token revogado no ledger
    async_client.cookies.clear()
    refreshed = await async_client.post("/api/v1/auth/refresh", headers={"Cookie": f"{COOKIE}={refresh_token}"})
    assert refreshed.status_code == 401
    assert refreshed.json()["code"] == "INVALID_REFRESH_TOKEN"


@pytest.mark.asyncio
async def test_logout_twice_is_harmless(async_client, signed_up):
    _, access_token = signed_up
    refresh_token = async_client.cookies.get(COOKIE)
    headers = {**_bearer(access_token), "Cookie": f"{COOKIE}={refresh_token}"}
    async_client.cookies.clear()

    assert (await async_client.post("/api/v1/auth/logout", headers=headers)).status_code == 200
    assert (await async_client.post("/api/v1/auth/logout", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_logout_with_garbage_cookie_still_clears_it(async_client):
    response = await async_client.post("/api/v1/auth/logout", headers={"Cookie": f"{COOKIE}=garbage"})
    assert response.status_code == 200
    assert "Max-Age=0" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_logout_store_failure_returns_503_and_clears_cookie(async_client, signed_up, fake_cache):
    _, access_token = signed_up
    fake_cache.fail = True

    response = await async_client.post("/api/v1/auth/logout", headers=_bearer(access_token))

    assert response.status_code == 503
    assert response.json()["success"] is False
    assert response.json()["code"] == "LOGOUT_INCOMPLETE"
    assert "Max-Age=0" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_sessions_lists_active_sessions_and_marks_current(async_client, signed_up):
    user_data, access_token = signed_up
    await async_client.post("/api/v1/auth/signin", json=user_data)

    response = await async_client.get("/api/v1/auth/sessions", headers=_bearer(access_token))

    assert response.status_code == 200
    sessions = response.json()["data"]["sessions"]
    assert len(sessions) == 2
    assert sum(1 for s in sessions if s["current"]) == 1
    assert all("token_hash" not in s for s in sessions)


@pytest.mark.asyncio
async def test_logout_all_revokes_every_session(async_client, signed_up):
    user_data, access_token = signed_up
    signin = await async_client.post("/api/v1/auth/signin", json=user_data)
    other_access = signin.json()["data"]["access_token"]

    response = await async_client.post("/api/v1/auth/logout-all", headers=_bearer(access_token))

    assert response.status_code == 200
    assert response.json()["data"]["revoked_sessions"] == 2
    # O token apresentado é bloqueado; os demais expiram sozinhos
    assert (await async_client.get("/api/v1/auth/user", headers=_bearer(access_token))).status_code == 401
    sessions = await async_client.get("/api/v1/auth/sessions", headers=_bearer(other_access))
    assert sessions.json()["data"]["sessions"] == []


@pytest.mark.asyncio
async def test_admin_can_revoke_another_users_sessions(async_client, signed_up, users, hasher):
    _, standard_access = signed_up
    me = await async_client.get("/api/v1/auth/user", headers=_bearer(standard_access))
    standard_id = me.json()["data"]["user"]["id"]

    admin_email = f"admin-{uuid4()}@example.com"
    await users.create(str(uuid4()), admin_email, await hasher.hash_password(TEST_PASSWORD), UserRole.administrator)
    signin = await async_client.post("/api/v1/auth/signin", json={"email": admin_email, "password": TEST_PASSWORD})
    admin_access = signin.json()["data"]["access_token"]

    forbidden = await async_client.post(
        f"/api/v1/auth/users/{standard_id}/revoke-sessions", headers=_bearer(standard_access)
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "FORBIDDEN"

    allowed = await async_client.post(
        f"/api/v1/auth/users/{standard_id}/revoke-sessions", headers=_bearer(admin_access)
    )
    assert allowed.status_code == 200
    assert allowed.json()["data"]["revoked_sessions"] == 1


@pytest.mark.asyncio
async def test_health_reports_cache_outage(async_client, fake_cache):
    healthy = await async_client.get("/health")
    assert healthy.status_code == 200
    assert healthy.json()["data"]["status"] == "ok"

    fake_cache.fail = True
    degraded = await async_client.get("/health")
    assert degraded.status_code == 503
    assert degraded.json()["data"]["cache"] == "unavailable"


@pytest.mark.asyncio
async def test_two_sessions_have_distinct_access_tokens(async_client, signed_up):
    user_data, signup_access = signed_up
    signin = await async_client.post("/api/v1/auth/signin", json=user_data)
    signin_access = signin.json()["data"]["access_token"]

    assert signin_access != signup_access

    # Logout da sessão do cadastro não derruba a do login
    async_client.cookies.clear()
    logout = await async_client.post("/api/v1/auth/logout", headers=_bearer(signup_access))
    assert logout.status_code == 200
    assert (await async_client.get("/api/v1/auth/user", headers=_bearer(signup_access))).status_code == 401
    assert (await async_client.get("/api/v1/auth/user", headers=_bearer(signin_access))).status_code == 200


@pytest.mark.asyncio
async def test_logout_with_forged_token_writes_no_blacklist_entry(async_client, fake_cache):
    forged = jwt.encode(
        {"sub": str(uuid4()), "type": "access", "email": "x@example.com", "role": "standard",
         "jti": str(uuid4()), "iss": "taskflow-api", "aud": "taskflow-client", "exp": 32503680000},
        "wrong-key-" * 4,
        algorithm="HS256",
    )

    response = await async_client.post("/api/v1/auth/logout", headers=_bearer(forged))

    assert response.status_code == 200
    assert "Max-Age=0" in response.headers["set-cookie"]
    assert not any(k.startswith("blacklist:access:") for k in fake_cache.store)


@pytest.mark.asyncio
async def test_repeated_failed_signins_are_rate_limited(async_client, signed_up):
    user_data, _ = signed_up
    wrong = {"email": user_data["email"], "password": "WrongPassword123!"}

    for _ in range(settings.AUTH_RATE_LIMIT_ATTEMPTS):
        assert (await async_client.post("/api/v1/auth/signin", json=wrong)).status_code == 401

    # Nem a senha correta passa enquanto a janela estiver aberta
    blocked = await async_client.post("/api/v1/auth/signin", json=user_data)
    assert blocked.status_code == 429
    assert blocked.json()["code"] == "TOO_MANY_ATTEMPTS"
    assert blocked.headers["retry-after"] == str(settings.AUTH_RATE_LIMIT_WINDOW_SECONDS)

    signup = await async_client.post(
        "/api/v1/auth/signup", json={"email": f"usertest-{uuid4()}@example.com", "password": TEST_PASSWORD}
    )
    assert signup.status_code == 429


@pytest.mark.asyncio
async def test_successful_signins_are_not_counted(async_client, signed_up):
    user_data, _ = signed_up
    for _ in range(settings.AUTH_RATE_LIMIT_ATTEMPTS + 1):
        assert (await async_client.post("/api/v1/auth/signin", json=user_data)).status_code == 200
