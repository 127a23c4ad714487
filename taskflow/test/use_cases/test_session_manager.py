# taskflow/test/use_cases/test_session_manager.py

# Para rodar o arquivo
# pytest taskflow/test/use_cases/test_session_manager.py -v

"""
Testes do gerenciador de sessões: emissão, validação em duas camadas
(whitelist no cache + ledger no banco), renovação e revogação.
"""

import json
from datetime import timedelta
from unittest.mock import ANY
from uuid import uuid4

import pytest
from jose import jwt

from taskflow.adapters.configuration.config import settings
from taskflow.adapters.outbound.security.token_codec import TokenCodec
from taskflow.domain.exceptions import (
    InvalidTokenException,
    LogoutIncompleteException,
    RevokedOrExpiredRefreshException,
)
from taskflow.domain.models.token_models import RefreshTokenRecord
from taskflow.shared.utils.datetime_utils import DateTimeUtil


async def _issue(session_manager, user):
    return await session_manager.issue(user.id, user.email, user.role, "pytest-agent", "127.0.0.1")


@pytest.mark.asyncio
async def test_issue_records_the_token_and_whitelists_it(session_manager, ledger, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)

    record = await ledger.get(pair.token_id)
    assert record is not None
    assert record.user_id == test_user.id
    assert record.token_hash == session_manager.digest(pair.refresh_token)
    assert record.token_hash != pair.refresh_token
    assert record.device_info == "pytest-agent"

    key = session_manager.whitelist_key(test_user.id, pair.token_id)
    entry = json.loads(fake_cache.store[key])
    assert entry["hash"] == record.token_hash
    # A entrada do cache nunca vive mais que o registro
    assert 0 < fake_cache.ttls[key] <= 7 * 24 * 60 * 60


@pytest.mark.asyncio
async def test_each_issue_mints_a_new_token_id(session_manager, test_user):
    first = await _issue(session_manager, test_user)
    second = await _issue(session_manager, test_user)
    assert first.token_id != second.token_id


@pytest.mark.asyncio
async def test_issue_survives_cache_outage(session_manager, fake_cache, test_user):
    fake_cache.fail = True
    pair = await _issue(session_manager, test_user)

    fake_cache.fail = False
    assert fake_cache.store == {}
    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is True


@pytest.mark.asyncio
async def test_validate_refresh_slides_whitelist_ttl(session_manager, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    key = session_manager.whitelist_key(test_user.id, pair.token_id)
    fake_cache.ttls[key] = 10

    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is True
    assert fake_cache.ttls[key] > 10


@pytest.mark.asyncio
async def test_validate_refresh_repopulates_cache_from_ledger(session_manager, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    fake_cache.store.clear()

    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is True
    assert session_manager.whitelist_key(test_user.id, pair.token_id) in fake_cache.store


@pytest.mark.asyncio
async def test_cache_hash_mismatch_falls_through_to_ledger(session_manager, ledger, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    key = session_manager.whitelist_key(test_user.id, pair.token_id)
    record = await ledger.get(pair.token_id)
    stale = json.dumps({"hash": "0" * 64, "expires_at": DateTimeUtil.datetime_to_timestamp(record.expires_at)})

    # Ledger concorda com o token apresentado: válido e cache corrigido
    fake_cache.store[key] = stale
    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is True
    assert json.loads(fake_cache.store[key])["hash"] == record.token_hash

    # Ledger também discorda (token revogado): inválido
    await ledger.revoke(pair.token_id, test_user.id)
    fake_cache.store[key] = stale
    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is False


@pytest.mark.asyncio
async def test_cache_outage_falls_back_to_ledger(session_manager, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    fake_cache.fail = True
    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is True


@pytest.mark.asyncio
async def test_refresh_access_does_not_rotate(session_manager, codec, test_user):
    pair = await _issue(session_manager, test_user)

    new_access = await session_manager.refresh_access(pair.refresh_token, test_user.id, pair.token_id)

    payload = codec.verify_access(new_access)
    assert payload.subject_id == test_user.id
    assert payload.email == test_user.email
    # O refresh token original continua válido
    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is True
    assert await session_manager.refresh_access(pair.refresh_token) is not None


@pytest.mark.asyncio
async def test_refresh_access_rejects_mismatched_claims(session_manager, test_user):
    pair = await _issue(session_manager, test_user)
    with pytest.raises(RevokedOrExpiredRefreshException):
        await session_manager.refresh_access(pair.refresh_token, test_user.id, str(uuid4()))


@pytest.mark.asyncio
async def test_refresh_access_rejects_inactive_user(session_manager, users, test_user):
    pair = await _issue(session_manager, test_user)
    await users.set_active(test_user.id, False)
    with pytest.raises(RevokedOrExpiredRefreshException):
        await session_manager.refresh_access(pair.refresh_token)


@pytest.mark.asyncio
async def test_refresh_access_rejects_access_token(session_manager, test_user):
    pair = await _issue(session_manager, test_user)
    with pytest.raises(InvalidTokenException):
        await session_manager.refresh_access(pair.access_token)


@pytest.mark.asyncio
async def test_logout_invalidates_refresh_in_ledger_and_blacklists_access(
        session_manager, ledger, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    digest = session_manager.digest(pair.refresh_token)

    await session_manager.logout(test_user.id, pair.token_id, pair.access_token)

    # (a) direto no ledger, sem passar pelo cache
    assert await ledger.find_active(pair.token_id, test_user.id, digest) is None
    assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is False
    # (b) o gate recusa o access token, ainda não expirado
    with pytest.raises(InvalidTokenException):
        await session_manager.authenticate_access(pair.access_token)

    blacklist_key = session_manager.blacklist_key(pair.access_token)
    assert 0 < fake_cache.ttls[blacklist_key] <= 15 * 60


@pytest.mark.asyncio
async def test_logout_is_idempotent(session_manager, ledger, test_user):
    pair = await _issue(session_manager, test_user)

    await session_manager.logout(test_user.id, pair.token_id, pair.access_token)
    first = await ledger.get(pair.token_id)
    await session_manager.logout(test_user.id, pair.token_id, pair.access_token)
    second = await ledger.get(pair.token_id)

    assert first.revoked_at is not None
    assert second.revoked_at == first.revoked_at


@pytest.mark.asyncio
async def test_logout_still_revokes_when_blacklisting_fails(session_manager, ledger, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    fake_cache.fail = True

    with pytest.raises(LogoutIncompleteException) as exc_info:
        await session_manager.logout(test_user.id, pair.token_id, pair.access_token)

    assert exc_info.value.failed_steps == ["blacklist_access"]
    assert exc_info.value.status_code == 503
    assert (await ledger.get(pair.token_id)).revoked_at is not None


@pytest.mark.asyncio
async def test_logout_without_access_token_tolerates_cache_outage(session_manager, ledger, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    fake_cache.fail = True

    await session_manager.logout(test_user.id, pair.token_id)
    assert (await ledger.get(pair.token_id)).revoked_at is not None


@pytest.mark.asyncio
async def test_revoke_all_is_scoped_to_one_user(session_manager, users, fake_cache, test_user):
    other = await users.create(str(uuid4()), f"other-{uuid4()}@example.com", "hash")
    mine = [await _issue(session_manager, test_user) for _ in range(3)]
    theirs = await _issue(session_manager, other)

    assert await session_manager.revoke_all_for_user(test_user.id) == 3

    for pair in mine:
        assert await session_manager.validate_refresh(pair.refresh_token, test_user.id, pair.token_id) is False
    assert await session_manager.validate_refresh(theirs.refresh_token, other.id, theirs.token_id) is True
    assert not any(k.startswith(f"refresh:{test_user.id}:") for k in fake_cache.store)


@pytest.mark.asyncio
async def test_expired_record_is_not_active(ledger, test_user):
    now = DateTimeUtil.utcnow_naive()
    record = RefreshTokenRecord(
        id=str(uuid4()),
        user_id=test_user.id,
        token_hash="a" * 64,
        expires_at=now - timedelta(seconds=1),
        created_at=now - timedelta(days=7),
    )
    await ledger.insert(record)

    assert await ledger.find_active(record.id, test_user.id, "a" * 64) is None
    assert await ledger.sweep_expired() == 1
    assert await ledger.get(record.id) is None


@pytest.mark.asyncio
async def test_sweep_keeps_active_records(session_manager, ledger, test_user):
    pair = await _issue(session_manager, test_user)
    assert await ledger.sweep_expired() == 0
    assert await ledger.get(pair.token_id) is not None


@pytest.mark.asyncio
async def test_blacklist_lookup_failure_still_checks_signature(session_manager, codec, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    fake_cache.fail = True

    payload = await session_manager.authenticate_access(pair.access_token)
    assert payload.subject_id == test_user.id

    forged = jwt.encode({"sub": test_user.id, "type": "access"}, "x" * 40, algorithm="HS256")
    with pytest.raises(InvalidTokenException):
        await session_manager.authenticate_access(forged)


@pytest.mark.asyncio
async def test_blacklisting_with_no_remaining_ttl_is_a_no_op(session_manager, fake_cache, test_user):
    pair = await _issue(session_manager, test_user)
    assert await session_manager.blacklist_access_token(pair.access_token, ttl_seconds=0) is False
    assert fake_cache.store == {session_manager.whitelist_key(test_user.id, pair.token_id): ANY}


@pytest.mark.asyncio
async def test_forged_far_future_token_is_not_blacklisted(session_manager, fake_cache, test_user):
    forged = jwt.encode(
        {"sub": test_user.id, "type": "access", "email": test_user.email, "role": "standard",
         "jti": str(uuid4()), "iss": "taskflow-api", "aud": "taskflow-client", "exp": 32503680000},
        "x" * 40,
        algorithm="HS256",
    )

    assert await session_manager.blacklist_access_token(forged) is False
    assert not any(k.startswith("blacklist:access:") for k in fake_cache.store)


@pytest.mark.asyncio
async def test_blacklist_ttl_never_exceeds_the_access_token_lifetime(session_manager, codec, fake_cache, test_user):
    # Mesmas chaves, vida útil maior: assinatura válida, exp muito distante
    long_lived = TokenCodec(
        settings.JWT_ACCESS_SECRET.get_secret_value(),
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        access_ttl=timedelta(days=3650),
    )
    token = long_lived.sign_access(test_user.id, test_user.email, test_user.role)

    assert await session_manager.blacklist_access_token(token, ttl_seconds=10 ** 9) is True
    assert fake_cache.ttls[session_manager.blacklist_key(token)] == int(codec.access_ttl.total_seconds())


@pytest.mark.asyncio
async def test_sessions_opened_in_the_same_second_have_distinct_access_tokens(session_manager, test_user):
    first = await _issue(session_manager, test_user)
    second = await _issue(session_manager, test_user)
    assert first.access_token != second.access_token

    await session_manager.logout(test_user.id, first.token_id, first.access_token)

    with pytest.raises(InvalidTokenException):
        await session_manager.authenticate_access(first.access_token)
    payload = await session_manager.authenticate_access(second.access_token)
    assert payload.subject_id == test_user.id


@pytest.mark.asyncio
async def test_list_sessions_returns_active_records(session_manager, test_user):
    first = await _issue(session_manager, test_user)
    second = await _issue(session_manager, test_user)
    await session_manager.logout(test_user.id, first.token_id)

    sessions = await session_manager.list_sessions(test_user.id)
    assert [s.id for s in sessions] == [second.token_id]
