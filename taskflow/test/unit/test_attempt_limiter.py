# taskflow/test/unit/test_attempt_limiter.py

# Para rodar o arquivo
# pytest taskflow/test/unit/test_attempt_limiter.py -v

"""
Testes do limitador de tentativas de autenticação.
"""

import pytest

from taskflow.application.use_cases.attempt_limiter import AuthAttemptLimiter
from taskflow.domain.exceptions import TooManyAttemptsException


@pytest.fixture
def limiter(fake_cache) -> AuthAttemptLimiter:
    return AuthAttemptLimiter(fake_cache, max_attempts=3, window_seconds=900)


@pytest.mark.asyncio
async def test_failures_below_the_limit_are_allowed(limiter):
    for _ in range(2):
        await limiter.record_failure("10.0.0.1")
    await limiter.check("10.0.0.1")


@pytest.mark.asyncio
async def test_limit_reached_raises_429_with_retry_after(limiter, fake_cache):
    for _ in range(3):
        await limiter.record_failure("10.0.0.1")

    with pytest.raises(TooManyAttemptsException) as exc_info:
        await limiter.check("10.0.0.1")

    assert exc_info.value.status_code == 429
    assert exc_info.value.headers == {"Retry-After": "900"}
    assert fake_cache.ttls[limiter.counter_key("10.0.0.1")] == 900


@pytest.mark.asyncio
async def test_counters_are_per_client(limiter):
    for _ in range(3):
        await limiter.record_failure("10.0.0.1")
    await limiter.check("10.0.0.2")


@pytest.mark.asyncio
async def test_cache_outage_fails_open(limiter, fake_cache):
    fake_cache.fail = True

    assert await limiter.record_failure("10.0.0.1") == 0
    await limiter.check("10.0.0.1")
