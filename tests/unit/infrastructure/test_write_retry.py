import pytest
from unittest.mock import AsyncMock

from poscache.infrastructure.resilience.write_retry import DurableWriteRetry, MaxRetryError


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry(sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)
    return DurableWriteRetry(max_retries=3, initial_backoff_s=0.1, backoff_factor=2.0, sleep=fake_sleep)


@pytest.mark.asyncio
async def test_succeeds_after_transient_failures(retry, sleeps):
    func = AsyncMock(side_effect=[ConnectionError("down"), ConnectionError("down"), "ok"])
    assert await retry.execute(func, "k", b"v", 60) == "ok"
    assert func.await_count == 3
    assert sleeps == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_raises_max_retry_error_when_exhausted(retry, sleeps):
    error = ConnectionError("down")
    func = AsyncMock(side_effect=error)
    with pytest.raises(MaxRetryError) as exc_info:
        await retry.execute(func)
    assert exc_info.value.original_exception is error
    assert exc_info.value.attempts == 4
    assert sleeps == pytest.approx([0.1, 0.2, 0.4])


@pytest.mark.asyncio
async def test_default_is_single_attempt():
    func = AsyncMock(side_effect=TimeoutError("slow"))
    with pytest.raises(MaxRetryError):
        await DurableWriteRetry().execute(func)
    assert func.await_count == 1


@pytest.mark.asyncio
async def test_programming_errors_are_not_retried(retry, sleeps):
    func = AsyncMock(side_effect=TypeError("bad argument"))
    with pytest.raises(TypeError):
        await retry.execute(func)
    assert func.await_count == 1
    assert sleeps == []


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        DurableWriteRetry(max_retries=-1)
