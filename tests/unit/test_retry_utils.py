from types import SimpleNamespace

import pytest

from flux_engine.utils import retry
from flux_engine.utils.retry import compute_backoff, schedule_retry


def test_compute_backoff_grows_exponentially():
    assert 1.0 <= compute_backoff(1, base=2.0, jitter=0.5) <= 1.5
    assert 4.0 <= compute_backoff(3, base=2.0, jitter=0.5) <= 4.5


@pytest.mark.asyncio
async def test_schedule_retry_without_base_does_not_sleep(monkeypatch):
    async def fail_sleep(delay):
        raise AssertionError("should not sleep")

    monkeypatch.setattr(retry, "asyncio", SimpleNamespace(sleep=fail_sleep))
    await schedule_retry(3)


@pytest.mark.asyncio
async def test_schedule_retry_sleeps_computed_delay(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(retry, "asyncio", SimpleNamespace(sleep=fake_sleep))
    monkeypatch.setattr(retry, "random", SimpleNamespace(uniform=lambda a, b: 0.0))
    await schedule_retry(2, base=3.0)

    assert delays == [3.0]
