"""Tests for the TTL cache and the bounded retry helper."""

import pytest

from core.config import RetryConfig
from services.cache import TTLCache
from services.retry import RetryPolicy, retry_until_found


class TestTTLCache:
    """Single-slot TTL cache."""

    def test_empty(self, clock):
        """A new cache holds nothing."""
        assert TTLCache(60, clock=clock).get() is None

    def test_fresh_hit(self, clock):
        """Values are served until the TTL elapses."""
        cache = TTLCache(60, clock=clock)
        cache.set(["a"])
        clock.advance(59.9)
        assert cache.get() == ["a"]

    def test_expiry(self, clock):
        """At the TTL the entry is stale."""
        cache = TTLCache(60, clock=clock)
        cache.set(["a"])
        clock.advance(60)
        assert cache.get() is None

    def test_invalidate(self, clock):
        """Invalidation empties the slot immediately."""
        cache = TTLCache(60, clock=clock)
        cache.set(["a"])
        cache.invalidate()
        assert cache.get() is None

    def test_empty_list_is_cached(self, clock):
        """An empty table is a valid cached value."""
        cache = TTLCache(60, clock=clock)
        cache.set([])
        assert cache.get() == []


class TestRetryUntilFound:
    """Bounded retry with fixed delay."""

    async def test_first_attempt_hit(self, sleeper):
        """No sleep when the first call finds the value."""
        calls = []

        async def fetch():
            calls.append(1)
            return "found"

        assert await retry_until_found(fetch, RetryPolicy(), sleep=sleeper) == "found"
        assert len(calls) == 1
        assert sleeper.delays == []

    async def test_second_attempt_hit(self, sleeper):
        """A miss followed by a hit returns the hit."""
        results = iter([None, "found"])

        async def fetch():
            return next(results)

        assert await retry_until_found(fetch, RetryPolicy(), sleep=sleeper) == "found"
        assert sleeper.delays == [pytest.approx(0.8)]

    async def test_exhausted(self, sleeper):
        """After every attempt misses the result is None."""
        calls = []

        async def fetch():
            calls.append(1)
            return None

        result = await retry_until_found(fetch, RetryPolicy(attempts=3, delay_seconds=0.1), sleep=sleeper)
        assert result is None
        assert len(calls) == 3
        assert sleeper.delays == [pytest.approx(0.1), pytest.approx(0.1)]

    async def test_errors_not_retried(self, sleeper):
        """Exceptions propagate on the first failure."""
        calls = []

        async def fetch():
            calls.append(1)
            raise ConnectionError("boom")

        with pytest.raises(ConnectionError):
            await retry_until_found(fetch, RetryPolicy(), sleep=sleeper)
        assert len(calls) == 1

    def test_policy_from_config(self):
        """Policy mirrors the retry config."""
        policy = RetryPolicy.from_config(RetryConfig(job_lookup_attempts=4, job_lookup_delay_seconds=0.5))
        assert policy == RetryPolicy(attempts=4, delay_seconds=0.5)
