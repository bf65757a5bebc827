"""Fixed-window limiter unit tests with a controllable clock."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from backoffice.middleware.rate_limit import FixedWindowRateLimiter, RedisRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.mark.asyncio
async def test_allows_up_to_limit_then_blocks():
    limiter = FixedWindowRateLimiter(window_seconds=60, clock=FakeClock())
    decisions = [await limiter.hit("api:1.2.3.4", 3) for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]


@pytest.mark.asyncio
async def test_window_resets():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(window_seconds=60, clock=clock)
    for _ in range(2):
        await limiter.hit("k", 2)
    assert not (await limiter.hit("k", 2)).allowed

    clock.advance(60)
    decision = await limiter.hit("k", 2)
    assert decision.allowed
    assert decision.remaining == 1


@pytest.mark.asyncio
async def test_retry_after_counts_down_to_window_end():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(window_seconds=60, clock=clock)
    await limiter.hit("k", 1)
    clock.advance(45)
    decision = await limiter.hit("k", 1)
    assert not decision.allowed
    assert decision.retry_after == 15


@pytest.mark.asyncio
async def test_keys_are_independent():
    limiter = FixedWindowRateLimiter(window_seconds=60, clock=FakeClock())
    await limiter.hit("a", 1)
    assert not (await limiter.hit("a", 1)).allowed
    assert (await limiter.hit("b", 1)).allowed


@pytest.mark.asyncio
async def test_stale_windows_are_evicted():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(window_seconds=60, clock=clock)
    for i in range(50):
        await limiter.hit(f"ip-{i}", 10)
    assert len(limiter) == 50

    clock.advance(61)
    await limiter.hit("fresh", 10)
    assert len(limiter) == 1


class _BrokenRedis:
    async def incr(self, key):
        raise RedisConnectionError("down")

    async def expire(self, key, seconds):
        raise AssertionError("not reached")


@pytest.mark.asyncio
async def test_redis_limiter_fails_open():
    limiter = RedisRateLimiter(_BrokenRedis(), window_seconds=60)
    decision = await limiter.hit("k", 1)
    assert decision.allowed


class _DictRedis:
    """Just enough of the redis client for INCR/EXPIRE."""

    def __init__(self):
        self.values = {}
        self.ttls = {}

    async def incr(self, key):
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds


@pytest.mark.asyncio
async def test_redis_limiter_counts_and_sets_ttl():
    redis = _DictRedis()
    limiter = RedisRateLimiter(redis, window_seconds=60, prefix="test")
    first = await limiter.hit("api:1.2.3.4", 2)
    await limiter.hit("api:1.2.3.4", 2)
    third = await limiter.hit("api:1.2.3.4", 2)
    assert first.allowed and not third.allowed
    (key,) = redis.ttls
    assert key.startswith("test:api:1.2.3.4:")
    assert redis.ttls[key] == 120
