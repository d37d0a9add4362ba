# tests/test_redis_rate_limiter.py
import json

import pytest

from ratelimit import RedisRateLimiter, RateLimitRecord

WINDOW_MS = 3_600_000


@pytest.fixture
def limiter(fake_redis, clock):
    return RedisRateLimiter(max_requests=2, window_ms=WINDOW_MS, clock=clock, client=fake_redis)


@pytest.mark.asyncio
async def test_check_stores_record_with_ttl(limiter, fake_redis, clock):
    result = await limiter.check("abc")
    assert result.allowed
    assert result.remaining == 1

    stored = json.loads(fake_redis.values["rate_limit:abc"])
    assert stored["count"] == 1
    assert stored["reset_time"] == clock.now + WINDOW_MS
    assert fake_redis.ttls["rate_limit:abc"] == 3600 + 60


@pytest.mark.asyncio
async def test_rejection_writes_nothing(limiter, fake_redis):
    await limiter.check("abc")
    await limiter.check("abc")
    before = dict(fake_redis.values)

    rejected = await limiter.check("abc")
    assert not rejected.allowed
    assert rejected.remaining == 0
    assert fake_redis.values == before


@pytest.mark.asyncio
async def test_expired_record_starts_new_window(limiter, fake_redis, clock):
    old = RateLimitRecord(count=2, window_start=clock.now - WINDOW_MS - 10, reset_time=clock.now - 10)
    fake_redis.values["rate_limit:abc"] = old.to_json()

    result = await limiter.check("abc")
    assert result.allowed
    assert result.remaining == 1
    assert result.reset_time == clock.now + WINDOW_MS


@pytest.mark.asyncio
async def test_peek_is_read_only(limiter, fake_redis):
    await limiter.check("abc")
    snapshot = dict(fake_redis.values)
    status = await limiter.peek("abc")
    assert status.remaining == 1
    assert fake_redis.values == snapshot


@pytest.mark.asyncio
async def test_fails_open_on_store_error(broken_redis, clock):
    limiter = RedisRateLimiter(max_requests=2, window_ms=WINDOW_MS, clock=clock, client=broken_redis)

    for _ in range(5):
        result = await limiter.check("abc")
        assert result.allowed
        assert result.remaining == 1

    status = await limiter.peek("abc")
    assert status.remaining == 2
    assert (await limiter.get_stats())["total_entries"] == 0


@pytest.mark.asyncio
async def test_cleanup_removes_expired_and_malformed(limiter, fake_redis, clock):
    live = RateLimitRecord(count=1, window_start=clock.now, reset_time=clock.now + WINDOW_MS)
    dead = RateLimitRecord(count=1, window_start=clock.now - WINDOW_MS * 2, reset_time=clock.now - WINDOW_MS)
    fake_redis.values["rate_limit:live"] = live.to_json()
    fake_redis.values["rate_limit:dead"] = dead.to_json()
    fake_redis.values["rate_limit:junk"] = "{not json"
    fake_redis.values["other:key"] = "untouched"

    deleted = await limiter.cleanup()

    assert deleted == 2
    assert set(fake_redis.values) == {"rate_limit:live", "other:key"}
    assert (await limiter.get_stats())["total_entries"] == 1


@pytest.mark.asyncio
async def test_reset_and_close(limiter, fake_redis):
    await limiter.check("abc")
    await limiter.reset("abc")
    assert "rate_limit:abc" not in fake_redis.values

    await limiter.close()
    assert fake_redis.closed
