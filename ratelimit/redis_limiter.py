"""
Redis-backed rate limiter.

Records are JSON under rate_limit:<identity> with a TTL slightly longer
than the window so abandoned keys evict themselves.

The read-modify-write (GET then SETEX) is not atomic. Concurrent bursts
from one identity can exceed max_requests by a small margin.

Any Redis failure fails open: the request is allowed and reported as the
first request of a fresh window.
"""
import json
import math
import redis.asyncio as redis
from typing import Optional, Dict, Any

from config import REDIS_HOST, REDIS_PORT, REDIS_DB
from logs.logging_config import get_llm_logger
from .config import (
    RATE_LIMIT_KEY_PREFIX,
    RATE_LIMIT_TTL_BUFFER_SECONDS,
    RATE_LIMIT_SCAN_LIMIT,
)
from .limiter import RateLimiter, RateLimitRecord, RateLimitResult

logger = get_llm_logger("ratelimit")

# Errors that mean "the store could not answer"
STORE_ERRORS = (redis.RedisError, OSError, ValueError, KeyError, TypeError)


class RedisRateLimiter(RateLimiter):
    """
    Async Redis rate limiter shared by every process pointing at the same store.
    """

    backend_name = "redis"

    def __init__(
        self,
        *args,
        host: str = REDIS_HOST,
        port: int = REDIS_PORT,
        db: int = REDIS_DB,
        client: Optional[redis.Redis] = None,
        key_prefix: str = RATE_LIMIT_KEY_PREFIX,
        ttl_buffer_seconds: int = RATE_LIMIT_TTL_BUFFER_SECONDS,
        **kwargs
    ):
        super().__init__(*args, **kwargs)
        self._redis: Optional[redis.Redis] = client
        self._host = host
        self._port = port
        self._db = db
        self._prefix = key_prefix
        self._ttl_buffer = ttl_buffer_seconds

    async def _get_redis(self) -> redis.Redis:
        """Get or create async Redis connection."""
        if self._redis is None:
            self._redis = redis.Redis(
                host=self._host,
                port=self._port,
                db=self._db,
                decode_responses=True
            )
            logger.info(
                f"[RATE_LIMIT_STORE] Initialized | host={self._host}:{self._port} | "
                f"db={self._db} | max={self.max_requests} | window_ms={self.window_ms}"
            )
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _key(self, identity: str) -> str:
        """Generate Redis key for an identity (already hashed)."""
        return f"{self._prefix}{identity}"

    def _ttl_seconds(self, reset_time: int, now: int) -> int:
        return max(1, math.ceil((reset_time - now) / 1000)) + self._ttl_buffer

    async def _load(self, r: redis.Redis, key: str) -> Optional[RateLimitRecord]:
        json_str = await r.get(key)
        if not json_str:
            return None
        return RateLimitRecord.from_json(json_str)

    async def check(self, identity: str) -> RateLimitResult:
        now = self._clock()
        key = self._key(identity)

        try:
            r = await self._get_redis()
            record = await self._load(r, key)

            result, to_store = self._evaluate(record, now)
            if to_store is not None:
                await r.setex(key, self._ttl_seconds(to_store.reset_time, now), to_store.to_json())

        except STORE_ERRORS as e:
            logger.error(f"[RATE_LIMIT_STORE] check failed, allowing request | identity={identity} | error={e}")
            return self._fresh_window_result(now)

        if not result.allowed:
            logger.info(f"[RATE_LIMIT_STORE] Rejected | identity={identity} | reset_time={result.reset_time}")
        else:
            logger.debug(f"[RATE_LIMIT_STORE] Allowed | identity={identity} | remaining={result.remaining}")
        return result

    async def peek(self, identity: str) -> RateLimitResult:
        now = self._clock()

        try:
            r = await self._get_redis()
            record = await self._load(r, self._key(identity))
        except STORE_ERRORS as e:
            logger.error(f"[RATE_LIMIT_STORE] peek failed | identity={identity} | error={e}")
            return self._unused_window_result(now)

        return self._status(record, now)

    async def reset(self, identity: str) -> None:
        try:
            r = await self._get_redis()
            await r.delete(self._key(identity))
            logger.info(f"[RATE_LIMIT_STORE] Reset | identity={identity}")
        except STORE_ERRORS as e:
            logger.error(f"[RATE_LIMIT_STORE] reset failed | identity={identity} | error={e}")

    async def _scan_keys(self, r: redis.Redis):
        keys = []
        async for key in r.scan_iter(match=f"{self._prefix}*", count=100):
            keys.append(key)
            if len(keys) >= RATE_LIMIT_SCAN_LIMIT:
                break
        return keys

    async def get_stats(self) -> Dict[str, Any]:
        stats = {
            "backend": self.backend_name,
            "total_entries": 0,
            "max_requests": self.max_requests,
            "window_ms": self.window_ms,
        }
        try:
            r = await self._get_redis()
            stats["total_entries"] = len(await self._scan_keys(r))
        except STORE_ERRORS as e:
            logger.error(f"[RATE_LIMIT_STORE] stats failed | error={e}")
        return stats

    async def cleanup(self) -> int:
        """
        Delete records whose window has passed.

        Optional: Redis TTL already evicts them.

        Returns:
            Number of keys deleted
        """
        now = self._clock()
        deleted = 0
        try:
            r = await self._get_redis()
            for key in await self._scan_keys(r):
                try:
                    record = await self._load(r, key)
                except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                    record = None
                    logger.warning(f"[RATE_LIMIT_STORE] Malformed record, deleting | key={key}")
                if record is None or record.is_expired(now):
                    deleted += await r.delete(key)
        except STORE_ERRORS as e:
            logger.error(f"[RATE_LIMIT_STORE] cleanup failed | deleted={deleted} | error={e}")

        if deleted:
            logger.info(f"[RATE_LIMIT_STORE] Cleanup | deleted={deleted}")
        return deleted
