"""
Usage Store - translation counter, history log and analytics.

Everything here is best-effort. Nothing in this module may fail a
translation request: writes are scheduled as detached tasks whose
errors only reach the log.
"""
import json
import asyncio
import redis.asyncio as redis
from abc import ABC, abstractmethod
from collections import Counter, deque
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass, asdict, field
from typing import Optional, Dict, Any, List, Iterable, Set

from config import REDIS_HOST, REDIS_PORT, REDIS_DB
from core.errors import StoreError
from logs.logging_config import get_llm_logger
from .config import (
    USAGE_KEY_PREFIX,
    USAGE_HISTORY_LIMIT,
    USAGE_ANALYTICS_DAYS,
    USAGE_TOP_LANGUAGES,
)

logger = get_llm_logger("usage")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UsageStats:
    """Aggregate translation counter."""
    total_translations: int = 0
    last_updated: str = field(default_factory=lambda: _utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTranslations": self.total_translations,
            "lastUpdated": self.last_updated,
        }


@dataclass
class TranslationLogEntry:
    """One history row. Holds the hashed caller identity, never the address."""
    hashed_identity: str
    target_language: str
    success: bool
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    lines_count: Optional[int] = None
    error_message: Optional[str] = None
    processing_time_ms: Optional[int] = None
    created_at: str = field(default_factory=lambda: _utcnow().isoformat())

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "TranslationLogEntry":
        return cls(**json.loads(json_str))


def compute_analytics(
    total_translations: int,
    entries: Iterable[TranslationLogEntry],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Summarize history.

    - translationsToday: entries created today (UTC)
    - topLanguages: most requested targets over the look-back window
    - successRate: percent successful over the look-back window (100 when empty)
    """
    now = now or _utcnow()
    since = now - timedelta(days=USAGE_ANALYTICS_DAYS)

    today = 0
    recent_total = 0
    recent_success = 0
    languages: Counter = Counter()

    for entry in entries:
        created = datetime.fromisoformat(entry.created_at)
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if created.date() == now.date():
            today += 1
        if created > since:
            recent_total += 1
            recent_success += 1 if entry.success else 0
            languages[entry.target_language] += 1

    return {
        "totalTranslations": total_translations,
        "translationsToday": today,
        "topLanguages": [
            {"language": language, "count": count}
            for language, count in languages.most_common(USAGE_TOP_LANGUAGES)
        ],
        "successRate": (recent_success / recent_total) * 100 if recent_total else 100,
    }


class UsageStore(ABC):
    """Contract shared by every usage backend."""

    backend_name = "abstract"

    @abstractmethod
    async def increment(self) -> int:
        """Add one to the counter. Returns the new total. Raises StoreError."""

    @abstractmethod
    async def get_counter(self) -> UsageStats:
        """Current counter (zeroed on store failure)."""

    @abstractmethod
    async def log_translation(self, entry: TranslationLogEntry) -> None:
        """Append a history entry. Never raises."""

    @abstractmethod
    async def get_analytics(self) -> Dict[str, Any]:
        """Aggregate statistics (defaults on store failure)."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryUsageStore(UsageStore):
    """Process-local usage store."""

    backend_name = "memory"

    def __init__(self, history_limit: int = USAGE_HISTORY_LIMIT):
        self._total = 0
        self._last_updated = _utcnow().isoformat()
        self._history: deque = deque(maxlen=history_limit)
        self._lock = asyncio.Lock()

    async def increment(self) -> int:
        async with self._lock:
            self._total += 1
            self._last_updated = _utcnow().isoformat()
            return self._total

    async def get_counter(self) -> UsageStats:
        return UsageStats(total_translations=self._total, last_updated=self._last_updated)

    async def log_translation(self, entry: TranslationLogEntry) -> None:
        async with self._lock:
            self._history.appendleft(entry)

    async def get_analytics(self) -> Dict[str, Any]:
        return compute_analytics(self._total, list(self._history))


class RedisUsageStore(UsageStore):
    """
    Async Redis usage store.

    Counter uses INCR (atomic). History is a capped list of JSON entries,
    newest first.
    """

    backend_name = "redis"

    def __init__(
        self,
        host: str = REDIS_HOST,
        port: int = REDIS_PORT,
        db: int = REDIS_DB,
        client: Optional[redis.Redis] = None,
        key_prefix: str = USAGE_KEY_PREFIX,
        history_limit: int = USAGE_HISTORY_LIMIT
    ):
        self._redis: Optional[redis.Redis] = client
        self._host = host
        self._port = port
        self._db = db
        self._prefix = key_prefix
        self._history_limit = history_limit

    async def _get_redis(self) -> redis.Redis:
        """Get or create async Redis connection."""
        if self._redis is None:
            self._redis = redis.Redis(
                host=self._host,
                port=self._port,
                db=self._db,
                decode_responses=True
            )
            logger.info(f"[USAGE_STORE] Initialized | host={self._host}:{self._port} | db={self._db}")
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _key(self, name: str) -> str:
        return f"{self._prefix}:{name}"

    async def increment(self) -> int:
        try:
            r = await self._get_redis()
            total = await r.incr(self._key("total_translations"))
            await r.set(self._key("last_updated"), _utcnow().isoformat())
            return int(total)
        except (redis.RedisError, OSError) as e:
            raise StoreError(f"Failed to increment translation counter: {e}") from e

    async def get_counter(self) -> UsageStats:
        try:
            r = await self._get_redis()
            total = await r.get(self._key("total_translations"))
            last_updated = await r.get(self._key("last_updated"))
        except (redis.RedisError, OSError) as e:
            logger.error(f"[USAGE_STORE] get_counter failed | error={e}")
            return UsageStats()

        return UsageStats(
            total_translations=int(total or 0),
            last_updated=last_updated or _utcnow().isoformat()
        )

    async def log_translation(self, entry: TranslationLogEntry) -> None:
        try:
            r = await self._get_redis()
            key = self._key("history")
            await r.lpush(key, entry.to_json())
            await r.ltrim(key, 0, self._history_limit - 1)
        except (redis.RedisError, OSError) as e:
            logger.error(f"[USAGE_STORE] log_translation failed | error={e}")

    async def _load_history(self, r: redis.Redis) -> List[TranslationLogEntry]:
        entries = []
        for raw in await r.lrange(self._key("history"), 0, -1):
            try:
                entries.append(TranslationLogEntry.from_json(raw))
            except (ValueError, TypeError) as e:
                logger.warning(f"[USAGE_STORE] Skipping malformed history entry | error={e}")
        return entries

    async def get_analytics(self) -> Dict[str, Any]:
        try:
            stats = await self.get_counter()
            r = await self._get_redis()
            entries = await self._load_history(r)
        except (redis.RedisError, OSError) as e:
            logger.error(f"[USAGE_STORE] get_analytics failed | error={e}")
            return compute_analytics(0, [])

        return compute_analytics(stats.total_translations, entries)


# =========================
# Fire-and-forget recording
# =========================

# Strong references so pending tasks are not garbage collected
_pending_tasks: Set[asyncio.Task] = set()


async def record_usage(store: UsageStore, entry: TranslationLogEntry) -> Optional[int]:
    """
    Increment the counter (successful translations only) and append history.

    Returns:
        New total, or None when nothing was counted
    """
    total = None
    try:
        if entry.success:
            total = await store.increment()
    finally:
        await store.log_translation(entry)
    return total


def _on_usage_task_done(task: asyncio.Task) -> None:
    _pending_tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"[USAGE] Recording failed (ignored) | error={error}")


def schedule_usage_record(store: UsageStore, entry: TranslationLogEntry) -> asyncio.Task:
    """Record usage in a detached task; the caller never awaits it."""
    task = asyncio.create_task(record_usage(store, entry))
    _pending_tasks.add(task)
    task.add_done_callback(_on_usage_task_done)
    return task


async def drain_pending_usage() -> None:
    """Wait for in-flight usage writes (shutdown / tests)."""
    if _pending_tasks:
        await asyncio.gather(*list(_pending_tasks), return_exceptions=True)


def create_usage_store(backend: str) -> UsageStore:
    backend = backend.lower()
    if backend == "redis":
        return RedisUsageStore()
    if backend == "memory":
        return InMemoryUsageStore()
    raise ValueError(f"Unknown usage backend: {backend}")
