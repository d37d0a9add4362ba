"""
Usage Module

Provides:
- Total translation counter
- Append-only translation history (hashed identities only)
- Analytics over recent history
- Fire-and-forget recording that never affects the request
"""
from typing import Optional

from .config import USAGE_BACKEND, USAGE_HISTORY_LIMIT
from .usage_store import (
    UsageStore,
    UsageStats,
    TranslationLogEntry,
    InMemoryUsageStore,
    RedisUsageStore,
    compute_analytics,
    record_usage,
    schedule_usage_record,
    drain_pending_usage,
    create_usage_store,
)

# Global store instance
_store: Optional[UsageStore] = None


def init_usage_store(backend: Optional[str] = None) -> UsageStore:
    """Create the process-wide usage store. Call once at startup."""
    global _store
    _store = create_usage_store(backend or USAGE_BACKEND)
    return _store


def get_usage_store() -> UsageStore:
    """Get the process-wide usage store, creating it from config if needed."""
    global _store
    if _store is None:
        _store = create_usage_store(USAGE_BACKEND)
    return _store


async def close_usage_store():
    """Flush pending writes and close the process-wide store."""
    global _store
    await drain_pending_usage()
    if _store:
        await _store.close()
        _store = None


__all__ = [
    "UsageStore",
    "UsageStats",
    "TranslationLogEntry",
    "InMemoryUsageStore",
    "RedisUsageStore",
    "compute_analytics",
    "record_usage",
    "schedule_usage_record",
    "drain_pending_usage",
    "create_usage_store",
    "init_usage_store",
    "get_usage_store",
    "close_usage_store",
    "USAGE_BACKEND",
    "USAGE_HISTORY_LIMIT",
]
