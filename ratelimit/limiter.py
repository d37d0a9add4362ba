"""
Fixed-window rate limiter contract and in-process backends.

A window opens on a caller's first request and closes at
window_start + window_ms. Rejected requests do not extend the window.
"""
import json
import time
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Callable, Dict, Any, Optional

from .config import (
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_MS,
    RATE_LIMIT_DEV_REMAINING,
)

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class RateLimitRecord:
    """Stored state for one caller's current window."""
    count: int
    window_start: int
    reset_time: int

    def is_expired(self, now: int) -> bool:
        return now > self.reset_time

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, json_str: str) -> "RateLimitRecord":
        data = json.loads(json_str)
        return cls(
            count=int(data["count"]),
            window_start=int(data["window_start"]),
            reset_time=int(data["reset_time"])
        )


@dataclass
class RateLimitResult:
    """Outcome of a check/peek."""
    allowed: bool
    remaining: int
    reset_time: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RateLimiter(ABC):
    """
    Contract shared by every backend.

    check() consumes one unit of quota when allowed; peek() never mutates.
    """

    backend_name = "abstract"

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        clock: Callable[[], int] = now_ms
    ):
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock

    def _new_record(self, now: int) -> RateLimitRecord:
        return RateLimitRecord(count=1, window_start=now, reset_time=now + self.window_ms)

    def _fresh_window_result(self, now: int) -> RateLimitResult:
        """Result of the first request in a brand new window."""
        return RateLimitResult(
            allowed=True,
            remaining=self.max_requests - 1,
            reset_time=now + self.window_ms
        )

    def _unused_window_result(self, now: int) -> RateLimitResult:
        """Status of a caller with no live window (full quota available)."""
        return RateLimitResult(
            allowed=True,
            remaining=self.max_requests,
            reset_time=now + self.window_ms
        )

    def _evaluate(self, record: Optional[RateLimitRecord], now: int):
        """
        Apply the fixed-window rules to a loaded record.

        Returns:
            (result, record_to_store) where record_to_store is None when
            nothing should be written
        """
        if record is None or record.is_expired(now):
            new_record = self._new_record(now)
            return self._fresh_window_result(now), new_record

        if record.count >= self.max_requests:
            return RateLimitResult(allowed=False, remaining=0, reset_time=record.reset_time), None

        record.count += 1
        result = RateLimitResult(
            allowed=True,
            remaining=self.max_requests - record.count,
            reset_time=record.reset_time
        )
        return result, record

    def _status(self, record: Optional[RateLimitRecord], now: int) -> RateLimitResult:
        """Read-only view of a loaded record."""
        if record is None or record.is_expired(now):
            return self._unused_window_result(now)

        remaining = max(0, self.max_requests - record.count)
        return RateLimitResult(
            allowed=remaining > 0,
            remaining=remaining,
            reset_time=record.reset_time
        )

    @abstractmethod
    async def check(self, identity: str) -> RateLimitResult:
        """Consume one unit of quota for identity if allowed."""

    @abstractmethod
    async def peek(self, identity: str) -> RateLimitResult:
        """Report status for identity without consuming quota."""

    @abstractmethod
    async def reset(self, identity: str) -> None:
        """Forget identity's current window."""

    @abstractmethod
    async def get_stats(self) -> Dict[str, Any]:
        """Backend statistics (for debugging)."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryRateLimiter(RateLimiter):
    """
    Process-local limiter.

    Expired records are dropped on every call. Counts are exact within
    one process but are not shared between processes.
    """

    backend_name = "memory"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._records: Dict[str, RateLimitRecord] = {}
        self._lock = asyncio.Lock()

    def _cleanup(self, now: int) -> None:
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug(f"[RATE_LIMIT] Cleanup | removed={len(expired)} | remaining={len(self._records)}")

    async def check(self, identity: str) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            record = self._records.get(identity)
            self._cleanup(now)

            result, to_store = self._evaluate(record, now)
            if to_store is not None:
                self._records[identity] = to_store

        if not result.allowed:
            logger.info(f"[RATE_LIMIT] Rejected | identity={identity} | reset_time={result.reset_time}")
        return result

    async def peek(self, identity: str) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            record = self._records.get(identity)
            self._cleanup(now)
            return self._status(record, now)

    async def reset(self, identity: str) -> None:
        async with self._lock:
            self._records.pop(identity, None)

    async def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_name,
            "total_entries": len(self._records),
            "max_requests": self.max_requests,
            "window_ms": self.window_ms,
        }


class UnlimitedRateLimiter(RateLimiter):
    """Development-mode limiter: everything is allowed, nothing is stored."""

    backend_name = "unlimited"

    def _dev_result(self) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            remaining=RATE_LIMIT_DEV_REMAINING,
            reset_time=self._clock() + self.window_ms
        )

    async def check(self, identity: str) -> RateLimitResult:
        return self._dev_result()

    async def peek(self, identity: str) -> RateLimitResult:
        return self._dev_result()

    async def reset(self, identity: str) -> None:
        return None

    async def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_name,
            "total_entries": 0,
            "max_requests": self.max_requests,
            "window_ms": self.window_ms,
        }
