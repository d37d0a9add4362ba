"""
Pytest Configuration and Shared Fixtures

Provides fakes for the clock, Redis, the LLM session and the translator.
"""

# Standard library
import os
import sys
import fnmatch
from typing import Callable, Dict, List, Optional

# Keep test runs hermetic: no log files, real limits
os.environ["LOG_TO_FILE"] = "false"
os.environ["APP_ENV"] = "test"

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Third-party
import pytest
import redis.asyncio as redis

from core import ChunkTranslationError


# ============================================================================
# Clock
# ============================================================================

class FakeClock:
    """Callable clock returning epoch milliseconds under test control."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================================
# Redis
# ============================================================================

class FakeRedis:
    """In-process stand-in for the redis.asyncio commands this project uses."""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.ttls: Dict[str, int] = {}
        self.closed = False

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value):
        self.values[key] = str(value)
        return True

    async def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def incr(self, key):
        value = int(self.values.get(key, 0)) + 1
        self.values[key] = str(value)
        return value

    async def lpush(self, key, *values):
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def ltrim(self, key, start, stop):
        items = self.lists.get(key, [])
        self.lists[key] = items[start:stop + 1] if stop >= 0 else items[start:]
        return True

    async def lrange(self, key, start, stop):
        items = self.lists.get(key, [])
        return items[start:] if stop == -1 else items[start:stop + 1]

    async def scan_iter(self, match=None, count=None):
        for key in list(self.values):
            if match is None or fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self):
        self.closed = True


class BrokenRedis:
    """Every command fails as if the server were unreachable."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")
        return fail


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def broken_redis():
    return BrokenRedis()


# ============================================================================
# LLM session
# ============================================================================

class FakeResponse:
    def __init__(self, status: int = 200, payload=None, text: str = "", headers=None):
        self.status = status
        self._payload = payload if payload is not None else {}
        self._text = text
        self.headers = headers or {}
        self.reason = "Reason"

    async def text(self):
        return self._text

    async def json(self, content_type=None):
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Mimics aiohttp.ClientSession.post() as an async context manager."""

    def __init__(self, response: FakeResponse):
        self.response = response
        self.closed = False
        self.calls: List[Dict] = []

    def post(self, url, json=None, headers=None):
        self.calls.append({"url": url, "json": json, "headers": headers})
        return self.response

    async def close(self):
        self.closed = True


@pytest.fixture
def make_session():
    def _make(status: int = 200, payload=None, text: str = "", headers=None) -> FakeSession:
        return FakeSession(FakeResponse(status, payload, text, headers))
    return _make


# ============================================================================
# Translator
# ============================================================================

class FakeTranslator:
    """
    Records every call. The behaviour callable receives (text, index, attempt)
    and returns the translation or raises.
    """

    def __init__(self, behaviour: Optional[Callable] = None):
        self.behaviour = behaviour or (lambda text, index, attempt: text.upper())
        self.calls: List[Dict] = []

    async def translate_chunk(self, text, target_language, index=0, total=1, file_kind="configuration", attempt=None):
        self.calls.append({"text": text, "index": index, "total": total, "attempt": attempt, "file_kind": file_kind})
        return self.behaviour(text, index, attempt)


def failing_attempts(failures: int, retry_after: Optional[float] = None):
    """Behaviour that fails the first `failures` attempts of every chunk."""
    def behaviour(text, index, attempt):
        if attempt <= failures:
            raise ChunkTranslationError("provider hiccup", chunk_index=index, retry_after=retry_after)
        return text
    return behaviour


@pytest.fixture
def fake_translator():
    return FakeTranslator()


@pytest.fixture
def target_language():
    from translation.schemas import TargetLanguage
    return TargetLanguage(code="es", name="Spanish", flag="🇪🇸")
