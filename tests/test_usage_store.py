# tests/test_usage_store.py
from datetime import datetime, timedelta, timezone

import pytest

from core import StoreError
from usage import (
    InMemoryUsageStore,
    RedisUsageStore,
    TranslationLogEntry,
    compute_analytics,
    create_usage_store,
    drain_pending_usage,
    record_usage,
    schedule_usage_record,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def entry(language="es", success=True, created=None, identity="a1b2c3d4e5f6a7b8"):
    return TranslationLogEntry(
        hashed_identity=identity,
        target_language=language,
        success=success,
        file_type=".yml",
        file_size=120,
        lines_count=4,
        processing_time_ms=850,
        created_at=(created or NOW).isoformat()
    )


class TestAnalytics:

    def test_empty_history(self):
        analytics = compute_analytics(0, [], now=NOW)
        assert analytics == {
            "totalTranslations": 0,
            "translationsToday": 0,
            "topLanguages": [],
            "successRate": 100,
        }

    def test_counts_and_rates(self):
        entries = [
            entry("es"),
            entry("es"),
            entry("de", success=False),
            entry("fr", created=NOW - timedelta(days=2)),
            entry("ja", created=NOW - timedelta(days=10)),
        ]
        analytics = compute_analytics(42, entries, now=NOW)

        assert analytics["totalTranslations"] == 42
        assert analytics["translationsToday"] == 3
        assert analytics["topLanguages"][0] == {"language": "es", "count": 2}
        assert "ja" not in [item["language"] for item in analytics["topLanguages"]]
        assert analytics["successRate"] == 75.0

    def test_top_languages_limited_to_five(self):
        entries = [entry(code) for code in ["es", "de", "fr", "it", "pt", "ru", "ja"]]
        analytics = compute_analytics(7, entries, now=NOW)
        assert len(analytics["topLanguages"]) == 5


def test_log_entry_json_round_trip():
    original = entry()
    assert TranslationLogEntry.from_json(original.to_json()) == original


@pytest.mark.asyncio
async def test_in_memory_store():
    store = InMemoryUsageStore(history_limit=2)
    assert (await store.get_counter()).total_translations == 0

    assert await store.increment() == 1
    assert await store.increment() == 2

    for language in ["es", "de", "fr"]:
        await store.log_translation(entry(language, created=datetime.now(timezone.utc)))

    analytics = await store.get_analytics()
    assert analytics["totalTranslations"] == 2
    assert analytics["translationsToday"] == 2
    assert {item["language"] for item in analytics["topLanguages"]} == {"de", "fr"}


@pytest.mark.asyncio
async def test_redis_store(fake_redis):
    store = RedisUsageStore(client=fake_redis, history_limit=2)

    assert await store.increment() == 1
    assert fake_redis.values["usage:total_translations"] == "1"
    assert "usage:last_updated" in fake_redis.values

    for language in ["es", "de", "fr"]:
        await store.log_translation(entry(language, created=datetime.now(timezone.utc)))
    assert len(fake_redis.lists["usage:history"]) == 2

    counter = await store.get_counter()
    assert counter.to_dict()["totalTranslations"] == 1

    analytics = await store.get_analytics()
    assert analytics["translationsToday"] == 2

    await store.close()
    assert fake_redis.closed


@pytest.mark.asyncio
async def test_redis_store_failures(broken_redis):
    store = RedisUsageStore(client=broken_redis)

    with pytest.raises(StoreError):
        await store.increment()

    assert (await store.get_counter()).total_translations == 0
    await store.log_translation(entry())
    assert (await store.get_analytics())["successRate"] == 100


@pytest.mark.asyncio
async def test_record_usage_counts_successes_only():
    store = InMemoryUsageStore()

    assert await record_usage(store, entry(success=True)) == 1
    assert await record_usage(store, entry(success=False)) is None

    assert (await store.get_counter()).total_translations == 1
    assert len(store._history) == 2



class CounterDownStore(InMemoryUsageStore):
    async def increment(self) -> int:
        raise StoreError("counter unavailable")


@pytest.mark.asyncio
async def test_history_written_when_counter_fails():
    store = CounterDownStore()

    with pytest.raises(StoreError):
        await record_usage(store, entry())

    assert len(store._history) == 1
    analytics = compute_analytics(0, store._history, now=NOW)
    assert analytics["translationsToday"] == 1
    assert analytics["successRate"] == 100


@pytest.mark.asyncio
async def test_scheduled_recording_swallows_errors(broken_redis):
    store = RedisUsageStore(client=broken_redis)

    task = schedule_usage_record(store, entry())
    await drain_pending_usage()

    assert task.done()
    assert isinstance(task.exception(), StoreError)


@pytest.mark.asyncio
async def test_scheduled_recording_completes():
    store = InMemoryUsageStore()
    schedule_usage_record(store, entry())
    await drain_pending_usage()
    assert (await store.get_counter()).total_translations == 1


def test_factory():
    assert isinstance(create_usage_store("memory"), InMemoryUsageStore)
    assert isinstance(create_usage_store("REDIS"), RedisUsageStore)
    with pytest.raises(ValueError):
        create_usage_store("sqlite")
