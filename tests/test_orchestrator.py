# tests/test_orchestrator.py
import math

import pytest

from conftest import FakeClock, FakeTranslator, failing_attempts
from core import (
    ChunkTranslationError,
    DocumentTranslationError,
    PayloadTooLargeError,
    QuotaExceededError,
    TranslationTimeoutError,
    UpstreamAuthError,
    ValidationError,
)
from ratelimit import InMemoryRateLimiter
from translation.orchestrator import TranslationOrchestrator, describe_window
from translation.schemas import ChunkResult, TranslationJob


class RecordingSleep:
    """Records backoff delays; optionally moves a fake monotonic clock."""

    def __init__(self, clock=None):
        self.delays = []
        self.clock = clock

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.clock is not None:
            self.clock.advance(delay)


def make_job(content: str, file_name: str = "messages.yml") -> TranslationJob:
    return TranslationJob(
        content=content,
        targetLanguage={"code": "es", "name": "Spanish"},
        fileName=file_name
    )


def lines(count: int) -> str:
    return "\n".join(f"  message_{i}: Hello {i}" for i in range(count))


@pytest.fixture
def monotonic():
    return FakeClock(start=0)


@pytest.fixture
def sleeper(monotonic):
    return RecordingSleep(monotonic)


def build(translator, sleeper, monotonic, **kwargs) -> TranslationOrchestrator:
    return TranslationOrchestrator(translator, sleep=sleeper, clock=monotonic, **kwargs)


@pytest.mark.asyncio
async def test_direct_path_single_call(fake_translator, sleeper, monotonic):
    content = lines(10)
    outcome = await build(fake_translator, sleeper, monotonic).translate_document(make_job(content))

    assert len(fake_translator.calls) == 1
    call = fake_translator.calls[0]
    assert (call["index"], call["total"], call["file_kind"]) == (0, 1, "YAML")
    assert call["text"] == content
    assert outcome.translated_content == content.upper().strip()
    assert not outcome.chunked


@pytest.mark.asyncio
async def test_threshold_boundary_is_direct(fake_translator, sleeper, monotonic):
    await build(fake_translator, sleeper, monotonic).translate_document(make_job(lines(200)))
    assert len(fake_translator.calls) == 1


@pytest.mark.asyncio
async def test_chunked_path_in_order(sleeper, monotonic):
    translator = FakeTranslator(lambda text, index, attempt: text)
    content = lines(500)

    outcome = await build(translator, sleeper, monotonic).translate_document(make_job(content))

    assert [call["index"] for call in translator.calls] == [0, 1, 2, 3]
    assert all(call["total"] == 4 for call in translator.calls)
    assert outcome.chunked
    assert outcome.stats.original_lines == 500
    assert outcome.stats.translated_lines == 500


@pytest.mark.asyncio
async def test_stats(sleeper, monotonic):
    translator = FakeTranslator(lambda text, index, attempt: "greeting: Hola\nfarewell: Adiós")
    outcome = await build(translator, sleeper, monotonic).translate_document(make_job("greeting: Hello"))

    stats = outcome.stats
    assert stats.original_lines == 1
    assert stats.translated_lines == 2
    assert stats.character_count == len("greeting: Hola\nfarewell: Adiós")
    assert stats.estimated_token_count == math.ceil(stats.character_count / 4)
    assert stats.elapsed_ms == 0


@pytest.mark.asyncio
async def test_retry_then_success(sleeper, monotonic):
    translator = FakeTranslator(failing_attempts(2))
    outcome = await build(translator, sleeper, monotonic).translate_document(make_job("a: b"))

    assert outcome.translated_content == "a: b"
    assert outcome.chunk_results[0].attempts == 3
    assert [call["attempt"] for call in translator.calls] == [1, 2, 3]
    assert sleeper.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_after_hint_raises_delay(sleeper, monotonic):
    translator = FakeTranslator(failing_attempts(2, retry_after=5))
    await build(translator, sleeper, monotonic).translate_document(make_job("a: b"))
    assert sleeper.delays == [5.0, 5.0]


@pytest.mark.asyncio
async def test_backoff_is_capped(fake_translator, sleeper, monotonic):
    orchestrator = build(fake_translator, sleeper, monotonic, retry_max_delay=30.0)
    assert orchestrator.backoff_delay(1, retry_after=120) == 30.0
    assert orchestrator.backoff_delay(40) == 30.0
    assert orchestrator.backoff_delay(3) == 3.0


@pytest.mark.asyncio
async def test_exhausted_chunk_fails_document(sleeper, monotonic):
    def behaviour(text, index, attempt):
        if index == 1:
            raise ChunkTranslationError("still failing", chunk_index=index)
        return text

    translator = FakeTranslator(behaviour)
    orchestrator = build(translator, sleeper, monotonic)

    with pytest.raises(DocumentTranslationError) as exc_info:
        await orchestrator.translate_document(make_job(lines(500)))

    assert exc_info.value.chunk_index == 1
    assert exc_info.value.attempts == 3
    assert [call["index"] for call in translator.calls] == [0, 1, 1, 1]


@pytest.mark.asyncio
async def test_auth_error_is_not_retried(sleeper, monotonic):
    def behaviour(text, index, attempt):
        raise UpstreamAuthError("bad key")

    translator = FakeTranslator(behaviour)

    with pytest.raises(UpstreamAuthError):
        await build(translator, sleeper, monotonic).translate_document(make_job("a: b"))

    assert len(translator.calls) == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_expired_deadline_makes_no_calls(fake_translator, sleeper, monotonic):
    monotonic.advance(10)
    orchestrator = build(fake_translator, sleeper, monotonic)

    with pytest.raises(TranslationTimeoutError):
        await orchestrator.translate_document(make_job("a: b"), deadline=5)

    assert fake_translator.calls == []


@pytest.mark.asyncio
async def test_deadline_stops_retries(sleeper, monotonic):
    translator = FakeTranslator(failing_attempts(99))
    orchestrator = build(translator, sleeper, monotonic, request_timeout=1.5)

    with pytest.raises(TranslationTimeoutError) as exc_info:
        await orchestrator.translate_document(make_job("a: b"))

    assert exc_info.value.chunk_index == 0
    assert len(translator.calls) == 2
    assert sleeper.delays == [1.0]


@pytest.mark.asyncio
async def test_oversized_payload_rejected_before_any_call(fake_translator, sleeper, monotonic):
    job = make_job("a" * (101 * 1024))

    with pytest.raises(PayloadTooLargeError) as exc_info:
        await build(fake_translator, sleeper, monotonic).translate_document(job)

    assert exc_info.value.max_bytes == 100 * 1024
    assert fake_translator.calls == []


@pytest.mark.asyncio
async def test_multibyte_size_is_measured_in_bytes(fake_translator, sleeper, monotonic):
    job = make_job("é" * (51 * 1024))
    with pytest.raises(PayloadTooLargeError):
        await build(fake_translator, sleeper, monotonic).translate_document(job)


@pytest.mark.asyncio
@pytest.mark.parametrize("job", [
    TranslationJob(targetLanguage={"code": "es", "name": "Spanish"}, fileName="a.yml"),
    TranslationJob(content="   ", targetLanguage={"code": "es", "name": "Spanish"}, fileName="a.yml"),
    TranslationJob(content="a: b", fileName="a.yml"),
    TranslationJob(content="a: b", targetLanguage={"code": "es"}, fileName="a.yml"),
    TranslationJob(content="a: b", targetLanguage={"code": "es", "name": "Spanish"}),
])
async def test_missing_fields(fake_translator, sleeper, monotonic, job):
    with pytest.raises(ValidationError):
        await build(fake_translator, sleeper, monotonic).translate_document(job)
    assert fake_translator.calls == []


@pytest.mark.asyncio
async def test_rate_gate(fake_translator, sleeper, monotonic):
    limiter = InMemoryRateLimiter(max_requests=1, window_ms=3_600_000)
    orchestrator = build(fake_translator, sleeper, monotonic, rate_limiter=limiter)

    outcome = await orchestrator.translate_document(make_job("a: b"), identity="caller")
    assert outcome.rate_limit.remaining == 0
    assert outcome.rate_limit.limit == 1

    with pytest.raises(QuotaExceededError) as exc_info:
        await orchestrator.translate_document(make_job("a: b"), identity="caller")

    assert exc_info.value.reset_time == outcome.rate_limit.reset_time
    assert len(fake_translator.calls) == 1
    assert "1 translations per hour" in exc_info.value.message


@pytest.mark.asyncio
async def test_quota_message_follows_window(fake_translator, sleeper, monotonic):
    limiter = InMemoryRateLimiter(max_requests=1, window_ms=15 * 60_000)
    orchestrator = build(fake_translator, sleeper, monotonic, rate_limiter=limiter)

    await orchestrator.translate_document(make_job("a: b"), identity="caller")
    with pytest.raises(QuotaExceededError) as exc_info:
        await orchestrator.translate_document(make_job("a: b"), identity="caller")

    assert "1 translations every 15 minutes" in exc_info.value.message
    assert "hour" not in exc_info.value.message


@pytest.mark.parametrize("window_ms, wording", [
    (3_600_000, "per hour"),
    (60_000, "per minute"),
    (7_200_000, "every 2 hours"),
    (86_400_000, "per day"),
    (90_000, "every 90 seconds"),
    (1500, "every 1500 ms"),
])
def test_describe_window(window_ms, wording):
    assert describe_window(window_ms) == wording


def test_assemble_trims_and_drops_empty_chunks():
    results = [
        ChunkResult(index=1, translated_text="  second\n", attempts=1),
        ChunkResult(index=0, translated_text="first", attempts=1),
        ChunkResult(index=2, translated_text="   ", attempts=2),
    ]
    assert TranslationOrchestrator.assemble(results) == "first\nsecond"
