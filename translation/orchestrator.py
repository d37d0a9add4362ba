"""
Document translation orchestrator.

State machine per job:

    Validating -> (Chunking | Direct) -> Translating[i] -> Retrying[i]* -> Assembling -> Done
                                                   \\-> Failed (validation, exhausted retries,
                                                               non-retryable upstream error, deadline)

Chunks are translated strictly in order: later chunks reuse the terminology
established by earlier ones, and reassembly depends on order. A chunk that
exhausts its retries fails the whole document; partial results are never
returned.
"""
import time
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from config import estimate_tokens
from core import (
    ChunkTranslationError,
    DocumentTranslationError,
    QuotaExceededError,
    TranslationTimeoutError,
    TranslatorError,
    ValidationError,
    validate_byte_size,
    validate_required_field,
)
from ratelimit.limiter import RateLimiter
from .config import (
    TRANSLATION_MAX_FILE_SIZE,
    TRANSLATION_CHUNK_THRESHOLD_LINES,
    TRANSLATION_CHUNK_MAX_LINES,
    TRANSLATION_CHUNK_BOUNDARY_LOOKBACK,
    TRANSLATION_MAX_RETRIES,
    TRANSLATION_RETRY_BASE_DELAY,
    TRANSLATION_RETRY_MAX_DELAY,
    TRANSLATION_REQUEST_TIMEOUT,
)
from .prompts import get_file_kind
from .schemas import (
    ChunkResult,
    RateLimitStatus,
    TargetLanguage,
    TranslationJob,
    TranslationOutcome,
    TranslationStats,
)
from .splitter import Chunk, count_lines, needs_chunking, split_into_chunks
from .translator import ConfigTranslator

logger = logging.getLogger(__name__)

MODULE_NAME = "Translation"


def describe_window(window_ms: int) -> str:
    """Human wording for a rate-limit window, e.g. "per hour" or "every 15 minutes"."""
    for unit_ms, unit in ((86_400_000, "day"), (3_600_000, "hour"), (60_000, "minute"), (1000, "second")):
        if window_ms >= unit_ms and window_ms % unit_ms == 0:
            count = window_ms // unit_ms
            return f"per {unit}" if count == 1 else f"every {count} {unit}s"
    return f"every {window_ms} ms"


class TranslationOrchestrator:
    """Runs one document through rate/size gates, chunking, retries and reassembly."""

    def __init__(
        self,
        translator: ConfigTranslator,
        rate_limiter: Optional[RateLimiter] = None,
        max_file_size: int = TRANSLATION_MAX_FILE_SIZE,
        chunk_threshold: int = TRANSLATION_CHUNK_THRESHOLD_LINES,
        chunk_max_lines: int = TRANSLATION_CHUNK_MAX_LINES,
        boundary_lookback: int = TRANSLATION_CHUNK_BOUNDARY_LOOKBACK,
        max_retries: int = TRANSLATION_MAX_RETRIES,
        retry_base_delay: float = TRANSLATION_RETRY_BASE_DELAY,
        retry_max_delay: float = TRANSLATION_RETRY_MAX_DELAY,
        request_timeout: float = TRANSLATION_REQUEST_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.translator = translator
        self.rate_limiter = rate_limiter
        self.max_file_size = max_file_size
        self.chunk_threshold = chunk_threshold
        self.chunk_max_lines = chunk_max_lines
        self.boundary_lookback = boundary_lookback
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.request_timeout = request_timeout
        self._sleep = sleep
        self._clock = clock

    # =====================
    # Gates
    # =====================

    async def check_rate_limit(self, identity: str) -> Optional[RateLimitStatus]:
        """
        Consume one unit of the caller's quota.

        Raises:
            QuotaExceededError: Window exhausted (carries reset time)
        """
        if self.rate_limiter is None:
            return None

        result = await self.rate_limiter.check(identity)
        status = RateLimitStatus(
            limit=self.rate_limiter.max_requests,
            remaining=result.remaining,
            reset_time=result.reset_time,
            allowed=result.allowed
        )
        if not result.allowed:
            raise QuotaExceededError(
                f"Rate limit exceeded. You can make {self.rate_limiter.max_requests} translations "
                f"{describe_window(self.rate_limiter.window_ms)}.",
                reset_time=result.reset_time,
                limit=self.rate_limiter.max_requests,
                remaining=0
            )
        return status

    def validate(self, job: TranslationJob) -> int:
        """
        Check required fields and size.

        Returns:
            Content size in bytes
        """
        validate_required_field(job.content, "content", MODULE_NAME)
        validate_required_field(job.file_name, "fileName", MODULE_NAME)
        if job.target_language is None:
            raise ValidationError(f"{MODULE_NAME}: targetLanguage is required and cannot be empty.")
        validate_required_field(job.target_language.code, "targetLanguage.code", MODULE_NAME)
        validate_required_field(job.target_language.name, "targetLanguage.name", MODULE_NAME)
        return validate_byte_size(job.content, self.max_file_size, MODULE_NAME)

    # =====================
    # Retry
    # =====================

    def backoff_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """
        Delay before retry number `attempt` (1-based).

        Linear in the attempt number. A provider Retry-After hint may raise it.
        """
        delay = max(self.retry_base_delay * attempt, retry_after or 0.0)
        return min(delay, self.retry_max_delay)

    def _check_deadline(self, deadline: float, chunk_index: int) -> None:
        if self._clock() >= deadline:
            raise TranslationTimeoutError(
                f"Translation deadline exceeded before chunk {chunk_index + 1} completed",
                chunk_index=chunk_index
            )

    async def translate_chunk_with_retry(
        self,
        chunk: Chunk,
        target_language: TargetLanguage,
        file_kind: str,
        deadline: float
    ) -> ChunkResult:
        """
        Translate one chunk, retrying ChunkTranslationError with backoff.

        Non-retryable upstream errors propagate on the first occurrence.

        Raises:
            DocumentTranslationError: All attempts failed
            TranslationTimeoutError: Deadline passed
        """
        max_attempts = 1 + self.max_retries
        last_error: Optional[ChunkTranslationError] = None

        for attempt in range(1, max_attempts + 1):
            self._check_deadline(deadline, chunk.index)

            state = "TRANSLATING" if attempt == 1 else "RETRYING"
            logger.info(
                f"[TRANSLATE_DOC] {state} | chunk={chunk.index + 1}/{chunk.total} | "
                f"attempt={attempt}/{max_attempts} | lines={chunk.line_count}"
            )

            try:
                translated = await self.translator.translate_chunk(
                    text=chunk.text,
                    target_language=target_language,
                    index=chunk.index,
                    total=chunk.total,
                    file_kind=file_kind,
                    attempt=attempt
                )
                return ChunkResult(index=chunk.index, translated_text=translated, attempts=attempt)

            except ChunkTranslationError as e:
                last_error = e
                logger.warning(
                    f"[TRANSLATE_DOC] Chunk failed | chunk={chunk.index + 1}/{chunk.total} | "
                    f"attempt={attempt}/{max_attempts} | error={e.message}"
                )
                if attempt == max_attempts:
                    break

                delay = self.backoff_delay(attempt, e.retry_after)
                if self._clock() + delay >= deadline:
                    raise TranslationTimeoutError(
                        f"Translation deadline would pass while waiting to retry chunk {chunk.index + 1}",
                        chunk_index=chunk.index
                    ) from e
                await self._sleep(delay)

        raise DocumentTranslationError(
            f"Failed to translate chunk {chunk.index + 1} of {chunk.total} after {max_attempts} attempts: "
            f"{last_error.message if last_error else 'unknown error'}",
            chunk_index=chunk.index,
            attempts=max_attempts
        )

    # =====================
    # Pipeline
    # =====================

    def plan_chunks(self, content: str) -> List[Chunk]:
        """Whole document as one chunk, or split chunks above the threshold."""
        if needs_chunking(content, self.chunk_threshold):
            logger.info(
                f"[TRANSLATE_DOC] CHUNKING | lines={count_lines(content)} | "
                f"threshold={self.chunk_threshold} | max_lines={self.chunk_max_lines}"
            )
            return split_into_chunks(content, self.chunk_max_lines, self.boundary_lookback)

        logger.info(f"[TRANSLATE_DOC] DIRECT | lines={count_lines(content)}")
        return [Chunk(index=0, total=1, lines=content.split("\n"))]

    @staticmethod
    def assemble(results: List[ChunkResult]) -> str:
        """Trim each chunk, drop empties, join in index order."""
        ordered = sorted(results, key=lambda result: result.index)
        pieces = [result.translated_text.strip() for result in ordered]
        return "\n".join(piece for piece in pieces if piece)

    @staticmethod
    def compute_stats(original: str, translated: str, elapsed_ms: int) -> TranslationStats:
        return TranslationStats(
            original_lines=count_lines(original),
            translated_lines=count_lines(translated),
            character_count=len(translated),
            estimated_token_count=estimate_tokens(translated),
            elapsed_ms=elapsed_ms
        )

    async def translate_document(
        self,
        job: TranslationJob,
        identity: Optional[str] = None,
        deadline: Optional[float] = None
    ) -> TranslationOutcome:
        """
        Translate a whole document.

        Args:
            job: Content, target language and file name
            identity: Hashed caller identity (rate limit gate runs when given)
            deadline: time.monotonic() value after which no new attempt starts

        Returns:
            TranslationOutcome with content, stats, per-chunk results and rate-limit status
        """
        start = self._clock()
        if deadline is None:
            deadline = start + self.request_timeout

        try:
            rate_status = await self.check_rate_limit(identity) if identity else None

            logger.info(f"[TRANSLATE_DOC] VALIDATING | file={job.file_name}")
            size_bytes = self.validate(job)

            content = job.content
            target = job.target_language
            file_kind = get_file_kind(job.file_name)

            chunks = self.plan_chunks(content)
            logger.info(
                f"[TRANSLATE_DOC] START | bytes={size_bytes} | chunks={len(chunks)} | "
                f"target={target.code} | kind={file_kind}"
            )

            results: List[ChunkResult] = []
            for chunk in chunks:
                results.append(
                    await self.translate_chunk_with_retry(chunk, target, file_kind, deadline)
                )

            logger.info(f"[TRANSLATE_DOC] ASSEMBLING | chunks={len(results)}")
            translated = self.assemble(results)

        except TranslatorError as e:
            logger.error(f"[TRANSLATE_DOC] FAILED | category={e.category} | error={e.message}")
            raise

        elapsed_ms = int((self._clock() - start) * 1000)
        stats = self.compute_stats(content, translated, elapsed_ms)

        logger.info(
            f"[TRANSLATE_DOC] DONE | chunks={len(results)} | "
            f"attempts={sum(r.attempts for r in results)} | "
            f"output_chars={stats.character_count} | elapsed_ms={elapsed_ms}"
        )

        return TranslationOutcome(
            translated_content=translated,
            stats=stats,
            chunk_results=results,
            rate_limit=rate_status
        )
