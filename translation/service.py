"""
Translation Service

FastAPI endpoints for config-file translation.

Collaborators (limiter, usage store, orchestrator) are created once in the
application lifespan and reached through Depends functions, so tests can
override them.
"""
import os
import math
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core import QuotaExceededError, TranslatorError, byte_size
from logs.logging_config import get_llm_logger, RequestContext, UserContext
from ratelimit import RateLimiter, resolve_identity
from ratelimit.limiter import now_ms
from usage import UsageStore, TranslationLogEntry, schedule_usage_record
from .config import (
    TRANSLATION_MAX_FILE_SIZE,
    TRANSLATION_ALLOWED_EXTENSIONS,
    TRANSLATION_CHUNK_THRESHOLD_LINES,
    TRANSLATION_CHUNK_MAX_LINES,
    TRANSLATION_MAX_RETRIES,
)
from .languages import SUPPORTED_LANGUAGES
from .orchestrator import TranslationOrchestrator
from .schemas import (
    LanguageItem,
    RateLimitStatus,
    StatusResponse,
    TranslateResponse,
    TranslationJob,
    UsageStatus,
)
from .splitter import count_lines

logger = get_llm_logger()

router = APIRouter(prefix="/api/v1/translate", tags=["Translation"])


# =====================
# Dependencies
# =====================

def get_rate_limiter_dep(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_usage_store_dep(request: Request) -> UsageStore:
    return request.app.state.usage_store


def get_orchestrator_dep(request: Request) -> TranslationOrchestrator:
    return request.app.state.orchestrator


# =====================
# Helpers
# =====================

def rate_limit_headers(limit: int, remaining: int, reset_time: int) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_time),
    }


def reset_time_iso(reset_time_ms: int) -> str:
    """Epoch milliseconds -> ISO-8601 UTC (millisecond precision, 'Z' suffix)."""
    moment = datetime.fromtimestamp(reset_time_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def retry_after_seconds(reset_time_ms: int, now: Optional[int] = None) -> int:
    """Whole seconds until the window resets, never negative."""
    now = now_ms() if now is None else now
    return max(0, math.ceil((reset_time_ms - now) / 1000))


def build_log_entry(
    identity: str,
    job: TranslationJob,
    success: bool,
    processing_time_ms: int,
    error_message: Optional[str] = None
) -> TranslationLogEntry:
    """History row for one request. Holds the hashed identity only."""
    target = job.target_language.code if job.target_language and job.target_language.code else "unknown"
    extension = os.path.splitext(job.file_name or "")[1].lower() or None
    content = job.content or ""
    return TranslationLogEntry(
        hashed_identity=identity,
        target_language=target,
        success=success,
        file_type=extension,
        file_size=byte_size(content),
        lines_count=count_lines(content) if content else 0,
        error_message=error_message,
        processing_time_ms=processing_time_ms
    )


# =====================
# API Endpoints
# =====================

@router.post("", response_model=TranslateResponse)
async def translate_endpoint(
    job: TranslationJob,
    request: Request,
    response: Response,
    orchestrator: TranslationOrchestrator = Depends(get_orchestrator_dep),
    usage_store: UsageStore = Depends(get_usage_store_dep)
):
    """
    Translate a configuration file.

    **Request Body:**
    - `content`: File content (required, at most 100KB)
    - `targetLanguage`: `{code, name}` (required)
    - `fileName`: Original file name, used for syntax hints (required)

    **Returns:**
    - `translatedContent`: Translated file
    - `success`: Always true on 200
    - `totalTranslations`: Service-wide counter (approximate)
    - `stats`: Line/character/token statistics
    """
    identity = resolve_identity(request.headers)
    start = time.monotonic()

    with RequestContext(), UserContext(identity):
        logger.info(
            f"[TRANSLATE] START | file={job.file_name} | "
            f"chars={len(job.content or '')} | identity={identity}"
        )

        try:
            outcome = await orchestrator.translate_document(job, identity=identity)
        except QuotaExceededError:
            logger.warning(f"[TRANSLATE] RATE_LIMITED | identity={identity}")
            raise
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            message = e.message if isinstance(e, TranslatorError) else str(e)
            schedule_usage_record(
                usage_store,
                build_log_entry(identity, job, success=False, processing_time_ms=elapsed_ms, error_message=message)
            )
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        counter = await usage_store.get_counter()
        schedule_usage_record(
            usage_store,
            build_log_entry(identity, job, success=True, processing_time_ms=elapsed_ms)
        )

        if outcome.rate_limit is not None:
            response.headers.update(
                rate_limit_headers(
                    outcome.rate_limit.limit,
                    outcome.rate_limit.remaining,
                    outcome.rate_limit.reset_time
                )
            )

        logger.info(
            f"[TRANSLATE] END | chunks={len(outcome.chunk_results)} | "
            f"output_chars={outcome.stats.character_count} | elapsed_ms={elapsed_ms}"
        )

        return TranslateResponse(
            translated_content=outcome.translated_content,
            success=True,
            total_translations=counter.total_translations + 1,
            stats=outcome.stats,
            chunks=len(outcome.chunk_results)
        )


@router.get("/status", response_model=StatusResponse)
async def status_endpoint(
    request: Request,
    response: Response,
    limiter: RateLimiter = Depends(get_rate_limiter_dep),
    usage_store: UsageStore = Depends(get_usage_store_dep)
):
    """Caller's rate-limit status, the usage counter and analytics. Does not consume quota."""
    identity = resolve_identity(request.headers)
    result = await limiter.peek(identity)
    counter = await usage_store.get_counter()
    analytics = await usage_store.get_analytics()

    response.headers.update(rate_limit_headers(limiter.max_requests, result.remaining, result.reset_time))

    return StatusResponse(
        rate_limit=RateLimitStatus(
            limit=limiter.max_requests,
            remaining=result.remaining,
            reset_time=result.reset_time,
            allowed=result.allowed
        ),
        usage=UsageStatus(
            total_translations=counter.total_translations,
            last_updated=counter.last_updated,
            translations_today=analytics["translationsToday"],
            top_languages=analytics["topLanguages"],
            success_rate=analytics["successRate"]
        )
    )


@router.get("/languages", response_model=List[LanguageItem])
async def languages_endpoint():
    """List supported target languages."""
    return [LanguageItem(**language.to_dict()) for language in SUPPORTED_LANGUAGES]


@router.get("/config")
async def config_endpoint(limiter: RateLimiter = Depends(get_rate_limiter_dep)):
    """Public limits and chunking settings."""
    return {
        "maxFileSize": TRANSLATION_MAX_FILE_SIZE,
        "allowedExtensions": TRANSLATION_ALLOWED_EXTENSIONS,
        "rateLimit": {
            "maxRequests": limiter.max_requests,
            "windowMs": limiter.window_ms,
            "backend": limiter.backend_name,
        },
        "chunking": {
            "thresholdLines": TRANSLATION_CHUNK_THRESHOLD_LINES,
            "maxLinesPerChunk": TRANSLATION_CHUNK_MAX_LINES,
            "maxRetries": TRANSLATION_MAX_RETRIES,
        },
    }


# =====================
# Exception Handlers
# =====================

async def translator_error_handler(request: Request, exc: TranslatorError) -> JSONResponse:
    """Map a TranslatorError to its JSON body and status."""
    body = exc.to_dict()
    headers: Dict[str, str] = {}

    if isinstance(exc, QuotaExceededError):
        body["resetTime"] = reset_time_iso(exc.reset_time)
        body["remaining"] = 0
        headers.update(rate_limit_headers(exc.limit, 0, exc.reset_time))
        headers["Retry-After"] = str(retry_after_seconds(exc.reset_time))

    if exc.status_code >= 500:
        logger.error(f"[TRANSLATE] ERROR | category={exc.category} | status={exc.status_code} | error={exc.message}")
    else:
        logger.info(f"[TRANSLATE] REJECTED | category={exc.category} | status={exc.status_code}")

    return JSONResponse(status_code=exc.status_code, content=body, headers=headers or None)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrong field types are reported like missing fields."""
    logger.info(f"[TRANSLATE] REJECTED | category=validation_error | errors={len(exc.errors())}")
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": "Invalid request body. Required fields: content, targetLanguage, fileName.",
            "useMockTranslation": False,
        }
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"[TRANSLATE] UNHANDLED | error={exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Translation service temporarily unavailable",
            "useMockTranslation": True,
        }
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(TranslatorError, translator_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
