"""
Logging configuration for LLM calls and request handling.

- Console + rotating file handlers (requests, errors, metrics)
- request_id / user_id injected into every record via contextvars
- Structured helpers for LLM request/response/metrics entries
"""
import json
import uuid
import logging
import contextvars
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any

from config import estimate_tokens

from .config import (
    LOG_OUTPUT_DIR,
    LOG_TO_FILE,
    LOG_LEVEL,
    LOG_MAX_BYTES,
    LOG_BACKUP_COUNT,
    LOG_PREVIEW_LENGTH,
    LOG_DATE_FORMAT,
    LOG_DETAILED_FORMAT,
    LOG_SIMPLE_FORMAT,
    LOG_JSON_FORMAT,
    LOG_FILE_REQUESTS,
    LOG_FILE_ERRORS,
    LOG_FILE_METRICS,
)

LOG_DIR = Path(LOG_OUTPUT_DIR)

LLM_LOGGER_NAME = "llm"
METRICS_LOGGER_NAME = "llm.metrics"

_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="-")

_configured = False


# =========================
# Context Helpers
# =========================

def generate_request_id() -> str:
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> contextvars.Token:
    return _request_id_var.set(request_id)


def get_request_id() -> str:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set("-")


def set_user_id(user_id: str) -> contextvars.Token:
    return _user_id_var.set(user_id)


def get_user_id() -> str:
    return _user_id_var.get()


def clear_user_id() -> None:
    _user_id_var.set("-")


class RequestContext:
    """
    Context manager binding a request_id to all log records in scope.

    Usage:
        with RequestContext(request_id) as rid:
            logger.info("...")
    """

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _request_id_var.set(self.request_id)
        return self.request_id

    def __exit__(self, exc_type, exc, tb):
        if self._token is not None:
            _request_id_var.reset(self._token)
        return False


class UserContext:
    """Context manager binding a (hashed) caller identity to log records."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id or "-"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _user_id_var.set(self.user_id)
        return self.user_id

    def __exit__(self, exc_type, exc, tb):
        if self._token is not None:
            _user_id_var.reset(self._token)
        return False


class ContextFilter(logging.Filter):
    """Injects request_id and user_id into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_var.get()
        record.user_id = _user_id_var.get()
        return True


# =========================
# Log Entry Types
# =========================

@dataclass
class LLMRequestLog:
    request_id: str
    timestamp: str
    model: str
    backend: str
    task: str
    prompt_chars: int
    prompt_preview: str
    temperature: float
    max_tokens: int


@dataclass
class LLMResponseLog:
    request_id: str
    timestamp: str
    model: str
    backend: str
    status: str
    latency_ms: float
    response_chars: int
    response_preview: str
    error_message: Optional[str] = None


@dataclass
class LLMMetrics:
    request_id: str
    timestamp: str
    model: str
    backend: str
    task: str
    latency_ms: float
    prompt_chars: int
    response_chars: int
    status: str
    estimated_tokens: int = 0
    chunk_index: Optional[int] = None
    attempt: Optional[int] = None


@dataclass
class ContextUsageLog:
    request_id: str
    model: str
    prompt_chars: int
    estimated_tokens: int
    max_tokens: int


# =========================
# Setup
# =========================

def _file_handler(filename: str, level: int, fmt: str) -> RotatingFileHandler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(ContextFilter())
    return handler


def setup_llm_logging(level: Optional[str] = None, to_file: Optional[bool] = None) -> logging.Logger:
    """
    Configure the llm logger tree. Safe to call more than once.

    Args:
        level: Log level name (defaults to LOG_LEVEL)
        to_file: Write rotating files under LOG_DIR (defaults to LOG_TO_FILE)

    Returns:
        The root llm logger
    """
    global _configured

    logger = logging.getLogger(LLM_LOGGER_NAME)
    if _configured:
        return logger

    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    logger.setLevel(log_level)
    logger.propagate = False

    console = logging.StreamHandler()
    console.setLevel(log_level)
    console.setFormatter(logging.Formatter(LOG_SIMPLE_FORMAT, datefmt=LOG_DATE_FORMAT))
    console.addFilter(ContextFilter())
    logger.addHandler(console)

    write_files = LOG_TO_FILE if to_file is None else to_file
    if write_files:
        logger.addHandler(_file_handler(LOG_FILE_REQUESTS, log_level, LOG_DETAILED_FORMAT))
        logger.addHandler(_file_handler(LOG_FILE_ERRORS, logging.ERROR, LOG_DETAILED_FORMAT))

        metrics_logger = logging.getLogger(METRICS_LOGGER_NAME)
        metrics_logger.addHandler(_file_handler(LOG_FILE_METRICS, logging.INFO, LOG_JSON_FORMAT))

    _configured = True
    logger.info(f"[LOGGING] Initialized | level={logging.getLevelName(log_level)} | files={write_files} | dir={LOG_DIR}")
    return logger


def get_llm_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the llm logger (or a named child of it)."""
    if name:
        return logging.getLogger(f"{LLM_LOGGER_NAME}.{name}")
    return logging.getLogger(LLM_LOGGER_NAME)


def get_metrics_logger() -> logging.Logger:
    return logging.getLogger(METRICS_LOGGER_NAME)


# =========================
# Structured Log Helpers
# =========================

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _preview(text: str) -> str:
    if len(text) <= LOG_PREVIEW_LENGTH:
        return text
    return text[:LOG_PREVIEW_LENGTH] + "..."


def log_llm_request(
    model: str,
    backend: str,
    task: str,
    prompt: str,
    temperature: float,
    max_tokens: int
) -> str:
    """Log an outgoing LLM request. Returns the request_id used for correlation."""
    request_id = get_request_id()
    if request_id == "-":
        request_id = generate_request_id()

    entry = LLMRequestLog(
        request_id=request_id,
        timestamp=_now(),
        model=model,
        backend=backend,
        task=task,
        prompt_chars=len(prompt),
        prompt_preview=_preview(prompt),
        temperature=temperature,
        max_tokens=max_tokens
    )
    get_llm_logger().info(
        f"[LLM_REQUEST] model={model} | backend={backend} | task={task} | "
        f"prompt_chars={entry.prompt_chars} | temperature={temperature} | max_tokens={max_tokens}"
    )
    get_llm_logger().debug(f"[LLM_REQUEST] preview={entry.prompt_preview!r}")
    return request_id


def log_llm_response(
    request_id: str,
    model: str,
    backend: str,
    response: str,
    latency_ms: float,
    status: str,
    error_message: Optional[str] = None
) -> None:
    entry = LLMResponseLog(
        request_id=request_id,
        timestamp=_now(),
        model=model,
        backend=backend,
        status=status,
        latency_ms=round(latency_ms, 2),
        response_chars=len(response),
        response_preview=_preview(response),
        error_message=error_message
    )
    logger = get_llm_logger()
    if status == "success":
        logger.info(
            f"[LLM_RESPONSE] status={status} | model={model} | "
            f"latency_ms={entry.latency_ms} | response_chars={entry.response_chars}"
        )
    else:
        logger.error(
            f"[LLM_RESPONSE] status={status} | model={model} | "
            f"latency_ms={entry.latency_ms} | error={error_message}"
        )


def log_metrics(
    request_id: str,
    model: str,
    backend: str,
    task: str,
    latency_ms: float,
    prompt_chars: int,
    response_chars: int,
    status: str,
    estimated_tokens: int = 0,
    chunk_index: Optional[int] = None,
    attempt: Optional[int] = None
) -> Dict[str, Any]:
    """Emit one JSON metrics line and return it as a dict."""
    metrics = LLMMetrics(
        request_id=request_id,
        timestamp=_now(),
        model=model,
        backend=backend,
        task=task,
        latency_ms=round(latency_ms, 2),
        prompt_chars=prompt_chars,
        response_chars=response_chars,
        status=status,
        estimated_tokens=estimated_tokens,
        chunk_index=chunk_index,
        attempt=attempt
    )
    data = asdict(metrics)
    get_metrics_logger().info(json.dumps(data, ensure_ascii=False))
    return data


def log_context_usage(
    request_id: str,
    model: str,
    prompt: str,
    max_tokens: int
) -> Dict[str, Any]:
    """Log the estimated prompt size against the completion budget."""
    usage = ContextUsageLog(
        request_id=request_id,
        model=model,
        prompt_chars=len(prompt),
        estimated_tokens=estimate_tokens(prompt),
        max_tokens=max_tokens
    )
    get_llm_logger().debug(
        f"[CONTEXT] model={model} | prompt_chars={usage.prompt_chars} | "
        f"estimated_tokens={usage.estimated_tokens} | max_tokens={max_tokens}"
    )
    return asdict(usage)
