"""
Rate Limit Module

Provides:
- Privacy-preserving client identity (salted address hash)
- Fixed-window rate limiter contract
- In-memory, Redis and development (unlimited) backends
- Process-wide limiter lifecycle (init at startup, close at shutdown)
"""
from typing import Optional

from config import is_development
from logs.logging_config import get_llm_logger
from .config import (
    RATE_LIMIT_BACKEND,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_MS,
    RATE_LIMIT_KEY_PREFIX,
)
from .identity import (
    resolve_client_address,
    resolve_identity,
    hash_identifier,
    create_identity_key,
    is_valid_ip_address,
    sanitize_ip_for_logging,
)
from .limiter import (
    RateLimiter,
    RateLimitRecord,
    RateLimitResult,
    InMemoryRateLimiter,
    UnlimitedRateLimiter,
)
from .redis_limiter import RedisRateLimiter

logger = get_llm_logger("ratelimit")


def create_rate_limiter(
    backend: Optional[str] = None,
    max_requests: int = RATE_LIMIT_MAX_REQUESTS,
    window_ms: int = RATE_LIMIT_WINDOW_MS,
    development: Optional[bool] = None
) -> RateLimiter:
    """
    Build a limiter for the configured backend.

    Args:
        backend: "memory" or "redis" (defaults to RATE_LIMIT_BACKEND)
        max_requests: Requests allowed per window
        window_ms: Window length in milliseconds
        development: Bypass limits entirely (defaults to APP_ENV=development)
    """
    if development is None:
        development = is_development()
    if development:
        logger.warning("[RATE_LIMIT] Development mode - rate limiting disabled")
        return UnlimitedRateLimiter(max_requests=max_requests, window_ms=window_ms)

    backend = (backend or RATE_LIMIT_BACKEND).lower()
    if backend == "redis":
        limiter: RateLimiter = RedisRateLimiter(max_requests=max_requests, window_ms=window_ms)
    elif backend == "memory":
        limiter = InMemoryRateLimiter(max_requests=max_requests, window_ms=window_ms)
    else:
        raise ValueError(f"Unknown rate limit backend: {backend}")

    logger.info(
        f"[RATE_LIMIT] Created | backend={limiter.backend_name} | "
        f"max_requests={max_requests} | window_ms={window_ms}"
    )
    return limiter


# Global limiter instance
_limiter: Optional[RateLimiter] = None


def init_rate_limiter(**kwargs) -> RateLimiter:
    """Create the process-wide limiter. Call once at startup."""
    global _limiter
    _limiter = create_rate_limiter(**kwargs)
    return _limiter


def get_rate_limiter() -> RateLimiter:
    """Get the process-wide limiter, creating it from config if needed."""
    global _limiter
    if _limiter is None:
        _limiter = create_rate_limiter()
    return _limiter


async def close_rate_limiter():
    """Close the process-wide limiter's connections."""
    global _limiter
    if _limiter:
        await _limiter.close()
        _limiter = None


__all__ = [
    # Identity
    "resolve_client_address",
    "resolve_identity",
    "hash_identifier",
    "create_identity_key",
    "is_valid_ip_address",
    "sanitize_ip_for_logging",
    # Limiters
    "RateLimiter",
    "RateLimitRecord",
    "RateLimitResult",
    "InMemoryRateLimiter",
    "UnlimitedRateLimiter",
    "RedisRateLimiter",
    # Lifecycle
    "create_rate_limiter",
    "init_rate_limiter",
    "get_rate_limiter",
    "close_rate_limiter",
    # Config
    "RATE_LIMIT_BACKEND",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_MS",
    "RATE_LIMIT_KEY_PREFIX",
]
