"""
Error Taxonomy

Every failure surfaced to a caller maps to one of these classes.
Each carries a stable machine-readable category, an HTTP status,
and a hint telling the caller whether a local (non-AI) fallback
translation may be substituted.
"""

from typing import Optional, Dict, Any


class TranslatorError(Exception):
    """Base class for all service errors."""

    category: str = "internal_error"
    status_code: int = 500
    use_fallback: bool = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.category,
            "message": self.message,
            "useMockTranslation": self.use_fallback,
        }


# =========================
# Caller errors (no retry)
# =========================

class ValidationError(TranslatorError):
    """Missing or malformed request fields."""
    category = "validation_error"
    status_code = 400
    use_fallback = False


class PayloadTooLargeError(ValidationError):
    """Document exceeds MAX_FILE_SIZE."""
    category = "payload_too_large"
    status_code = 413

    def __init__(self, message: str, max_bytes: int, size_bytes: int):
        super().__init__(message)
        self.max_bytes = max_bytes
        self.size_bytes = size_bytes

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["maxBytes"] = self.max_bytes
        return data


class QuotaExceededError(TranslatorError):
    """Caller's rate-limit window is exhausted."""
    category = "rate_limit_exceeded"
    status_code = 429
    use_fallback = False

    def __init__(self, message: str, reset_time: int, limit: int, remaining: int = 0):
        super().__init__(message)
        self.reset_time = reset_time
        self.limit = limit
        self.remaining = remaining


# =========================
# Upstream errors
# =========================

class UpstreamError(TranslatorError):
    """Generic provider failure."""
    category = "upstream_unavailable"
    status_code = 502
    use_fallback = True


class UpstreamAuthError(UpstreamError):
    """Provider rejected our credentials. Retrying will not help."""
    category = "upstream_auth_failed"
    status_code = 401


class UpstreamQuotaError(UpstreamError):
    """Provider quota or billing exhausted. Retrying will not help."""
    category = "upstream_quota_exceeded"
    status_code = 402


class ProviderNotConfiguredError(UpstreamError):
    """No usable API key for the configured backend."""
    category = "provider_not_configured"
    status_code = 503


class ChunkTranslationError(UpstreamError):
    """A single chunk attempt failed. This is the unit of retry."""
    category = "chunk_translation_failed"

    def __init__(
        self,
        message: str,
        chunk_index: int = 0,
        retry_after: Optional[float] = None
    ):
        super().__init__(message)
        self.chunk_index = chunk_index
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["chunkIndex"] = self.chunk_index
        return data


class DocumentTranslationError(UpstreamError):
    """A chunk exhausted its retries; the whole document failed."""
    category = "translation_failed"

    def __init__(self, message: str, chunk_index: int, attempts: int):
        super().__init__(message)
        self.chunk_index = chunk_index
        self.attempts = attempts

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["chunkIndex"] = self.chunk_index
        return data


class TranslationTimeoutError(UpstreamError):
    """The request deadline passed before the document finished."""
    category = "translation_timeout"
    status_code = 504

    def __init__(self, message: str, chunk_index: Optional[int] = None):
        super().__init__(message)
        self.chunk_index = chunk_index

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.chunk_index is not None:
            data["chunkIndex"] = self.chunk_index
        return data


# =========================
# Internal errors (never surfaced)
# =========================

class StoreError(TranslatorError):
    """Backing store (Redis / memory) failure."""
    category = "store_error"
