"""
Core Module

Shared infrastructure components for all modules:
- LLM client base class
- Error taxonomy
- Validators
"""

from .llm_client_base import BaseLLMClient, LLMConfig
from .errors import (
    TranslatorError,
    ValidationError,
    PayloadTooLargeError,
    QuotaExceededError,
    UpstreamError,
    UpstreamAuthError,
    UpstreamQuotaError,
    ProviderNotConfiguredError,
    ChunkTranslationError,
    DocumentTranslationError,
    TranslationTimeoutError,
    StoreError,
)
from .validators import (
    byte_size,
    validate_required_field,
    validate_byte_size,
)

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "TranslatorError",
    "ValidationError",
    "PayloadTooLargeError",
    "QuotaExceededError",
    "UpstreamError",
    "UpstreamAuthError",
    "UpstreamQuotaError",
    "ProviderNotConfiguredError",
    "ChunkTranslationError",
    "DocumentTranslationError",
    "TranslationTimeoutError",
    "StoreError",
    "byte_size",
    "validate_required_field",
    "validate_byte_size",
]
