"""
Translation LLM Client

Module-specific LLM client for translation service.
Uses BaseLLMClient with translation-specific configuration.
"""

from config import SITE_URL, SITE_NAME
from core import BaseLLMClient, LLMConfig
from .config import (
    TRANSLATION_LLM_BACKEND,
    TRANSLATION_OPENAI_URL,
    TRANSLATION_API_KEY,
    TRANSLATION_OLLAMA_URL,
    TRANSLATION_VLLM_URL,
    TRANSLATION_DEFAULT_MODEL,
    TRANSLATION_TEMPERATURE,
    TRANSLATION_MAX_TOKENS,
    TRANSLATION_CONNECTION_TIMEOUT,
    TRANSLATION_CONNECTION_POOL_LIMIT,
)


def create_translation_llm_config() -> LLMConfig:
    """Build the translation LLMConfig from environment settings."""
    return LLMConfig(
        backend=TRANSLATION_LLM_BACKEND,
        openai_url=TRANSLATION_OPENAI_URL,
        api_key=TRANSLATION_API_KEY,
        site_url=SITE_URL,
        site_name=SITE_NAME,
        ollama_url=TRANSLATION_OLLAMA_URL,
        vllm_url=TRANSLATION_VLLM_URL,
        model=TRANSLATION_DEFAULT_MODEL,
        temperature=TRANSLATION_TEMPERATURE,
        max_tokens=TRANSLATION_MAX_TOKENS,
        timeout=TRANSLATION_CONNECTION_TIMEOUT,
        pool_limit=TRANSLATION_CONNECTION_POOL_LIMIT,
        task_name="translate"
    )


def create_translation_llm_client() -> BaseLLMClient:
    """Create a translation client. Owned (and closed) by the application."""
    return BaseLLMClient(create_translation_llm_config())
