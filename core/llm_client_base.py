"""
Base LLM Client

Provides shared LLM client functionality for all modules.
Each module creates its own instance with its own configuration.

Features:
- Supports OpenAI-compatible (OpenRouter), VLLM and Ollama backends
- Module-specific configuration (backend, URL, model, etc.)
- Connection pooling per instance
- Comprehensive logging
- Provider errors mapped onto the service error taxonomy

Usage:
    # In module's llm_client.py
    from core.llm_client_base import BaseLLMClient, LLMConfig

    config = LLMConfig(
        backend="openai",
        openai_url="https://openrouter.ai/api/v1",
        api_key="sk-...",
        model="openai/gpt-4o-mini",
        task_name="translate"
    )

    client = BaseLLMClient(config)
    response = await client.generate_text_with_logging(prompt)
"""

import time
import asyncio
import aiohttp
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from config import estimate_tokens
from logs.logging_config import (
    get_llm_logger,
    log_llm_request,
    log_llm_response,
    log_metrics,
    log_context_usage,
)
from .errors import (
    ChunkTranslationError,
    ProviderNotConfiguredError,
    UpstreamAuthError,
    UpstreamQuotaError,
)

logger = get_llm_logger()

# Values shipped in example env files that must not be treated as real keys
PLACEHOLDER_API_KEYS = {"", "your_openrouter_api_key_here", "your_api_key_here", "changeme"}

QUOTA_MARKERS = ("quota", "billing", "insufficient credits")


@dataclass
class LLMConfig:
    """
    Configuration for an LLM client instance.

    Each module creates its own LLMConfig with module-specific settings.
    This allows different modules to use different backends, models, URLs, etc.

    Example:
        # Hosted provider through OpenRouter
        translation_config = LLMConfig(
            backend="openai",
            openai_url="https://openrouter.ai/api/v1",
            api_key="sk-or-...",
            model="openai/gpt-4o-mini",
            task_name="translate"
        )

        # Self-hosted VLLM
        translation_config = LLMConfig(
            backend="vllm",
            vllm_url="http://prod-gpu:8000",
            model="llama3:70b",
            task_name="translate"
        )
    """
    # Backend selection: "openai", "vllm" or "ollama"
    backend: str = "openai"

    # OpenAI-compatible settings
    openai_url: str = "https://openrouter.ai/api/v1"
    api_key: str = ""
    site_url: Optional[str] = None
    site_name: Optional[str] = None

    # Ollama settings
    ollama_url: str = "http://localhost:11434"

    # VLLM settings
    vllm_url: str = "http://localhost:8000"

    # Model settings
    model: str = "openai/gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 4000

    # Connection settings
    timeout: int = 300
    pool_limit: int = 50

    # Logging identifier
    task_name: str = "unknown"

    def get_backend_url(self) -> str:
        """Get the URL for the configured backend."""
        if self.backend == "vllm":
            return self.vllm_url
        if self.backend == "ollama":
            return self.ollama_url
        return self.openai_url

    def is_configured(self) -> bool:
        """Hosted backends need a real `sk-` API key; self-hosted ones do not."""
        if self.backend != "openai":
            return True
        key = self.api_key.strip()
        return key not in PLACEHOLDER_API_KEYS and key.startswith("sk-")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (API key excluded)."""
        return {
            "backend": self.backend,
            "openai_url": self.openai_url,
            "ollama_url": self.ollama_url,
            "vllm_url": self.vllm_url,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
            "pool_limit": self.pool_limit,
            "task_name": self.task_name,
            "api_key_configured": self.is_configured(),
        }


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Retry-After as seconds; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _text_or_empty(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class BaseLLMClient:
    """
    Base LLM client with shared logic for OpenAI-compatible, VLLM and Ollama backends.

    Each module creates its OWN INSTANCE with its OWN CONFIGURATION.
    The base class provides the shared implementation.

    Error mapping (raised from generate_text_with_logging):
    - 401/403                     -> UpstreamAuthError
    - 402 or quota/billing body   -> UpstreamQuotaError
    - 429                         -> ChunkTranslationError (with retry_after)
    - other non-2xx, timeouts,
      connection errors, no text  -> ChunkTranslationError

    Example:
        config = LLMConfig(backend="vllm", model="gemma3:4b")
        client = BaseLLMClient(config)

        response = await client.generate_text_with_logging(
            prompt="Translate this to Spanish",
            temperature=0.3
        )
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize LLM client with module-specific configuration.

        Args:
            config: LLMConfig with backend, URL, model, and other settings
        """
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

        logger.debug(
            f"[{config.task_name.upper()}_LLM] Initialized | "
            f"backend={config.backend} | model={config.model} | "
            f"url={config.get_backend_url()}"
        )

    async def get_session(self) -> aiohttp.ClientSession:
        """
        Get or create aiohttp session for this instance.

        Each BaseLLMClient instance maintains its own session,
        allowing different modules to have independent connection pools.
        """
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            connector = aiohttp.TCPConnector(
                limit=self.config.pool_limit,
                limit_per_host=self.config.pool_limit
            )
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector
            )
            logger.debug(
                f"[{self.config.task_name.upper()}_LLM] Session created | "
                f"backend={self.config.backend}"
            )
        return self._session

    async def close(self):
        """Close this instance's session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.debug(f"[{self.config.task_name.upper()}_LLM] Session closed")

    async def generate_text_with_logging(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: str = None,
        temperature: float = None,
        max_tokens: int = None,
        task: str = None,
        chunk_index: int = 0,
        attempt: Optional[int] = None,
    ) -> str:
        """
        Generate text using the configured backend with full logging.

        Automatically routes to the backend named by config.backend.

        Args:
            prompt: The user prompt to send to the LLM
            system_prompt: Optional system instruction
            model: Override model (uses config.model if not specified)
            temperature: Override temperature (uses config.temperature if not specified)
            max_tokens: Override max_tokens (uses config.max_tokens if not specified)
            task: Override task name for logging (uses config.task_name if not specified)
            chunk_index: Chunk being processed (attached to raised errors)
            attempt: Attempt number (metrics only)

        Returns:
            Generated text response (never empty)
        """
        if not self.config.is_configured():
            raise ProviderNotConfiguredError(
                f"{self.config.task_name.title()} LLM API key not configured"
            )

        model_name = model or self.config.model
        temp = temperature if temperature is not None else self.config.temperature
        max_tok = max_tokens if max_tokens is not None else self.config.max_tokens
        task_name = task or self.config.task_name
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt

        request_id = log_llm_request(
            model=model_name,
            backend=self.config.backend,
            task=task_name,
            prompt=full_prompt,
            temperature=temp,
            max_tokens=max_tok
        )

        context_stats = log_context_usage(
            request_id=request_id,
            model=model_name,
            prompt=full_prompt,
            max_tokens=max_tok
        )

        start_time = time.time()

        try:
            if self.config.backend == "ollama":
                response = await self._call_ollama(full_prompt, model_name, temp, max_tok, chunk_index)
            else:
                messages = self._build_messages(prompt, system_prompt)
                response = await self._call_chat_completions(messages, model_name, temp, max_tok, chunk_index)

            if not response:
                raise ChunkTranslationError(
                    f"No text received from {self.config.task_name} LLM",
                    chunk_index=chunk_index
                )

            latency_ms = (time.time() - start_time) * 1000

            log_llm_response(
                request_id=request_id,
                model=model_name,
                backend=self.config.backend,
                response=response,
                latency_ms=latency_ms,
                status="success"
            )

            log_metrics(
                request_id=request_id,
                model=model_name,
                backend=self.config.backend,
                task=task_name,
                latency_ms=latency_ms,
                prompt_chars=len(full_prompt),
                response_chars=len(response),
                status="success",
                estimated_tokens=context_stats["estimated_tokens"] + estimate_tokens(response),
                chunk_index=chunk_index,
                attempt=attempt
            )

            return response

        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000

            log_llm_response(
                request_id=request_id,
                model=model_name,
                backend=self.config.backend,
                response="",
                latency_ms=latency_ms,
                status="error",
                error_message=str(e)
            )

            log_metrics(
                request_id=request_id,
                model=model_name,
                backend=self.config.backend,
                task=task_name,
                latency_ms=latency_ms,
                prompt_chars=len(full_prompt),
                response_chars=0,
                status="error",
                estimated_tokens=context_stats["estimated_tokens"],
                chunk_index=chunk_index,
                attempt=attempt
            )

            raise

    def _build_messages(self, prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.backend == "openai":
            headers["Authorization"] = f"Bearer {self.config.api_key}"
            if self.config.site_url:
                headers["HTTP-Referer"] = self.config.site_url
            if self.config.site_name:
                headers["X-Title"] = self.config.site_name
        return headers

    def _chat_completions_url(self) -> str:
        if self.config.backend == "vllm":
            return f"{self.config.vllm_url.rstrip('/')}/v1/chat/completions"
        return f"{self.config.openai_url.rstrip('/')}/chat/completions"

    async def _raise_for_status(self, r: aiohttp.ClientResponse, chunk_index: int) -> None:
        """Map a non-2xx provider response onto the error taxonomy."""
        if r.status < 400:
            return

        body = await r.text()
        detail = body[:200] if body else r.reason
        name = self.config.task_name.title()

        if r.status in (401, 403):
            raise UpstreamAuthError(f"{name} LLM rejected API key (HTTP {r.status})")

        if r.status == 402 or any(marker in body.lower() for marker in QUOTA_MARKERS):
            raise UpstreamQuotaError(
                f"{name} LLM quota exceeded. Please check your provider billing."
            )

        if r.status == 429:
            raise ChunkTranslationError(
                f"{name} LLM rate limited (HTTP 429)",
                chunk_index=chunk_index,
                retry_after=_parse_retry_after(r.headers.get("Retry-After"))
            )

        raise ChunkTranslationError(
            f"{name} LLM request failed (HTTP {r.status}): {detail}",
            chunk_index=chunk_index
        )

    async def _post_json(self, url: str, payload: Dict[str, Any], chunk_index: int) -> Dict[str, Any]:
        """POST payload and return the decoded JSON body."""
        name = self.config.task_name
        try:
            session = await self.get_session()
            async with session.post(url, json=payload, headers=self._build_headers()) as r:
                await self._raise_for_status(r, chunk_index)
                data = await r.json(content_type=None)

            if not isinstance(data, dict):
                raise ChunkTranslationError(
                    f"{name.title()} LLM returned an unexpected body ({type(data).__name__})",
                    chunk_index=chunk_index
                )
            return data

        except asyncio.TimeoutError:
            logger.error(f"[{name.upper()}_LLM] Timeout | url={url} | chunk={chunk_index}")
            raise ChunkTranslationError(
                f"{name.title()} LLM request timed out. Please try again.",
                chunk_index=chunk_index
            )

        except aiohttp.ClientError as e:
            logger.error(
                f"[{name.upper()}_LLM] Request failed | url={url} | "
                f"chunk={chunk_index} | error={e}"
            )
            raise ChunkTranslationError(
                f"{name.title()} LLM service unavailable. Please try again later.",
                chunk_index=chunk_index
            )

        except ValueError as e:
            raise ChunkTranslationError(
                f"{name.title()} LLM returned invalid JSON: {e}",
                chunk_index=chunk_index
            )

    async def _call_chat_completions(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: int,
        chunk_index: int
    ) -> str:
        """
        Call an OpenAI-compatible chat completions API (OpenRouter, VLLM).

        Returns:
            First choice's text, stripped ("" when absent)
        """
        url = self._chat_completions_url()

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens
        }

        logger.debug(
            f"[{self.config.task_name.upper()}_LLM] Calling chat completions | "
            f"url={url} | model={model} | chunk={chunk_index}"
        )

        data = await self._post_json(url, payload, chunk_index)
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message")
        if not isinstance(message, dict):
            return ""
        return _text_or_empty(message.get("content"))

    async def _call_ollama(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        chunk_index: int
    ) -> str:
        """
        Call Ollama API using this instance's configured URL.

        Returns:
            Generated text, stripped ("" when absent)
        """
        url = f"{self.config.ollama_url.rstrip('/')}/api/generate"

        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens
            }
        }

        logger.debug(
            f"[{self.config.task_name.upper()}_LLM] Calling Ollama | "
            f"url={url} | model={model} | chunk={chunk_index}"
        )

        data = await self._post_json(url, payload, chunk_index)
        return _text_or_empty(data.get("response"))

    def get_backend_info(self) -> Dict[str, Any]:
        """
        Get information about this client's backend configuration.

        Returns:
            Dictionary with backend configuration details
        """
        info = self.config.to_dict()
        info["active_url"] = self.config.get_backend_url()
        return info
