"""
Core translation logic using LLM.
"""
import re
import logging
from typing import Optional

from core import BaseLLMClient, ChunkTranslationError
from .prompts import (
    TRANSLATION_SYSTEM_PROMPT,
    GENERIC_FILE_KIND,
    get_translation_prompt,
)
from .schemas import TargetLanguage

logger = logging.getLogger(__name__)

LEADING_FENCE = re.compile(r'^\s*```[\w.+-]*[ \t]*\n?')
TRAILING_FENCE = re.compile(r'\n?```\s*$')


def strip_code_fences(text: str) -> str:
    """Remove an enclosing ```lang ... ``` block the model may have added."""
    cleaned = LEADING_FENCE.sub("", text, count=1)
    cleaned = TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


class ConfigTranslator:
    """Translates one chunk (or a whole small document) per call."""

    def __init__(self, client: BaseLLMClient, model: Optional[str] = None):
        """
        Initialize the translator.

        Args:
            client: LLM client owned by the application
            model: Model override (uses the client's configured model if None)
        """
        self.client = client
        self.model = model or client.config.model

    async def translate_chunk(
        self,
        text: str,
        target_language: TargetLanguage,
        index: int = 0,
        total: int = 1,
        file_kind: str = GENERIC_FILE_KIND,
        attempt: Optional[int] = None
    ) -> str:
        """
        Translate one chunk.

        Args:
            text: Chunk text
            target_language: Target language (code + display name)
            index: Chunk position (0-based)
            total: Total chunks in the document
            file_kind: Syntax name (YAML, JSON, ...)
            attempt: Attempt number (logging only)

        Returns:
            Translated text with code fences removed

        Raises:
            ChunkTranslationError: Retryable failure (carries the chunk index)
            UpstreamAuthError / UpstreamQuotaError / ProviderNotConfiguredError: Not retryable
        """
        prompt = get_translation_prompt(
            text=text,
            target_language=target_language.name,
            target_code=target_language.code,
            file_kind=file_kind,
            chunk_index=index,
            total_chunks=total
        )

        logger.info(
            f"[TRANSLATOR] Translating chunk {index + 1}/{total} | chars={len(text)} | "
            f"target={target_language.code} | kind={file_kind}"
        )

        response = await self.client.generate_text_with_logging(
            prompt=prompt,
            system_prompt=TRANSLATION_SYSTEM_PROMPT,
            model=self.model,
            task="translation",
            chunk_index=index,
            attempt=attempt
        )

        translated = strip_code_fences(response)
        if not translated:
            raise ChunkTranslationError(
                f"No translation received for chunk {index + 1}/{total}",
                chunk_index=index
            )

        logger.info(f"[TRANSLATOR] Chunk {index + 1}/{total} complete | output_chars={len(translated)}")
        return translated
