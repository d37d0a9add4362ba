"""
Translation Service Module

Translates structured configuration files (YAML, JSON, .properties, .lang)
with an LLM, splitting large files into ordered chunks.
"""

from .service import router, register_exception_handlers
from .orchestrator import TranslationOrchestrator
from .translator import ConfigTranslator, strip_code_fences
from .llm_client import create_translation_llm_client, create_translation_llm_config
from .splitter import Chunk, split_into_chunks, needs_chunking
from .languages import SUPPORTED_LANGUAGES, get_language_by_code

__all__ = [
    "router",
    "register_exception_handlers",
    "TranslationOrchestrator",
    "ConfigTranslator",
    "strip_code_fences",
    "create_translation_llm_client",
    "create_translation_llm_config",
    "Chunk",
    "split_into_chunks",
    "needs_chunking",
    "SUPPORTED_LANGUAGES",
    "get_language_by_code",
]
