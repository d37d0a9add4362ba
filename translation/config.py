"""
Translation Configuration

Module-specific settings for config-file translation.
"""
import os

# =========================
# LLM Backend Configuration
# =========================

# Backend type: openai | vllm | ollama (falls back to global config)
TRANSLATION_LLM_BACKEND = os.getenv("TRANSLATION_LLM_BACKEND", os.getenv("LLM_BACKEND", "openai"))

# OpenAI-compatible endpoint (OpenRouter by default)
TRANSLATION_OPENAI_URL = os.getenv("TRANSLATION_OPENAI_URL", os.getenv("OPENAI_BASE_URL", "https://openrouter.ai/api/v1"))
TRANSLATION_API_KEY = os.getenv("TRANSLATION_API_KEY", os.getenv("OPENAI_API_KEY", os.getenv("OPENROUTER_API_KEY", "")))

# Ollama URL for translation service
TRANSLATION_OLLAMA_URL = os.getenv("TRANSLATION_OLLAMA_URL", os.getenv("OLLAMA_URL", "http://localhost:11434"))

# VLLM URL for translation service
TRANSLATION_VLLM_URL = os.getenv("TRANSLATION_VLLM_URL", os.getenv("VLLM_URL", "http://localhost:8000"))

# =========================
# Model Settings
# =========================

TRANSLATION_DEFAULT_MODEL = os.getenv("TRANSLATION_DEFAULT_MODEL", os.getenv("DEFAULT_MODEL", "openai/gpt-4o-mini"))

# =========================
# LLM Settings for Translation
# =========================

TRANSLATION_TEMPERATURE = float(os.getenv("TRANSLATION_TEMPERATURE", "0.3"))
TRANSLATION_MAX_TOKENS = int(os.getenv("TRANSLATION_MAX_TOKENS", "4000"))

# =========================
# Connection Settings
# =========================

TRANSLATION_CONNECTION_TIMEOUT = int(os.getenv("TRANSLATION_CONNECTION_TIMEOUT", "120"))
TRANSLATION_CONNECTION_POOL_LIMIT = int(os.getenv("TRANSLATION_CONNECTION_POOL_LIMIT", "50"))

# =========================
# Input Limits
# =========================

# 100KB limit for free tier
TRANSLATION_MAX_FILE_SIZE = int(os.getenv("TRANSLATION_MAX_FILE_SIZE", str(100 * 1024)))

TRANSLATION_ALLOWED_EXTENSIONS = [".yml", ".yaml", ".json", ".properties", ".conf", ".config", ".lang"]

# =========================
# Chunking Settings
# =========================

# Documents with more lines than this are split
TRANSLATION_CHUNK_THRESHOLD_LINES = int(os.getenv("TRANSLATION_CHUNK_THRESHOLD_LINES", "200"))

# Lines per chunk (kept well under the provider's token ceiling for quality)
TRANSLATION_CHUNK_MAX_LINES = int(os.getenv("TRANSLATION_CHUNK_MAX_LINES", "150"))

# How far back to look for a safe boundary when a chunk is full
TRANSLATION_CHUNK_BOUNDARY_LOOKBACK = int(os.getenv("TRANSLATION_CHUNK_BOUNDARY_LOOKBACK", "20"))

# =========================
# Retry Settings
# =========================

TRANSLATION_MAX_RETRIES = int(os.getenv("TRANSLATION_MAX_RETRIES", "2"))

# Linear backoff: attempt k waits k * base seconds
TRANSLATION_RETRY_BASE_DELAY = float(os.getenv("TRANSLATION_RETRY_BASE_DELAY", "1.0"))
TRANSLATION_RETRY_MAX_DELAY = float(os.getenv("TRANSLATION_RETRY_MAX_DELAY", "30.0"))

# Overall per-request deadline (seconds)
TRANSLATION_REQUEST_TIMEOUT = float(os.getenv("TRANSLATION_REQUEST_TIMEOUT", "300"))
