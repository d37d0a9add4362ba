"""
Global Configuration

Shared settings used across all modules.
Module-specific settings are in each module's config.py file.

All settings can be overridden via environment variables or a .env file.
See .env.example for a complete list of configurable variables.
"""
import os
import math
from dotenv import load_dotenv

# Load .env file before any os.getenv() calls
load_dotenv()

# =========================
# Environment
# =========================

APP_ENV = os.getenv("APP_ENV", "production")  # production | development

# =========================
# LLM Backend Configuration
# =========================

LLM_BACKEND = os.getenv("LLM_BACKEND", "openai")  # openai | vllm | ollama
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://openrouter.ai/api/v1")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", os.getenv("OPENROUTER_API_KEY", ""))
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")
VLLM_URL = os.getenv("VLLM_URL", "http://localhost:8000")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "openai/gpt-4o-mini")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))

# Sent as HTTP-Referer / X-Title to OpenRouter-style providers
SITE_URL = os.getenv("SITE_URL", "http://localhost:8000")
SITE_NAME = os.getenv("SITE_NAME", "ConfigTranslator")

# =========================
# Redis Configuration
# =========================

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))

# =========================
# Privacy
# =========================

# Salt for client address hashing. Rotating it starts a new identity epoch.
IP_HASH_SALT = os.getenv("IP_HASH_SALT", "configtranslator-default-salt-2024")

# =========================
# Token Estimation
# =========================

CHARS_PER_TOKEN = 4


# =========================
# Utility Functions
# =========================

def is_development() -> bool:
    """True when running in local development mode."""
    return APP_ENV.lower() == "development"


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 chars per token)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)
