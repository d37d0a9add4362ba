"""
Rate Limit Configuration

Module-specific settings for the per-caller request limiter.
"""
import os

# =========================
# Backend Selection
# =========================

# memory: single-process map (single-instance deployments only)
# redis:  shared store, approximate under concurrent bursts
RATE_LIMIT_BACKEND = os.getenv("RATE_LIMIT_BACKEND", "memory")

# =========================
# Window Settings
# =========================

RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10"))
RATE_LIMIT_WINDOW_MS = int(os.getenv("RATE_LIMIT_WINDOW_MS", str(60 * 60 * 1000)))  # 1 hour

# Remaining count reported when running in development mode
RATE_LIMIT_DEV_REMAINING = 999

# =========================
# Redis Key Settings
# =========================

RATE_LIMIT_KEY_PREFIX = os.getenv("RATE_LIMIT_KEY_PREFIX", "rate_limit:")

# Extra seconds added to the key TTL so records outlive their window
RATE_LIMIT_TTL_BUFFER_SECONDS = int(os.getenv("RATE_LIMIT_TTL_BUFFER_SECONDS", "60"))

# Upper bound on keys scanned by get_stats()/cleanup()
RATE_LIMIT_SCAN_LIMIT = int(os.getenv("RATE_LIMIT_SCAN_LIMIT", "1000"))

# =========================
# Identity Settings
# =========================

# Length of the hashed key used for storage
IDENTITY_KEY_LENGTH = 16

# Maximum length of the user-agent/accept-language fallback identifier
IDENTITY_FALLBACK_MAX_LENGTH = 100
