"""
Usage Configuration

Module-specific settings for the translation counter and history log.
"""
import os

# memory | redis
USAGE_BACKEND = os.getenv("USAGE_BACKEND", "memory")

# =========================
# Redis Key Settings
# =========================

USAGE_KEY_PREFIX = os.getenv("USAGE_KEY_PREFIX", "usage")

# =========================
# History Settings
# =========================

# Maximum history entries kept (oldest dropped first)
USAGE_HISTORY_LIMIT = int(os.getenv("USAGE_HISTORY_LIMIT", "10000"))

# Analytics look-back window
USAGE_ANALYTICS_DAYS = int(os.getenv("USAGE_ANALYTICS_DAYS", "7"))
USAGE_TOP_LANGUAGES = int(os.getenv("USAGE_TOP_LANGUAGES", "5"))
