"""Centralized configuration for Reflexum.

Re-exports everything from reflexum.infrastructure.settings so callers have a
single import point, then adds typed constants for aggregation, rendering,
scheduling and LLM settings.  Environment variable overrides use safe
defaults so the tool starts without extra env configuration.
"""

from __future__ import annotations

import os

from reflexum.infrastructure.settings import *  # noqa: F401, F403

# --- Vault ---
REPORTS_DIR: str = "Reflexum/Reports"

# --- Aggregation ---
WORDS_PER_MINUTE: int = 180
TOP_TOPICS_LIMIT: int = 10
TOP_KEYWORDS_LIMIT: int = 15
NO_VALUE: str = "—"
KEYWORD_STRIP_CHARS: str = "#-*_[]()"
STOP_WORDS: frozenset[str] = frozenset(
    {"the", "and", "for", "that", "this", "with", "как", "для", "что", "это", "так"}
)

# --- Long-form report ---
PIE_TOP_ENTRIES: int = 8
PIE_TOP_TOPICS: int = 10
PIE_TOP_KEYWORDS: int = 12
BAR_MAX_DAYS: int = 14
CHART_LABEL_MAX_LEN: int = 60
KEYWORD_LIST_LIMIT: int = 20

# --- Telegram digest ---
DIGEST_MAX_CHARS: int = 3900
DIGEST_COURSE_BAR_WIDTH: int = 16
DIGEST_COURSE_LIMIT: int = 6
DIGEST_DAY_BAR_WIDTH: int = 12
DIGEST_DAY_LIMIT: int = 7
DIGEST_TOPIC_LIMIT: int = 5
DIGEST_KEYWORD_LIMIT: int = 8
DIGEST_DEADLINE_LIMIT: int = 6
DIGEST_INSIGHTS_MAX_CHARS: int = 800
DIGEST_QUIZ_MAX_CHARS: int = 600

# --- LLM ---
LLM_MAX_RETRIES: int = int(os.getenv("REFLEXUM_LLM_MAX_RETRIES", "3"))
