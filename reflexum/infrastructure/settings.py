"""Application-wide settings and environment configuration"""

from __future__ import annotations

import os
from pathlib import Path

# Calendar arithmetic for the scheduler runs in this zone
TIMEZONE = os.getenv("REFLEXUM_TIMEZONE", "UTC")

# Vault layout
VAULT_DIR = Path(os.getenv("REFLEXUM_VAULT_DIR", "."))
NOTES_DIR = Path(os.getenv("REFLEXUM_NOTES_DIR", str(VAULT_DIR / "records")))
SETTINGS_FILE = Path(os.getenv("REFLEXUM_SETTINGS_FILE", str(VAULT_DIR / "reflexum.json")))

# Google Cloud / Gemini
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "1024"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.7"))

# Telegram Bot API
TELEGRAM_API_BASE = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org")
TELEGRAM_TIMEOUT_SECONDS = float(os.getenv("TELEGRAM_TIMEOUT_SECONDS", "15"))
