"""
User settings persisted by the settings store.

Keys are stored camelCase (`autoReportEnabled`, `lastAutoReportDate`, ...) so
a settings blob written by the desktop plugin loads unchanged; Python code
uses the snake_case attribute names.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DatePreset(str, Enum):
    LAST7 = "last7"
    THIS_WEEK = "thisWeek"
    THIS_MONTH = "thisMonth"
    CUSTOM = "custom"


class Language(str, Enum):
    RU = "ru"
    EN = "en"


class ReflexumSettings(BaseModel):
    """Whole-object settings; the store loads and saves it as one unit."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )

    # Report window for manual commands
    date_preset: DatePreset = DatePreset.LAST7
    date_from: str | None = None
    date_to: str | None = None
    include_courses: list[str] = Field(default_factory=list)

    # LLM annotations
    use_llm: bool = Field(default=False, alias="useLLM")
    llm_model: str | None = None
    include_quiz: bool = False

    # Telegram
    telegram_enabled: bool = False
    bot_token: str | None = Field(default=None, repr=False)
    chat_id: str | None = None

    language: Language = Language.RU
    due_reminder_days: int = 2

    # Auto-report scheduling
    auto_report_enabled: bool = False
    auto_report_frequency: Frequency = Frequency.WEEKLY
    auto_report_time: str = "20:00"
    last_auto_report_date: str | None = None

    @field_validator("auto_report_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        match = _TIME_RE.match(v.strip())
        if not match:
            raise ValueError(f"autoReportTime must be HH:mm, got {v!r}")
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            raise ValueError(f"autoReportTime out of range: {v!r}")
        return f"{hour:02d}:{minute:02d}"

    @field_validator("language", mode="before")
    @classmethod
    def _normalize_language(cls, v: object) -> object:
        # Anything that is not English falls back to Russian, the original default
        return "en" if str(getattr(v, "value", v)).lower() == "en" else "ru"

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_enabled and self.bot_token and self.chat_id)

    def to_store(self) -> dict:
        """Serialize with camelCase keys for the JSON store."""
        return self.model_dump(mode="json", by_alias=True)
