"""
Capability Protocols

Everything the orchestration layer needs from the outside world. Adapters
in reflexum.storage / reflexum.delivery / reflexum.llm implement these;
tests swap in in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Protocol

from reflexum.domain.models import Assignment, NoteInfo, ReportAggregate, StudySession
from reflexum.domain.settings import Language, ReflexumSettings


class InsightMode(str, Enum):
    """Whether insights describe a period or a single note."""

    PERIOD = "period"
    SINGLE = "single"


class NoteSupplier(Protocol):
    """Source of study notes."""

    def list_notes(self) -> list[NoteInfo]:
        """All candidate notes with their modification time (epoch ms)."""
        ...

    def read_note(self, path: str) -> str:
        """Raw note content. Raises NoteReadError when it cannot be read."""
        ...

    def parse_to_session(
        self, path: str, content: str, course_filter: Sequence[str]
    ) -> StudySession | None:
        """Session record, or None when the note is not a session or is filtered out."""
        ...

    def parse_to_assignment(self, path: str, content: str) -> Assignment | None:
        ...


class SettingsStore(Protocol):
    """Whole-object settings persistence; last write wins."""

    def load(self) -> ReflexumSettings:
        ...

    def save(self, settings: ReflexumSettings) -> None:
        ...


class MessageSink(Protocol):
    """Outbound chat channel. Raises DeliveryError on failure."""

    def send(self, text: str) -> None:
        ...


class ReportStore(Protocol):
    def ensure_reports_dir(self) -> None:
        ...

    def save_report(self, path: str, content: str) -> None:
        ...

    def report_exists(self, path: str) -> bool:
        ...

    def get_report(self, path: str) -> str | None:
        ...


class InsightProvider(Protocol):
    """
    LLM annotations for a report.

    Implementations raise InsightError; callers treat failures as
    "no annotation" and keep rendering.
    """

    def summarize_insights(
        self,
        aggregate: ReportAggregate,
        mode: InsightMode,
        body: str | None,
        lang: Language,
    ) -> str:
        ...

    def generate_quiz(
        self,
        sessions: Sequence[StudySession],
        aggregate: ReportAggregate,
        mode: InsightMode,
        body: str | None,
        lang: Language,
    ) -> str:
        ...


class Notifier(Protocol):
    """User-facing notices (one per failed operation)."""

    def notify(self, message: str) -> None:
        ...
