"""
Pytest configuration for Reflexum tests

Provides in-memory fakes for every capability port plus a few fixed
instants, so no test touches the network, the LLM or the real clock.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from reflexum.domain.models import Assignment, NoteInfo, StudySession
from reflexum.domain.settings import Frequency, ReflexumSettings
from reflexum.errors import DeliveryError, InsightError, NoteReadError
from reflexum.observability import telemetry
from reflexum.storage.settings_store import InMemorySettingsStore
from reflexum.utils.dates import to_millis

# Sunday, 18 October 2026, 21:00 UTC
SUNDAY_EVENING = datetime(2026, 10, 18, 21, 0, tzinfo=UTC)


class InMemoryNoteSupplier:
    """NoteSupplier holding already-parsed records keyed by path."""

    def __init__(self):
        self._notes: dict[str, tuple[int, StudySession | None, Assignment | None]] = {}
        self.unreadable: set[str] = set()

    def add(
        self,
        path: str,
        modified: datetime,
        session: StudySession | None = None,
        assignment: Assignment | None = None,
    ) -> None:
        if session is not None:
            session = session.model_copy(update={"file": path})
        if assignment is not None:
            assignment = assignment.model_copy(update={"file": path})
        self._notes[path] = (to_millis(modified), session, assignment)

    def list_notes(self) -> list[NoteInfo]:
        return [NoteInfo(path=p, modified_ms=m) for p, (m, _, _) in self._notes.items()]

    def read_note(self, path: str) -> str:
        if path in self.unreadable or path not in self._notes:
            raise NoteReadError(f"Cannot read {path}")
        return path

    def parse_to_session(self, path, content, course_filter):
        session = self._notes[path][1]
        if session is None:
            return None
        if course_filter and session.course and session.course not in course_filter:
            return None
        return session

    def parse_to_assignment(self, path, content):
        return self._notes[path][2]


class RecordingSink:
    """MessageSink that keeps every message; optionally fails."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages: list[str] = []

    def send(self, text: str) -> None:
        if self.fail:
            raise DeliveryError("Telegram error (400): Bad Request", status_code=400)
        self.messages.append(text)


class InMemoryReportStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.reports: dict[str, str] = {}
        self.dir_ensured = False

    def ensure_reports_dir(self) -> None:
        self.dir_ensured = True

    def save_report(self, path: str, content: str) -> None:
        if self.fail:
            raise OSError("disk full")
        self.reports[path] = content

    def report_exists(self, path: str) -> bool:
        return path in self.reports

    def get_report(self, path: str) -> str | None:
        return self.reports.get(path)


class FakeInsightProvider:
    def __init__(self, insights: str = "- Focus on algebra", quiz: str = "- What is a group?", fail: bool = False):
        self.insights = insights
        self.quiz = quiz
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    def summarize_insights(self, aggregate, mode, body, lang) -> str:
        self.calls.append(("insights", mode.value))
        if self.fail:
            raise InsightError("quota exceeded")
        return self.insights

    def generate_quiz(self, sessions, aggregate, mode, body, lang) -> str:
        self.calls.append(("quiz", mode.value))
        return self.quiz


class RecordingNotifier:
    def __init__(self):
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture(autouse=True)
def reset_telemetry():
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def now():
    """Fixed 'now' for deterministic tests (a Sunday evening)."""
    return SUNDAY_EVENING


@pytest.fixture
def armed_settings():
    """Settings with auto-reports and Telegram switched on."""
    return ReflexumSettings(
        auto_report_enabled=True,
        telegram_enabled=True,
        bot_token="123:secret",
        chat_id="42",
        auto_report_frequency=Frequency.DAILY,
        auto_report_time="20:00",
        language="en",
    )


@pytest.fixture
def settings_store(armed_settings):
    return InMemorySettingsStore(armed_settings)


@pytest.fixture
def notes():
    return InMemoryNoteSupplier()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def report_store():
    return InMemoryReportStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def insight_provider():
    return FakeInsightProvider()
