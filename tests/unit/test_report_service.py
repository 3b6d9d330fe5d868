"""
Tests for the report service and the timer entry points.

Every collaborator is an in-memory fake; the clock is fixed
to Sunday 18 October 2026, 21:00 UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from reflexum.domain.models import Assignment, StudySession
from reflexum.domain.settings import Frequency
from reflexum.observability.telemetry import get_counter
from reflexum.reports.service import AutoReportRunner, DeadlineReminder, ReportService
from reflexum.scheduling.auto_report import report_window

MID_WEEK = datetime(2026, 10, 15, 10, 0, tzinfo=UTC)
SATURDAY = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


@pytest.fixture
def service(notes, report_store, settings_store, notifier, sink, insight_provider):
    return ReportService(
        notes,
        report_store,
        settings_store,
        notifier=notifier,
        sink_factory=lambda settings: sink,
        insight_factory=lambda settings: insight_provider,
        tz=UTC,
    )


@pytest.fixture
def week(now):
    return report_window(Frequency.WEEKLY, now)


@pytest.fixture
def populated(notes):
    notes.add(
        "math/week1.json",
        MID_WEEK,
        session=StudySession(course="Math", date="2026-10-15", topics=["algebra"], duration_min=45, body="matrix"),
    )
    notes.add("math/hw.json", MID_WEEK, assignment=Assignment(course="Math", title="HW 3", due="2026-10-20", progress=30))
    notes.add("art/old.json", datetime(2026, 9, 1, tzinfo=UTC), session=StudySession(course="Art", duration_min=99))
    return notes


def _enable_llm(settings_store, **changes):
    settings = settings_store.load().model_copy(update={"use_llm": True, **changes})
    settings_store.save(settings)


class TestPeriodReport:
    def test_report_saved_with_unique_path(self, service, populated, report_store, notifier, week, now):
        result = service.generate_period_report(week, now=now)

        assert result.saved
        assert result.path == "Reflexum/Reports/2026-10-12_2026-10-18__20261018_210000.md"
        assert report_store.reports[result.path] == result.markdown
        assert report_store.dir_ensured
        assert notifier.messages == [f"Reflexum: report created → {result.path}"]

    def test_only_notes_in_window_are_counted(self, service, populated, week, now):
        result = service.generate_period_report(week, now=now)

        assert result.aggregate.per_course == {"Math": 45}
        assert result.aggregate.period_label == "12.10–18.10.2026"
        assert "Art" not in result.markdown

    def test_no_notes_in_window(self, service, notes, report_store, notifier, week, now):
        notes.add("old.json", datetime(2026, 1, 1, tzinfo=UTC), session=StudySession(duration_min=5))

        assert service.generate_period_report(week, now=now) is None
        assert report_store.reports == {}
        assert notifier.messages == ["No matching notes found for the selected period."]

    def test_course_filter(self, service, notes, settings_store, week, now):
        settings_store.save(settings_store.load().model_copy(update={"include_courses": ["Physics"]}))
        notes.add("m.json", MID_WEEK, session=StudySession(course="Math", duration_min=10))
        notes.add("p.json", MID_WEEK, session=StudySession(course="Physics", duration_min=20))
        notes.add("n.json", MID_WEEK, session=StudySession(duration_min=1))

        result = service.generate_period_report(week, now=now)

        assert result.aggregate.per_course == {"Physics": 20, "—": 1}

    def test_unreadable_note_is_skipped(self, service, populated, week, now):
        populated.unreadable.add("math/hw.json")

        result = service.generate_period_report(week, now=now)

        assert result.aggregate.assignments.total == 0
        assert get_counter("notes.read_error") == 1

    def test_llm_off_by_default(self, service, populated, insight_provider, week, now):
        result = service.generate_period_report(week, now=now)

        assert insight_provider.calls == []
        assert result.insights == ""

    def test_llm_insights_and_quiz(self, service, populated, settings_store, insight_provider, week, now):
        _enable_llm(settings_store, include_quiz=True)

        result = service.generate_period_report(week, now=now)

        assert insight_provider.calls == [("insights", "period"), ("quiz", "period")]
        assert "- Focus on algebra" in result.markdown
        assert "- What is a group?" in result.markdown

    def test_llm_failure_still_saves_report(
        self, service, populated, settings_store, insight_provider, notifier, week, now
    ):
        _enable_llm(settings_store)
        insight_provider.fail = True

        result = service.generate_period_report(week, now=now)

        assert result.saved
        assert result.insights == ""
        assert "LLM summarization failed (see log)." in notifier.messages
        assert get_counter("llm.error") == 1

    def test_save_failure_is_reported(self, service, populated, report_store, notifier, week, now):
        report_store.fail = True

        result = service.generate_period_report(week, now=now)

        assert result.saved is False
        assert notifier.messages == ["Error: could not save report (disk full)"]


class TestNoteReport:
    def test_single_note_report(self, service, populated, report_store, notifier, now):
        result = service.generate_note_report("math/hw.json", now=now)

        assert result.path == "Reflexum/Reports/one_hw.md"
        assert "HW 3" in report_store.reports[result.path]
        assert notifier.messages == ['Reflexum: report for "hw" created.']

    def test_ignores_course_filter(self, service, populated, settings_store, now):
        settings_store.save(settings_store.load().model_copy(update={"include_courses": ["Art"]}))

        result = service.generate_note_report("math/week1.json", now=now)

        assert result.aggregate.per_course == {"Math": 45}

    def test_single_mode_llm_gets_body(self, service, populated, settings_store, insight_provider, now):
        _enable_llm(settings_store)

        service.generate_note_report("math/week1.json", now=now)

        assert insight_provider.calls == [("insights", "single")]

    def test_unreadable_note(self, service, notifier, now):
        assert service.generate_note_report("missing.json", now=now) is None
        assert notifier.messages == ["Error: cannot read missing.json"]


class TestDigest:
    def test_digest_sent(self, service, populated, sink, notifier, week, now):
        assert service.send_digest(week, now=now) is True

        assert len(sink.messages) == 1
        text = sink.messages[0]
        assert text.startswith("*🧠 Reflexum — 12\\.10–18\\.10\\.2026*")
        assert "HW 3 — 2026\\-10\\-20" in text
        assert notifier.messages == ["Digest sent to Telegram."]
        assert get_counter("digest.sent") == 1

    def test_not_configured(self, notes, report_store, settings_store, notifier, week, now):
        service = ReportService(
            notes, report_store, settings_store, notifier=notifier, sink_factory=lambda s: None, tz=UTC
        )

        assert service.send_digest(week, now=now) is False
        assert notifier.messages == ["Telegram is not configured."]

    def test_telegram_disabled(self, service, settings_store, sink, notifier, week, now):
        settings_store.save(settings_store.load().model_copy(update={"telegram_enabled": False}))

        assert service.send_digest(week, now=now) is False
        assert sink.messages == []

    def test_delivery_failure(self, service, populated, sink, notifier, week, now):
        sink.fail = True

        assert service.send_digest(week, now=now) is False
        assert notifier.messages == ["Error: Telegram error (400): Bad Request"]
        assert get_counter("digest.send_error") == 1

    def test_llm_failure_not_notified_again(
        self, service, populated, settings_store, insight_provider, notifier, week, now
    ):
        _enable_llm(settings_store)
        insight_provider.fail = True

        assert service.send_digest(week, now=now) is True
        assert notifier.messages == ["Digest sent to Telegram."]


class TestDeadlinesSoon:
    def test_window_and_progress(self, service, notes, now):
        notes.add("a.json", MID_WEEK, assignment=Assignment(title="soon", due="2026-10-20", progress=10))
        notes.add("b.json", MID_WEEK, assignment=Assignment(title="later", due="2026-10-25", progress=10))
        notes.add("c.json", MID_WEEK, assignment=Assignment(title="done", due="2026-10-19", progress=100))
        notes.add("d.json", MID_WEEK, assignment=Assignment(title="past", due="2026-10-17", progress=10))
        notes.add("e.json", MID_WEEK, assignment=Assignment(title="vague", due="soon", progress=10))

        soon = service.collect_deadlines_soon(2, now)

        assert [a.title for a in soon] == ["soon"]

    def test_old_notes_are_included(self, service, notes, now):
        notes.add("a.json", datetime(2025, 1, 1, tzinfo=UTC), assignment=Assignment(title="x", due="2026-10-19"))

        assert len(service.collect_deadlines_soon(2, now)) == 1


class TestAutoReportRunner:
    @pytest.fixture
    def runner(self, service, settings_store):
        return AutoReportRunner(service, settings_store)

    @pytest.fixture
    def yesterday_note(self, notes):
        notes.add("y.json", SATURDAY, session=StudySession(course="Math", duration_min=30))
        return notes

    def test_due_tick_reports_sends_and_records(
        self, runner, yesterday_note, settings_store, sink, report_store, now
    ):
        assert runner.tick(now) is True

        assert len(sink.messages) == 1
        assert "17\\.10–17\\.10\\.2026" in sink.messages[0]
        assert list(report_store.reports) == ["Reflexum/Reports/2026-10-17_2026-10-17.md"]
        assert settings_store.load().last_auto_report_date == "2026-10-18T21:00:00+00:00"

    def test_second_tick_same_evening_does_nothing(self, runner, yesterday_note, sink, now):
        runner.tick(now)
        assert runner.tick(now.replace(hour=22)) is False

        assert len(sink.messages) == 1

    def test_failed_send_is_not_recorded(self, runner, yesterday_note, settings_store, sink, now):
        sink.fail = True

        assert runner.tick(now) is False
        assert settings_store.load().last_auto_report_date is None

    def test_retried_ticks_overwrite_one_report(self, runner, yesterday_note, report_store, sink, now):
        sink.fail = True

        runner.tick(now)
        runner.tick(now.replace(hour=22))

        assert list(report_store.reports) == ["Reflexum/Reports/2026-10-17_2026-10-17.md"]

    def test_not_due_before_hour(self, runner, yesterday_note, sink, report_store, now):
        assert runner.tick(now.replace(hour=9)) is False

        assert sink.messages == []
        assert report_store.reports == {}

    def test_record_keeps_concurrent_edits(self, runner, yesterday_note, settings_store, sink, now):
        original_send = sink.send

        def send_and_edit(text):
            settings_store.save(settings_store.load().model_copy(update={"chat_id": "99"}))
            original_send(text)

        sink.send = send_and_edit
        runner.tick(now)

        settings = settings_store.load()
        assert settings.chat_id == "99"
        assert settings.last_auto_report_date is not None


class TestDeadlineReminder:
    def test_sends_when_deadline_close(self, service, settings_store, notes, sink, now):
        notes.add("a.json", MID_WEEK, assignment=Assignment(course="Math", title="HW", due="2026-10-19", progress=0))

        assert DeadlineReminder(service, settings_store).check(now=now) is True
        assert sink.messages == ["*⏳ Upcoming deadlines:*\n• Math — HW — 2026\\-10\\-19 \\(progress: 0%\\)"]

    def test_nothing_due(self, service, settings_store, sink, now):
        assert DeadlineReminder(service, settings_store).check(now=now) is False
        assert sink.messages == []

    def test_days_override(self, service, settings_store, notes, sink, now):
        notes.add("a.json", MID_WEEK, assignment=Assignment(title="HW", due="2026-10-25"))

        assert DeadlineReminder(service, settings_store).check(days_ahead=10, now=now) is True

    def test_delivery_failure_is_swallowed(self, service, settings_store, notes, sink, now):
        notes.add("a.json", MID_WEEK, assignment=Assignment(title="HW", due="2026-10-19"))
        sink.fail = True

        assert DeadlineReminder(service, settings_store).check(now=now) is False
