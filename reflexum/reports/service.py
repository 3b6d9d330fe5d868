"""
Report orchestration - the I/O shell around the pure core.

Flow for every command:
    collect notes -> analyze -> (optional) LLM annotations -> render -> save/send

The core (analysis, rendering, scheduling) never raises; everything that
can fail lives here. LLM, delivery and storage failures are logged, turned
into a single user notice through the Notifier, and never stop a valid
report from being rendered.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo

from reflexum.analysis.aggregation import analyze
from reflexum.contracts.ports import (
    InsightMode,
    InsightProvider,
    MessageSink,
    NoteSupplier,
    Notifier,
    ReportStore,
    SettingsStore,
)
from reflexum.domain.models import Assignment, DeadlineItem, ReportAggregate, StudySession
from reflexum.domain.settings import ReflexumSettings
from reflexum.errors import DeliveryError, InsightError, NoteReadError, SettingsError
from reflexum.observability.logging import get_logger
from reflexum.observability.structured import EventType, StructuredLogger, get_structured_logger
from reflexum.observability.telemetry import counter, time_block
from reflexum.rendering.digest import render_deadline_reminder, render_digest
from reflexum.rendering.markdown import render_markdown
from reflexum.rendering.paths import (
    period_label,
    report_path,
    sanitize_basename,
    single_note_report_path,
)
from reflexum.scheduling.auto_report import ReportWindow, report_window, should_send_report
from reflexum.utils.dates import ensure_aware, local_now, local_timezone, parse_iso

logger = get_logger(__name__)

SinkFactory = Callable[[ReflexumSettings], MessageSink | None]
InsightFactory = Callable[[ReflexumSettings], InsightProvider | None]


# ============================================================================
# Results and default collaborators
# ============================================================================


@dataclass
class CollectedNotes:
    sessions: list[StudySession] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    scanned: int = 0


@dataclass
class ReportResult:
    """Outcome of a report command."""

    markdown: str
    aggregate: ReportAggregate
    path: str | None = None
    saved: bool = False
    insights: str = ""
    quiz: str = ""


class LogNotifier:
    """Notifier that writes notices to the log (the CLI's console handler shows them)."""

    def notify(self, message: str) -> None:
        logger.info("Notice: %s", message)


def telegram_sink_factory(settings: ReflexumSettings) -> MessageSink | None:
    """TelegramSink when the bot is enabled and configured, else None."""
    from reflexum.delivery.telegram import TelegramSink

    if not settings.telegram_configured:
        return None
    return TelegramSink(settings.bot_token, settings.chat_id)


def gemini_insight_factory(settings: ReflexumSettings) -> InsightProvider | None:
    from reflexum.llm.insights import GeminiInsightProvider

    if not settings.use_llm:
        return None
    return GeminiInsightProvider(model_name=settings.llm_model)


# ============================================================================
# Report service
# ============================================================================


class ReportService:
    """
    Builds, saves and sends reports.

    Settings are read from the store on every call unless the caller
    passes a loaded copy (the auto-report runner does, so the decision and
    the report see the same values).
    """

    def __init__(
        self,
        notes: NoteSupplier,
        reports: ReportStore,
        settings_store: SettingsStore,
        *,
        notifier: Notifier | None = None,
        sink_factory: SinkFactory = telegram_sink_factory,
        insight_factory: InsightFactory = gemini_insight_factory,
        tz: tzinfo | None = None,
        structured: StructuredLogger | None = None,
    ):
        self.notes = notes
        self.reports = reports
        self.settings_store = settings_store
        self.notifier = notifier or LogNotifier()
        self.sink_factory = sink_factory
        self.insight_factory = insight_factory
        self.tz = tz or local_timezone()
        self.structured = structured or get_structured_logger()

    def resolve_now(self, now: datetime | None) -> datetime:
        return ensure_aware(now, self.tz) if now else local_now(self.tz)

    def _settings(self, settings: ReflexumSettings | None) -> ReflexumSettings:
        return settings if settings is not None else self.settings_store.load()

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def _read(self, path: str) -> str | None:
        try:
            return self.notes.read_note(path)
        except NoteReadError as e:
            counter("notes.read_error")
            self.structured.log_event(EventType.NOTE_READ_ERROR, note_path=path, error=str(e))
            logger.warning("Skipping unreadable note: %s", e)
            return None

    def collect(self, window: ReportWindow, course_filter: Sequence[str] = ()) -> CollectedNotes:
        """
        Parse every note modified inside `window` into sessions and assignments.

        Unreadable notes are skipped and counted.
        """
        collected = CollectedNotes()
        with time_block("collect"):
            for info in self.notes.list_notes():
                if not window.contains_ms(info.modified_ms):
                    continue
                content = self._read(info.path)
                if content is None:
                    continue
                collected.scanned += 1

                session = self.notes.parse_to_session(info.path, content, course_filter)
                if session is not None:
                    collected.sessions.append(session)
                assignment = self.notes.parse_to_assignment(info.path, content)
                if assignment is not None:
                    collected.assignments.append(assignment)

        self.structured.log_event(
            EventType.NOTES_COLLECTED,
            scanned=collected.scanned,
            sessions=len(collected.sessions),
            assignments=len(collected.assignments),
        )
        return collected

    def collect_deadlines_soon(self, days_ahead: int, now: datetime | None = None) -> list[Assignment]:
        """
        Open assignments due within [now, now + days_ahead], across all notes.

        Assignments at 100% progress or with a missing/unparseable due date
        are left out. Naive due dates are read in the local zone.
        """
        now = self.resolve_now(now)
        limit = now + timedelta(days=days_ahead)
        soon = []
        for info in self.notes.list_notes():
            content = self._read(info.path)
            if content is None:
                continue
            assignment = self.notes.parse_to_assignment(info.path, content)
            if assignment is None or not assignment.due or assignment.progress >= 100:
                continue
            due = parse_iso(assignment.due)
            if due is None:
                continue
            if now <= ensure_aware(due, now.tzinfo) <= limit:
                soon.append(assignment)
        return soon

    # ------------------------------------------------------------------
    # LLM annotations
    # ------------------------------------------------------------------

    def _annotate(
        self,
        settings: ReflexumSettings,
        aggregate: ReportAggregate,
        sessions: Sequence[StudySession],
        mode: InsightMode,
        body: str | None = None,
        *,
        notify: bool = True,
    ) -> tuple[str, str]:
        """Insights and quiz text, or empty strings when disabled or failing."""
        if not settings.use_llm:
            return "", ""
        provider = self.insight_factory(settings)
        if provider is None:
            return "", ""

        insights = quiz = ""
        with time_block("llm"):
            try:
                insights = provider.summarize_insights(aggregate, mode, body, settings.language)
                if settings.include_quiz:
                    quiz = provider.generate_quiz(sessions, aggregate, mode, body, settings.language)
            except InsightError as e:
                counter("llm.error")
                self.structured.llm_call_error(stage=mode.value, error=str(e))
                logger.warning("LLM annotation failed: %s", e)
                if notify:
                    self.notifier.notify("LLM summarization failed (see log).")
        if insights:
            self.structured.log_event(EventType.LLM_CALL_OK, stage=mode.value, quiz=bool(quiz))
        return insights, quiz

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def _save(self, path: str, markdown: str) -> bool:
        try:
            self.reports.ensure_reports_dir()
            self.reports.save_report(path, markdown)
        except OSError as e:
            counter("reports.save_error")
            self.structured.log_event(EventType.REPORT_SAVE_ERROR, error=str(e))
            logger.error("Failed to save report %s: %s", path, e)
            self.notifier.notify(f"Error: could not save report ({e})")
            return False
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def generate_period_report(
        self,
        window: ReportWindow,
        *,
        settings: ReflexumSettings | None = None,
        now: datetime | None = None,
        unique: bool = True,
    ) -> ReportResult | None:
        """
        Build the long-form report for `window` and save it.

        Manual runs get a timestamped path. Scheduled runs pass unique=False
        and overwrite <from>_<to>.md on every retried tick.

        Returns:
            ReportResult, or None when no note was modified in the window

        Side Effects:
            - Reads notes through the supplier
            - May call the LLM
            - Writes Reflexum/Reports/<from>_<to>[__<stamp>].md
        """
        settings = self._settings(settings)
        now = self.resolve_now(now)
        collected = self.collect(window, settings.include_courses)
        if collected.scanned == 0:
            self.notifier.notify("No matching notes found for the selected period.")
            return None

        with time_block("analyze"):
            aggregate = analyze(collected.sessions, collected.assignments, now=now)
        aggregate = aggregate.with_period_label(period_label(window.start, window.end))

        insights, quiz = self._annotate(settings, aggregate, collected.sessions, InsightMode.PERIOD)

        with time_block("render"):
            markdown = render_markdown(aggregate, insights, quiz, lang=settings.language)
        self.structured.report_build_ok(
            kind="period",
            sessions=len(collected.sessions),
            assignments=len(collected.assignments),
            chars=len(markdown),
        )

        path = report_path(window.start, window.end, unique=unique, now=now)
        saved = self._save(path, markdown)
        if saved:
            self.notifier.notify(f"Reflexum: report created → {path}")
        return ReportResult(
            markdown=markdown,
            aggregate=aggregate,
            path=path,
            saved=saved,
            insights=insights,
            quiz=quiz,
        )

    def generate_note_report(
        self, note_path: str, *, now: datetime | None = None
    ) -> ReportResult | None:
        """
        Build a single-note report at Reflexum/Reports/one_<name>.md.

        The course filter does not apply: the user asked for this note.
        Returns None when the note cannot be read.
        """
        settings = self._settings(None)
        now = self.resolve_now(now)
        content = self._read(note_path)
        if content is None:
            self.notifier.notify(f"Error: cannot read {note_path}")
            return None

        session = self.notes.parse_to_session(note_path, content, [])
        assignment = self.notes.parse_to_assignment(note_path, content)
        sessions = [session] if session else []

        aggregate = analyze(sessions, [assignment] if assignment else [], now=now)
        body = session.body if session else None
        insights, quiz = self._annotate(settings, aggregate, sessions, InsightMode.SINGLE, body)

        markdown = render_markdown(
            aggregate,
            insights,
            quiz,
            single_note=True,
            deadline=assignment.due if assignment else None,
            lang=settings.language,
            note_title=assignment.title if assignment else None,
            note_path=note_path,
        )
        self.structured.report_build_ok(
            kind="single",
            sessions=len(sessions),
            assignments=1 if assignment else 0,
            chars=len(markdown),
        )

        path = single_note_report_path(note_path)
        saved = self._save(path, markdown)
        if saved:
            self.notifier.notify(f'Reflexum: report for "{sanitize_basename(note_path)}" created.')
        return ReportResult(
            markdown=markdown,
            aggregate=aggregate,
            path=path,
            saved=saved,
            insights=insights,
            quiz=quiz,
        )

    def send_digest(
        self,
        window: ReportWindow,
        *,
        settings: ReflexumSettings | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        Render the Telegram digest for `window` and send it.

        Returns:
            True only when the sink accepted the message

        Side Effects:
            - Reads notes through the supplier
            - May call the LLM
            - One message through the sink
        """
        settings = self._settings(settings)
        now = self.resolve_now(now)
        sink = self.sink_factory(settings) if settings.telegram_enabled else None
        if sink is None:
            self.notifier.notify("Telegram is not configured.")
            return False

        collected = self.collect(window, settings.include_courses)
        aggregate = analyze(collected.sessions, collected.assignments, now=now)
        label = period_label(window.start, window.end)
        aggregate = aggregate.with_period_label(label)

        # The long-form report already surfaced an LLM failure, if any
        insights, quiz = self._annotate(
            settings, aggregate, collected.sessions, InsightMode.PERIOD, notify=False
        )
        soon = self.collect_deadlines_soon(settings.due_reminder_days, now)

        with time_block("render"):
            text = render_digest(
                aggregate,
                label,
                insights=insights,
                deadlines=[DeadlineItem.from_assignment(a) for a in soon],
                lang=settings.language,
                quiz=quiz,
            )
        self.structured.log_event(EventType.DIGEST_BUILD_OK, chars=len(text), deadlines=len(soon))

        try:
            with time_block("send"):
                sink.send(text)
        except DeliveryError as e:
            counter("digest.send_error")
            self.structured.digest_send_error(error=str(e), status_code=e.status_code)
            self.notifier.notify(f"Error: {e}")
            return False

        counter("digest.sent")
        self.structured.log_event(EventType.DIGEST_SEND_OK, chars=len(text))
        self.notifier.notify("Digest sent to Telegram.")
        return True


# ============================================================================
# Timer entry points
# ============================================================================


class AutoReportRunner:
    """
    Hourly auto-report tick.

    Not safe to run as several concurrent instances: the decision and the
    persisted lastAutoReportDate are not guarded by any lock.
    """

    def __init__(self, service: ReportService, settings_store: SettingsStore):
        self.service = service
        self.settings_store = settings_store

    def tick(self, now: datetime | None = None) -> bool:
        """
        Evaluate the schedule and, when due, generate + send the report.

        Returns:
            True when a digest was sent and recorded

        Side Effects:
            - On success, persists last_auto_report_date = now
        """
        now = self.service.resolve_now(now)
        try:
            settings = self.settings_store.load()
        except SettingsError as e:
            logger.error("Auto-report skipped, settings unavailable: %s", e)
            return False

        fired = should_send_report(settings, now)
        self.service.structured.auto_report_decision(
            fired=fired,
            frequency=settings.auto_report_frequency.value,
            last_sent=settings.last_auto_report_date,
        )
        if not fired:
            return False

        window = report_window(settings.auto_report_frequency, now)
        logger.info(
            "Auto-report due (%s): %s .. %s",
            settings.auto_report_frequency.value,
            window.start.isoformat(),
            window.end.isoformat(),
        )
        self.service.generate_period_report(window, settings=settings, now=now, unique=False)
        if not self.service.send_digest(window, settings=settings, now=now):
            # Nothing recorded, so the next tick tries again
            return False

        return self._record(now)

    def _record(self, now: datetime) -> bool:
        # Re-read so edits made while the report was built are not overwritten
        try:
            latest = self.settings_store.load()
            latest.last_auto_report_date = now.isoformat()
            self.settings_store.save(latest)
        except SettingsError as e:
            logger.error("Digest sent but lastAutoReportDate not saved: %s", e)
            return False

        self.service.structured.log_event(EventType.AUTO_REPORT_RECORDED, sent_at=now.isoformat())
        return True


class DeadlineReminder:
    """Six-hourly sweep that pings the chat about deadlines coming up."""

    def __init__(self, service: ReportService, settings_store: SettingsStore):
        self.service = service
        self.settings_store = settings_store

    def check(self, days_ahead: int | None = None, now: datetime | None = None) -> bool:
        """
        Send a reminder when any open assignment is due within `days_ahead`.

        Failures are logged only; the sweep runs again a few hours later.
        """
        now = self.service.resolve_now(now)
        try:
            settings = self.settings_store.load()
        except SettingsError as e:
            logger.error("Deadline sweep skipped, settings unavailable: %s", e)
            return False

        sink = self.service.sink_factory(settings) if settings.telegram_enabled else None
        if sink is None:
            return False

        days = settings.due_reminder_days if days_ahead is None else days_ahead
        soon = self.service.collect_deadlines_soon(days, now)
        text = render_deadline_reminder(
            [DeadlineItem.from_assignment(a) for a in soon], settings.language
        )
        if not text:
            return False

        try:
            sink.send(text)
        except DeliveryError as e:
            logger.warning("Deadline reminder not delivered: %s", e)
            return False

        self.service.structured.log_event(EventType.DEADLINE_REMINDER_SENT, count=len(soon))
        return True
