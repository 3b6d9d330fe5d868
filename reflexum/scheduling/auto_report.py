"""
Auto-report scheduling state machine.

The state lives entirely in ReflexumSettings:
- disabled:            auto_report_enabled or telegram_enabled is off
- armed, never sent:   last_auto_report_date is empty
- armed, sent before:  fires once per period boundary

`should_send_report` decides, `report_window` computes what to report on.
Both are pure; persisting `last_auto_report_date` after a successful send
is the caller's job (see reflexum.reports.service.AutoReportRunner).

All calendar math happens in the time zone carried by `now`.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from reflexum.domain.settings import DatePreset, Frequency, ReflexumSettings
from reflexum.observability.logging import get_logger
from reflexum.utils.dates import ensure_aware, parse_iso, to_millis

logger = get_logger(__name__)

SUNDAY = 6  # datetime.weekday()
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive [start, end] range a report covers."""

    start: datetime
    end: datetime

    @property
    def from_ms(self) -> int:
        return to_millis(self.start)

    @property
    def to_ms(self) -> int:
        return to_millis(self.end)

    def contains_ms(self, ms: int) -> bool:
        return self.from_ms <= ms <= self.to_ms


# ============================================================================
# Calendar helpers
# ============================================================================


def _midnight(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(dt: datetime) -> datetime:
    return dt.replace(
        hour=END_OF_DAY.hour,
        minute=END_OF_DAY.minute,
        second=END_OF_DAY.second,
        microsecond=END_OF_DAY.microsecond,
    )


def last_sunday(now: datetime) -> datetime:
    """Most recent Sunday at midnight (today if today is Sunday)."""
    days_back = (now.weekday() + 1) % 7
    return _midnight(now - timedelta(days=days_back))


def is_last_day_of_month(now: datetime) -> bool:
    return now.day == calendar.monthrange(now.year, now.month)[1]


def _last_day_of_previous_month(now: datetime) -> datetime:
    first_of_month = _midnight(now.replace(day=1))
    return _end_of_day(first_of_month - timedelta(days=1))


def parse_report_time(value: str) -> tuple[int, int]:
    """
    Split "HH:mm" into (hour, minute).

    Settings validation already rejects malformed values, so this only has
    to handle the well-formed case.
    """
    hour, minute = value.strip().split(":", 1)
    return int(hour), int(minute)


def _hour_gate(now: datetime, settings: ReflexumSettings) -> bool:
    # Only the hour is compared; minutes are parsed but not used
    target_hour, _ = parse_report_time(settings.auto_report_time)
    return now.hour >= target_hour


def _last_sent(settings: ReflexumSettings, now: datetime) -> datetime | None:
    raw = settings.last_auto_report_date
    if not raw:
        return None
    parsed = parse_iso(raw)
    if parsed is None:
        logger.warning("Unparseable lastAutoReportDate %r, treating as never sent", raw)
        return None
    return ensure_aware(parsed, now.tzinfo)


# ============================================================================
# Decision
# ============================================================================


def should_send_report(settings: ReflexumSettings, now: datetime) -> bool:
    """
    Decide whether the hourly tick should fire an auto-report.

    Args:
        settings: Freshly loaded user settings
        now: Current time in the user's zone

    Returns:
        True when a report is due

    Side Effects: None (pure function, apart from a warning log on bad dates)
    """
    if not settings.auto_report_enabled or not settings.telegram_enabled:
        return False

    now = ensure_aware(now)
    last_sent = _last_sent(settings, now)
    if last_sent is None:
        return _hour_gate(now, settings)

    frequency = settings.auto_report_frequency
    if frequency == Frequency.DAILY:
        reference = _midnight(now - timedelta(days=1))
        return last_sent < reference and _hour_gate(now, settings)

    if frequency == Frequency.WEEKLY:
        if now.weekday() != SUNDAY:
            return False
        return last_sent < last_sunday(now) and _hour_gate(now, settings)

    if frequency == Frequency.MONTHLY:
        if not is_last_day_of_month(now):
            return False
        return last_sent < _last_day_of_previous_month(now) and _hour_gate(now, settings)

    return False


# ============================================================================
# Windows
# ============================================================================


def report_window(frequency: Frequency | str, now: datetime) -> ReportWindow:
    """
    Window the auto-report covers for a frequency.

    daily:   yesterday 00:00:00 .. yesterday 23:59:59
    weekly:  Monday 00:00 .. most recent Sunday 23:59:59.999
    monthly: previous calendar month, first to last instant
    """
    now = ensure_aware(now)
    frequency = Frequency(frequency)

    if frequency == Frequency.DAILY:
        yesterday = _midnight(now - timedelta(days=1))
        return ReportWindow(yesterday, yesterday.replace(hour=23, minute=59, second=59))

    if frequency == Frequency.WEEKLY:
        sunday = last_sunday(now)
        monday = sunday - timedelta(days=6)
        return ReportWindow(monday, _end_of_day(sunday))

    last_day = _last_day_of_previous_month(now)
    return ReportWindow(_midnight(last_day.replace(day=1)), last_day)


def preset_window(settings: ReflexumSettings, now: datetime) -> ReportWindow:
    """
    Window for manual report commands, from the `date_preset` setting.

    last7:     seven days back from the end of today
    thisWeek:  Monday 00:00 .. end of today
    thisMonth: 1st 00:00 .. end of today
    custom:    date_from .. date_to (end of day); falls back to last7
               when either bound is missing or unparseable
    """
    now = ensure_aware(now)
    end = _end_of_day(now)
    preset = settings.date_preset

    if preset == DatePreset.THIS_WEEK:
        return ReportWindow(_midnight(now - timedelta(days=now.weekday())), end)

    if preset == DatePreset.THIS_MONTH:
        return ReportWindow(_midnight(now.replace(day=1)), end)

    if preset == DatePreset.CUSTOM:
        start = parse_iso(settings.date_from)
        stop = parse_iso(settings.date_to)
        if start is not None and stop is not None:
            return ReportWindow(
                _midnight(ensure_aware(start, now.tzinfo)),
                _end_of_day(ensure_aware(stop, now.tzinfo)),
            )
        logger.warning(
            "Custom date range incomplete (%r..%r), using last 7 days",
            settings.date_from,
            settings.date_to,
        )

    return ReportWindow(end - timedelta(days=7), end)
