"""Lenient ISO date helpers shared by aggregation, rendering and scheduling."""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from reflexum.infrastructure.settings import TIMEZONE
from reflexum.observability.logging import get_logger

logger = get_logger(__name__)


def parse_iso(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 date or datetime, returning None when it does not parse.

    Side Effects: None (pure function)
    """
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def ensure_aware(dt: datetime, tz: tzinfo | None = None) -> datetime:
    """Attach `tz` (default UTC) to naive datetimes; aware ones are returned as-is."""
    if dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=tz or UTC)


def to_millis(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def from_millis(ms: int, tz: tzinfo | None = None) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=tz or UTC)


def date_only(value: str | None) -> str | None:
    """
    Normalize a session date to YYYY-MM-DD.

    Parseable values are re-formatted, unparseable ones pass through unchanged,
    missing ones give None.
    """
    if value is None or not str(value).strip():
        return None
    parsed = parse_iso(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%Y-%m-%d")


def local_timezone(name: str | None = None) -> tzinfo:
    """
    Zone used for scheduling and report windows.

    Defaults to REFLEXUM_TIMEZONE; unknown zone names fall back to UTC.
    """
    key = name or TIMEZONE
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, using UTC", key)
        return UTC


def local_now(tz: tzinfo | None = None) -> datetime:
    return datetime.now(tz or local_timezone())
