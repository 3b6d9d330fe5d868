"""Report file naming and period labels.

Other tooling relies on these paths, so the format is a stable contract:
    Reflexum/Reports/<from:YYYY-MM-DD>_<to:YYYY-MM-DD>.md
    Reflexum/Reports/<from>_<to>__<YYYYMMDD_HHmmss>.md   (unique=True)
    Reflexum/Reports/one_<sanitized-basename>.md          (single note)
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, tzinfo
from pathlib import PurePosixPath

from reflexum.config import REPORTS_DIR
from reflexum.utils.dates import from_millis

_UNSAFE_RE = re.compile(r"[^\w-]+")
NOTE_SUFFIXES = (".md", ".json")


def _as_datetime(value: datetime | int, tz: tzinfo | None) -> datetime:
    if isinstance(value, datetime):
        return value.astimezone(tz) if tz and value.tzinfo else value
    return from_millis(value, tz)


def report_path(
    start: datetime | int,
    end: datetime | int,
    unique: bool = False,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> str:
    """
    Path of a period report.

    Args:
        start / end: Window bounds as datetimes or millisecond timestamps
        unique: Append a __YYYYMMDD_HHmmss suffix to avoid overwriting
        now: Timestamp for the suffix (default: current time)
        tz: Zone used to render millisecond timestamps (default: UTC)
    """
    first = _as_datetime(start, tz).strftime("%Y-%m-%d")
    last = _as_datetime(end, tz).strftime("%Y-%m-%d")
    if unique:
        stamp = (now or datetime.now(tz or UTC)).strftime("%Y%m%d_%H%M%S")
        return f"{REPORTS_DIR}/{first}_{last}__{stamp}.md"
    return f"{REPORTS_DIR}/{first}_{last}.md"


def sanitize_basename(note_path: str) -> str:
    """File name without .md/.json, with anything but letters/digits/_/- replaced by `_`."""
    name = PurePosixPath(note_path.replace("\\", "/")).name
    for suffix in NOTE_SUFFIXES:
        if name.lower().endswith(suffix):
            name = name[: -len(suffix)]
            break
    return _UNSAFE_RE.sub("_", name) or "note"


def single_note_report_path(note_path: str) -> str:
    return f"{REPORTS_DIR}/one_{sanitize_basename(note_path)}.md"


def period_label(
    start: datetime | int, end: datetime | int, tz: tzinfo | None = None
) -> str:
    """Digest title label, e.g. "12.10–18.10.2026"."""
    first = _as_datetime(start, tz)
    last = _as_datetime(end, tz)
    return f"{first.strftime('%d.%m')}–{last.strftime('%d.%m.%Y')}"
