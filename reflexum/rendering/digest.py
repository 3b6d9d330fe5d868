"""
Telegram Digest Renderer - compact MarkdownV2 message from a ReportAggregate.

Renders:
- Bold title with the period label
- Total time, per-course gauges, daily gauges
- Topics, keywords, tasks and deadline summaries
- Upcoming deadlines (or the single note's deadline)
- Insights / self-check questions (truncated), attention gaps

Every piece of literal text goes through `escape_markdown_v2` before it is
concatenated; only the bold markers and the gauge glyphs are emitted raw.
The whole message is capped at DIGEST_MAX_CHARS (Telegram rejects longer ones).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

from reflexum.config import (
    DIGEST_COURSE_BAR_WIDTH,
    DIGEST_COURSE_LIMIT,
    DIGEST_DAY_BAR_WIDTH,
    DIGEST_DAY_LIMIT,
    DIGEST_DEADLINE_LIMIT,
    DIGEST_INSIGHTS_MAX_CHARS,
    DIGEST_KEYWORD_LIMIT,
    DIGEST_MAX_CHARS,
    DIGEST_QUIZ_MAX_CHARS,
    DIGEST_TOPIC_LIMIT,
    NO_VALUE,
)
from reflexum.domain.models import ReportAggregate
from reflexum.domain.settings import Language
from reflexum.observability.logging import get_logger
from reflexum.rendering.i18n import format_minutes, normalize_lang, strings
from reflexum.utils.numbers import finite_or, round_half_up

logger = get_logger(__name__)

# \ _ * [ ] ( ) ~ ` > # + - = | { } . !
MARKDOWN_V2_RESERVED = "\\_*[]()~`>#+-=|{}.!"
_RESERVED_RE = re.compile("([" + re.escape(MARKDOWN_V2_RESERVED) + "])")

BAR_FILL = "█"
BAR_EMPTY = "·"
ELLIPSIS = "…"


class DeadlineLike(Protocol):
    course: str | None
    title: str | None
    due: str | None
    progress: float


def escape_markdown_v2(text: object) -> str:
    """
    Prefix each MarkdownV2 reserved character with a backslash.

    Side Effects: None (pure function)
    """
    if text is None:
        return ""
    return _RESERVED_RE.sub(r"\\\1", str(text))


_e = escape_markdown_v2


def _bold(text: str) -> str:
    return f"*{_e(text)}*"


def ascii_bar(value: float, maximum: float, width: int = DIGEST_COURSE_BAR_WIDTH) -> str:
    """Gauge of `width` cells, filled in proportion to value/maximum."""
    if maximum <= 0:
        return BAR_EMPTY * width
    filled = min(max(0, round_half_up(value / maximum * width)), width)
    return BAR_FILL * filled + BAR_EMPTY * (width - filled)


def truncate_message(text: str, limit: int = DIGEST_MAX_CHARS) -> str:
    """
    Cut an escaped message to at most `limit` characters, ellipsis included.

    Never leaves a dangling backslash that would escape the ellipsis, and
    never leaves a bold entity open: Telegram rejects an unmatched `*`.
    """
    if len(text) <= limit:
        return text
    cut = text[: limit - len(ELLIPSIS)]
    trailing = len(cut) - len(cut.rstrip("\\"))
    if trailing % 2 == 1:
        cut = cut[:-1]

    stars = _unescaped_stars(cut)
    if len(stars) % 2 == 1:
        opener = stars[-1]
        line_start = cut.rfind("\n", 0, opener)
        cut = cut[:line_start].rstrip("\n") if line_start >= 0 else cut[:opener]
    return cut + ELLIPSIS


def _unescaped_stars(text: str) -> list[int]:
    positions = []
    escaped = False
    for i, char in enumerate(text):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "*":
            positions.append(i)
    return positions


def format_per_course(per_course: Mapping[str, float], lang: object) -> str:
    ranked = sorted(
        ((course, finite_or(minutes)) for course, minutes in per_course.items() if finite_or(minutes) > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    if not ranked:
        return _e(NO_VALUE)

    top_value = ranked[0][1]
    total = sum(minutes for _, minutes in ranked) or 1
    lines = []
    for course, minutes in ranked[:DIGEST_COURSE_LIMIT]:
        pct = round_half_up(minutes / total * 100)
        bar = ascii_bar(minutes, top_value, DIGEST_COURSE_BAR_WIDTH)
        lines.append(
            f"{bar} {_e(course)} {_e(NO_VALUE)} {_e(format_minutes(minutes, lang))} {_e(f'({pct}%)')}"
        )
    return "\n".join(lines)


def format_daily_activity(per_day: Mapping[str, float], lang: object) -> str:
    days = sorted(day for day in per_day if day and day != NO_VALUE)
    if not days:
        return _e(NO_VALUE)

    days = days[-DIGEST_DAY_LIMIT:]
    values = [max(0, round_half_up(finite_or(per_day.get(day)))) for day in days]
    top_value = max(values, default=0)
    return "\n".join(
        f"{ascii_bar(value, top_value, DIGEST_DAY_BAR_WIDTH)} {_e(day)} {_e(NO_VALUE)} "
        f"{_e(format_minutes(value, lang))}"
        for day, value in zip(days, values)
    )


def _deadline_line(item: DeadlineLike, lang: object) -> str:
    progress = round_half_up(finite_or(item.progress))
    parts = [item.course or NO_VALUE, item.title or NO_VALUE, item.due or NO_VALUE]
    label = f" {NO_VALUE} ".join(parts)
    return f"{_e('• ' + label)} {_e(strings(lang)['d_progress'])} {progress}%{_e(')')}"


def format_deadlines(deadlines: Iterable[DeadlineLike], lang: object) -> str:
    items = [d for d in deadlines if d is not None and (d.due or d.title or d.course)]
    # ISO due strings sort chronologically as plain strings
    items.sort(key=lambda d: d.due or "")
    items = items[:DIGEST_DEADLINE_LIMIT]
    if not items:
        return _e(NO_VALUE)
    return "\n".join(_deadline_line(item, lang) for item in items)


def render_digest(
    aggregate: ReportAggregate,
    period_label: str,
    *,
    insights: str = "",
    deadlines: Sequence[DeadlineLike] | None = None,
    single_note_deadline: str | None = None,
    lang: object = Language.RU,
    quiz: str = "",
) -> str:
    """
    Render the Telegram digest.

    Args:
        aggregate: Output of analyze()
        period_label: Human label for the period (e.g. "12.10–18.10.2026")
        insights: Optional LLM insights, cut to 800 chars before escaping
        deadlines: Upcoming deadlines, shown when no single-note deadline is given
        single_note_deadline: Due date of the note in single-note mode
        lang: "ru" or "en"
        quiz: Optional self-check questions, cut to 600 chars before escaping

    Returns:
        MarkdownV2 text, at most DIGEST_MAX_CHARS characters

    Side Effects: None (pure function)
    """
    language = normalize_lang(lang)
    s = strings(language)
    lines: list[str] = []

    lines.append(_bold(f"🧠 {s['d_title']} — {period_label}"))
    lines.append("")
    lines.append(f"{_e('⏱ ' + s['total_time'] + ':')} {_e(format_minutes(aggregate.total_minutes, language))}")
    lines.append("")

    lines.append(_bold(f"📊 {s['by_projects']}:"))
    lines.append(format_per_course(aggregate.per_course, language))
    lines.append("")

    if aggregate.per_day:
        lines.append(_bold(s["d_daily"]))
        lines.append(format_daily_activity(aggregate.per_day, language))
        lines.append("")

    if aggregate.top_topics:
        lines.append(_bold(f"🔥 {s['top_topics']}:"))
        lines.extend(
            f"{_e('• ' + t.topic)} {_e(f'({t.count})')}" for t in aggregate.top_topics[:DIGEST_TOPIC_LIMIT]
        )
        lines.append("")

    if aggregate.top_keywords:
        words = _e(", ").join(_e(k.word) for k in aggregate.top_keywords[:DIGEST_KEYWORD_LIMIT])
        lines.append(f"{_bold('🔎 ' + s['keywords'] + ':')} {words}")
        lines.append("")

    tasks = aggregate.tasks
    lines.append(_e(s["d_tasks"].format(done=tasks.done, total=tasks.total, open=tasks.open)))
    lines.append("")

    summary = aggregate.assignments
    if summary.total > 0:
        lines.append(
            _e(
                s["d_deadlines_summary"].format(
                    total=summary.total, open=summary.open, overdue=summary.overdue
                )
            )
        )
        lines.append("")

    if single_note_deadline:
        lines.append(f"{_e('⏰ ' + s['note_deadline'] + ':')} {_e(single_note_deadline)}")
        lines.append("")
    elif deadlines:
        lines.append(_bold(s["d_upcoming"]))
        lines.append(format_deadlines(deadlines, language))
        lines.append("")

    insight_text = (insights or "").strip()
    if insight_text:
        lines.append(_bold(f"💡 {s['insights']}:"))
        lines.append(_e(insight_text[:DIGEST_INSIGHTS_MAX_CHARS]))
        lines.append("")

    quiz_text = (quiz or "").strip()
    if quiz_text:
        lines.append(_bold(s["d_self_check"]))
        lines.append(_e(quiz_text[:DIGEST_QUIZ_MAX_CHARS]))
        lines.append("")

    if aggregate.gaps:
        lines.append(_e(s["d_gaps"].format(gaps=", ".join(aggregate.gaps))))
        lines.append("")

    text = "\n".join(lines).strip()
    if len(text) > DIGEST_MAX_CHARS:
        logger.warning("Digest is %d chars, truncating to %d", len(text), DIGEST_MAX_CHARS)
    return truncate_message(text)


def render_deadline_reminder(deadlines: Iterable[DeadlineLike], lang: object = Language.RU) -> str:
    """
    Reminder message for the six-hourly deadline sweep.

    Returns an empty string when there is nothing to remind about.
    """
    items = sorted(
        (d for d in deadlines if d is not None and d.due),
        key=lambda d: d.due or "",
    )
    if not items:
        return ""
    language = normalize_lang(lang)
    body = "\n".join(_deadline_line(item, language) for item in items)
    return truncate_message(f"{_bold(strings(language)['d_reminder_title'])}\n{body}")
