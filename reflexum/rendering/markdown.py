"""
Long-form Markdown report renderer.

Renders a ReportAggregate into an Obsidian-friendly document:
- Title and period/note label
- Empty-data hint when nothing measurable was found
- Summary lines (total time, top topics, tasks)
- Sections: note deadline, projects, daily dynamics, topics, keywords,
  deadlines, insights, self-check questions, gaps

A section whose backing data is empty is left out entirely. Numbers are
rounded only here, never in the aggregate.
"""

from __future__ import annotations

import re

from reflexum.config import KEYWORD_LIST_LIMIT, PIE_TOP_KEYWORDS, PIE_TOP_TOPICS
from reflexum.domain.models import ReportAggregate
from reflexum.domain.settings import Language
from reflexum.rendering import mermaid
from reflexum.rendering.i18n import format_minutes, normalize_lang, strings
from reflexum.utils.dates import parse_iso
from reflexum.utils.numbers import finite_or, round_half_up

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NEWLINE_RE = re.compile(r"\r?\n")


def escape_table_cell(value: object) -> str:
    """Collapse line breaks and escape the column delimiter."""
    text = "" if value is None else str(value)
    return _NEWLINE_RE.sub(" ", text).replace("|", "\\|").strip()


def format_due(due: str | None, lang: object) -> str:
    """
    Format a deadline for display.

    Bare YYYY-MM-DD passes through; other parseable values become
    YYYY-MM-DD (en) or DD.MM.YYYY (ru); anything else is shown raw.
    """
    raw = (due or "").strip()
    if not raw:
        return "—"
    if _ISO_DATE_RE.match(raw):
        return raw
    parsed = parse_iso(raw)
    if parsed is None:
        return raw
    if normalize_lang(lang) == Language.EN:
        return parsed.strftime("%Y-%m-%d")
    return parsed.strftime("%d.%m.%Y")


def empty_hint(aggregate: ReportAggregate, lang: object, single_note: bool) -> str:
    if not aggregate.is_empty():
        return ""
    s = strings(lang)
    return s["empty_single"] if single_note else s["empty_period"]


def _table(header: list[str], align: list[str], rows: list[list[object]]) -> list[str]:
    lines = [
        "| " + " | ".join(header) + " |",
        "|" + "|".join(align) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(escape_table_cell(cell) for cell in row) + " |")
    return lines


def _summary(aggregate: ReportAggregate, lang: Language) -> list[str]:
    s = strings(lang)
    lines = [f"**{s['total_time']}:** {format_minutes(aggregate.total_minutes, lang)}"]

    if aggregate.top_topics:
        topics = ", ".join(f"{t.topic} ({t.count})" for t in aggregate.top_topics)
        lines.append(f"**{s['top_topics']}:** {topics}")

    tasks = aggregate.tasks
    lines.append(
        f"**{s['tasks']}:** "
        + s["tasks_line"].format(done=tasks.done, total=tasks.total, open=tasks.open)
    )
    return lines


def _projects_section(aggregate: ReportAggregate, lang: Language) -> list[str]:
    if not aggregate.per_course:
        return []
    s = strings(lang)
    ranked = sorted(aggregate.per_course.items(), key=lambda item: finite_or(item[1]), reverse=True)
    rows = [[course, round_half_up(finite_or(minutes))] for course, minutes in ranked]
    return [
        f"## 📊 {s['by_projects']}",
        "",
        *_table([s["course"], s["minutes"]], ["---", "---:"], rows),
        "",
        mermaid.course_pie(aggregate.per_course, lang),
        "",
    ]


def _daily_section(aggregate: ReportAggregate, lang: Language) -> list[str]:
    if not aggregate.per_day:
        return []
    s = strings(lang)
    rows = [
        [day, round_half_up(finite_or(aggregate.per_day[day]))] for day in sorted(aggregate.per_day)
    ]
    return [
        f"## 📈 {s['daily_dynamics']}",
        "",
        mermaid.daily_bar_chart(aggregate.per_day, lang),
        "",
        *_table([s["day"], s["minutes"]], ["---", "---:"], rows),
        "",
    ]


def _topics_section(aggregate: ReportAggregate, lang: Language) -> list[str]:
    if not aggregate.top_topics:
        return []
    s = strings(lang)
    ranked = sorted(aggregate.top_topics, key=lambda t: t.count, reverse=True)[:PIE_TOP_TOPICS]
    chart = mermaid.pie_chart(s["top_topics"], [(t.topic, t.count) for t in ranked], lang)
    return [f"## 🔥 {s['top_topics']}", "", chart, ""]


def _keywords_section(aggregate: ReportAggregate, lang: Language) -> list[str]:
    if not aggregate.top_keywords:
        return []
    s = strings(lang)
    listing = ", ".join(f"{k.word} ({k.count})" for k in aggregate.top_keywords[:KEYWORD_LIST_LIMIT])
    ranked = sorted(aggregate.top_keywords, key=lambda k: k.count, reverse=True)[:PIE_TOP_KEYWORDS]
    chart = mermaid.pie_chart(s["keywords"], [(k.word, k.count) for k in ranked], lang)
    return [f"## 🔎 {s['keywords']}", "", listing, "", chart, ""]


def _assignments_section(aggregate: ReportAggregate, lang: Language) -> list[str]:
    summary = aggregate.assignments
    if summary.total <= 0 and not summary.by_course:
        return []
    s = strings(lang)
    totals = s["deadlines_totals"].format(
        total=summary.total, open=summary.open, done=summary.done, overdue=summary.overdue
    )
    ranked = sorted(summary.by_course.items(), key=lambda item: item[1].open, reverse=True)
    rows = [
        [course, stats.open, stats.done, stats.overdue, f"{stats.progress_avg}%"]
        for course, stats in ranked
    ]
    header = [s["course"], s["col_open"], s["col_done"], s["col_overdue"], s["col_progress"]]
    return [
        f"## ⏰ {s['deadlines']}",
        totals,
        "",
        *_table(header, ["---", "---:", "---:", "---:", "---:"], rows),
        "",
    ]


def _text_section(heading: str, text: str) -> list[str]:
    body = (text or "").strip()
    if not body:
        return []
    return [heading, body, ""]


def render_markdown(
    aggregate: ReportAggregate,
    insights: str = "",
    quiz: str = "",
    *,
    single_note: bool = False,
    deadline: str | None = None,
    lang: object = Language.RU,
    note_title: str | None = None,
    note_path: str | None = None,
) -> str:
    """
    Render the long-form report.

    Args:
        aggregate: Output of analyze()
        insights: Optional LLM insights (Markdown list)
        quiz: Optional self-check questions
        single_note: Render a single-note report instead of a period report
        deadline: Due date of the note (single-note mode only)
        lang: "ru" or "en"; anything else falls back to "ru"
        note_title / note_path: Label for single-note mode (title preferred)

    Side Effects: None (pure function)
    """
    language = normalize_lang(lang)
    s = strings(language)

    lines: list[str] = [f"# {s['report_title']}"]
    if single_note:
        label = note_title or note_path
        if label:
            lines.append(f"_{s['note']}: {label}_")
    elif aggregate.period_label:
        lines.append(f"_{aggregate.period_label}_")
    lines.append("")

    hint = empty_hint(aggregate, language, single_note)
    if hint:
        lines.extend([hint, ""])

    lines.extend(_summary(aggregate, language))
    lines.append("")

    if single_note and deadline and deadline.strip():
        lines.extend(
            [
                f"## {s['note_deadline']}",
                f"{s['date']}: **{format_due(deadline, language)}**",
                "",
            ]
        )

    lines.extend(_projects_section(aggregate, language))
    if not single_note:
        lines.extend(_daily_section(aggregate, language))
    lines.extend(_topics_section(aggregate, language))
    lines.extend(_keywords_section(aggregate, language))
    lines.extend(_assignments_section(aggregate, language))
    lines.extend(_text_section(f"## 💡 {s['insights']}", insights))
    lines.extend(_text_section(f"## ✅ {s['self_check']}", quiz))

    if aggregate.gaps:
        lines.extend([f"## {s['gaps']}", ", ".join(aggregate.gaps), ""])

    return "\n".join(lines)
