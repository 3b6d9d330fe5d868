"""
Mermaid chart directives for the long-form report.

Mermaid's pie/xychart syntax is delimiter-sensitive, so every label goes
through `safe_label` first.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping

from reflexum.config import BAR_MAX_DAYS, CHART_LABEL_MAX_LEN, NO_VALUE, PIE_TOP_ENTRIES
from reflexum.rendering.i18n import strings
from reflexum.utils.numbers import finite_or, round_half_up

_NEWLINE_RE = re.compile(r"\r?\n")


def safe_label(value: object) -> str:
    """
    Make a string safe for a quoted Mermaid label.

    Side Effects: None (pure function)
    """
    text = "" if value is None else str(value)
    text = _NEWLINE_RE.sub(" ", text)
    text = text.replace('"', "'").replace(":", "·")
    return text.strip()[:CHART_LABEL_MAX_LEN]


def _fenced(*lines: str) -> str:
    return "\n".join(["```mermaid", *lines, "```"])


def pie_chart(title: str, items: Iterable[tuple[str, float]], lang: object) -> str:
    """Pie chart of positive values; falls back to the no-data marker."""
    entries = [
        (safe_label(label), round_half_up(finite_or(value)))
        for label, value in items
        if finite_or(value) > 0
    ]
    if not entries:
        return strings(lang)["no_data"]

    body = [f'  "{label}" : {value}' for label, value in entries]
    return _fenced("pie showData", f'  title "{safe_label(title)}"', *body)


def course_pie(per_course: Mapping[str, float], lang: object) -> str:
    """Top courses by minutes, remainder folded into an "Other" slice."""
    ranked = sorted(per_course.items(), key=lambda item: finite_or(item[1]), reverse=True)
    top = ranked[:PIE_TOP_ENTRIES]
    other = sum(finite_or(value) for _, value in ranked[PIE_TOP_ENTRIES:])
    if other > 0:
        top.append((strings(lang)["other"], other))
    return pie_chart(strings(lang)["pie_projects_title"], top, lang)


def daily_bar_chart(per_day: Mapping[str, float], lang: object) -> str:
    """xychart bar of minutes per day for the most recent days."""
    s = strings(lang)
    days = sorted(day for day in per_day if day and day != NO_VALUE)
    if not days:
        return s["no_data"]

    days = days[-BAR_MAX_DAYS:]
    values = [max(0, round_half_up(finite_or(per_day.get(day)))) for day in days]
    ceiling = max(10, math.ceil(max(values, default=0) / 10) * 10)

    x_labels = ", ".join(f'"{safe_label(day)}"' for day in days)
    return _fenced(
        "xychart-beta",
        f'  title "{safe_label(s["bar_title"])}"',
        f"  x-axis [{x_labels}]",
        f'  y-axis "{safe_label(s["minutes"])}" 0 --> {ceiling}',
        f"  bar [{', '.join(str(v) for v in values)}]",
    )
