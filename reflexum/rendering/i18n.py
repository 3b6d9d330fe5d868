"""
Bilingual string table and shared formatting helpers.

Every user-facing string of both renderers lives in STRINGS so each language
can be tested on its own. Lookup goes through `strings(lang)`.
"""

from __future__ import annotations

from typing import Any

from reflexum.domain.settings import Language
from reflexum.utils.numbers import finite_or, round_half_up

DEFAULT_LANG = Language.RU

STRINGS: dict[Language, dict[str, str]] = {
    Language.RU: {
        # Long-form report
        "report_title": "Reflexum — аналитический отчёт",
        "note": "Заметка",
        "total_time": "Суммарное время",
        "by_projects": "По проектам/областям",
        "course": "Курс",
        "no_data": "_Нет данных_",
        "day": "День",
        "minutes": "Минуты",
        "min_unit": "мин",
        "hour_unit": "ч",
        "top_topics": "Топ тем/тегов",
        "keywords": "Ключевые слова",
        "tasks": "Задачи",
        "tasks_line": "выполнено {done}/{total} (открыто: {open})",
        "insights": "Инсайты",
        "self_check": "Вопросы для самоконтроля",
        "gaps": "Пробелы внимания",
        "pie_projects_title": "Время по проектам/областям (мин)",
        "other": "Другое",
        "daily_dynamics": "Динамика по дням",
        "bar_title": "Активность по дням (мин)",
        "note_deadline": "Дедлайн заметки",
        "date": "Дата",
        "deadlines": "Дедлайны",
        "deadlines_totals": "Всего: **{total}**, открыто: **{open}**, сделано: **{done}**, просрочено: **{overdue}**",
        "col_open": "Открыто",
        "col_done": "Сделано",
        "col_overdue": "Просрочено",
        "col_progress": "Средн. прогресс",
        "empty_single": (
            "_В этой заметке нет измеримых данных. Добавь frontmatter `duration:` "
            "(в минутах) или чек-листы/теги/темы._"
        ),
        "empty_period": (
            "_Нет данных по выбранным заметкам. Добавь `duration:` в минутах "
            "или проверь теги/темы/чек-листы._"
        ),
        # Telegram digest
        "d_title": "Reflexum",
        "d_daily": "📈 Динамика по дням:",
        "d_tasks": "✅ Задачи: {done}/{total} (открыто: {open})",
        "d_deadlines_summary": "⏰ Дедлайны: {total} всего, {open} открыто, {overdue} просрочено",
        "d_upcoming": "⏰ Ближайшие дедлайны:",
        "d_progress": "(прогресс:",
        "d_self_check": "✅ Вопросы для самоконтроля:",
        "d_gaps": "⚠️ Пробелы внимания: {gaps}",
        "d_reminder_title": "⏳ Ближайшие дедлайны:",
    },
    Language.EN: {
        "report_title": "Reflexum — analytical report",
        "note": "Note",
        "total_time": "Total time",
        "by_projects": "By projects/areas",
        "course": "Course",
        "no_data": "_No data_",
        "day": "Day",
        "minutes": "Minutes",
        "min_unit": "min",
        "hour_unit": "h",
        "top_topics": "Top topics/tags",
        "keywords": "Keywords",
        "tasks": "Tasks",
        "tasks_line": "{done}/{total} done (open: {open})",
        "insights": "Insights",
        "self_check": "Self-check questions",
        "gaps": "Attention gaps",
        "pie_projects_title": "Time by projects/areas (min)",
        "other": "Other",
        "daily_dynamics": "Daily dynamics",
        "bar_title": "Daily activity (min)",
        "note_deadline": "Note deadline",
        "date": "Date",
        "deadlines": "Deadlines",
        "deadlines_totals": "Total: **{total}**, open: **{open}**, done: **{done}**, overdue: **{overdue}**",
        "col_open": "Open",
        "col_done": "Done",
        "col_overdue": "Overdue",
        "col_progress": "Avg progress",
        "empty_single": (
            "_No measurable data in this note. Add frontmatter `duration:` (minutes) "
            "or checklists/tags/topics._"
        ),
        "empty_period": (
            "_No data for selected notes. Add `duration:` in minutes "
            "or ensure notes contain tags/topics/checklists._"
        ),
        "d_title": "Reflexum",
        "d_daily": "📈 Daily activity:",
        "d_tasks": "✅ Tasks: {done}/{total} (open: {open})",
        "d_deadlines_summary": "⏰ Deadlines: {total} total, {open} open, {overdue} overdue",
        "d_upcoming": "⏰ Upcoming deadlines:",
        "d_progress": "(progress:",
        "d_self_check": "✅ Self-check questions:",
        "d_gaps": "⚠️ Attention gaps: {gaps}",
        "d_reminder_title": "⏳ Upcoming deadlines:",
    },
}


def normalize_lang(value: Any = None) -> Language:
    """Map any input to a supported language; unknown values fall back to Russian."""
    raw = getattr(value, "value", value)
    return Language.EN if str(raw).lower() == "en" else DEFAULT_LANG


def strings(lang: Any) -> dict[str, str]:
    return STRINGS[normalize_lang(lang)]


def format_minutes(minutes: Any, lang: Any = DEFAULT_LANG) -> str:
    """
    Format a minute count as hours and minutes.

    Examples:
        125 -> "2 h 5 min" / "2 ч 5 мин"
        60  -> "1 h" / "1 ч"
        45  -> "45 min" / "45 мин"

    Negative and non-finite inputs clamp to 0.
    """
    safe = max(0, round_half_up(finite_or(minutes)))

    s = strings(lang)
    hours, mins = divmod(safe, 60)
    if hours <= 0:
        return f"{mins} {s['min_unit']}"
    if mins == 0:
        return f"{hours} {s['hour_unit']}"
    return f"{hours} {s['hour_unit']} {mins} {s['min_unit']}"


# Short alias used throughout the renderers
mm = format_minutes
