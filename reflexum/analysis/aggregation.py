"""
Aggregation Engine - turn sessions and assignments into a ReportAggregate.

Pure and total: the same inputs (and the same `now`) always give the same
aggregate, and malformed fields degrade to sentinels instead of raising.
Course and date resolution belong to the note supplier; here a missing value
simply lands in the "—" bucket.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from reflexum.config import (
    KEYWORD_STRIP_CHARS,
    NO_VALUE,
    STOP_WORDS,
    TOP_KEYWORDS_LIMIT,
    TOP_TOPICS_LIMIT,
    WORDS_PER_MINUTE,
)
from reflexum.domain.models import (
    Assignment,
    AssignmentSummary,
    CourseAssignmentStats,
    KeywordCount,
    ReportAggregate,
    StudySession,
    TaskSummary,
    TopicCount,
)
from reflexum.observability.logging import get_logger
from reflexum.utils.dates import date_only, ensure_aware, parse_iso
from reflexum.utils.numbers import round_half_up

logger = get_logger(__name__)

_STRIP_RE = re.compile("[" + re.escape(KEYWORD_STRIP_CHARS) + "]")
# Letters, digits, apostrophe and hyphen; underscores are stripped above
_TOKEN_RE = re.compile(r"[\w'-]{3,}")


def estimate_minutes(words: int) -> int:
    """Reading/writing time at a fixed rate, never below one minute."""
    try:
        count = max(0, int(words))
    except (TypeError, ValueError):
        count = 0
    return max(1, round_half_up(count / WORDS_PER_MINUTE))


def session_minutes(session: StudySession) -> float:
    """
    Effective minutes for a session.

    Explicit duration wins when finite; negative durations clamp to 0 and
    non-finite ones fall back to the word-count estimate.
    """
    duration = session.duration_min
    if duration is not None and math.isfinite(duration):
        return max(0.0, duration)
    return estimate_minutes(session.words)


def extract_keywords(body: str | None) -> list[str]:
    """
    Tokenize a note body into lower-cased keywords.

    Side Effects: None (pure function)
    """
    if not body:
        return []
    stripped = _STRIP_RE.sub(" ", body)
    tokens = (token.lower() for token in _TOKEN_RE.findall(stripped))
    return [token for token in tokens if token not in STOP_WORDS]


def _top(counts: dict[str, int], limit: int) -> list[tuple[str, int]]:
    # sorted() is stable, so ties keep first-encountered order
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]


def _is_overdue(assignment: Assignment, now: datetime) -> bool:
    due = parse_iso(assignment.due)
    if due is None:
        return False
    return ensure_aware(due, now.tzinfo) < now


def _summarize_assignments(
    assignments: Sequence[Assignment], now: datetime
) -> AssignmentSummary:
    tallies: dict[str, dict[str, int]] = {}
    done = overdue = 0

    for assignment in assignments:
        course = assignment.course or NO_VALUE
        bucket = tallies.setdefault(course, {"open": 0, "done": 0, "overdue": 0})
        if assignment.progress >= 100:
            done += 1
            bucket["done"] += 1
        elif _is_overdue(assignment, now):
            overdue += 1
            bucket["overdue"] += 1
        else:
            bucket["open"] += 1

    # progress_avg is its own pass over the raw assignments, not derived from the tally
    by_course: dict[str, CourseAssignmentStats] = {}
    for course, bucket in tallies.items():
        members = [a.progress for a in assignments if (a.course or NO_VALUE) == course]
        avg = round_half_up(sum(members) / len(members)) if members else 0
        by_course[course] = CourseAssignmentStats(progress_avg=avg, **bucket)

    total = len(assignments)
    return AssignmentSummary(
        total=total,
        done=done,
        overdue=overdue,
        open=total - done - overdue,
        by_course=by_course,
    )


def find_gaps(per_course: dict[str, float], by_course: dict[str, CourseAssignmentStats]) -> list[str]:
    """Courses with open or overdue work but no logged minutes."""
    return [
        course
        for course, stats in by_course.items()
        if (stats.open > 0 or stats.overdue > 0) and per_course.get(course, 0) == 0
    ]


def analyze(
    sessions: Iterable[StudySession],
    assignments: Iterable[Assignment],
    now: datetime | None = None,
) -> ReportAggregate:
    """
    Build a ReportAggregate from scratch.

    Args:
        sessions: Study sessions produced by the note supplier
        assignments: Assignments produced by the note supplier
        now: Reference instant for overdue detection (default: current UTC time)

    Returns:
        Immutable aggregate with an empty period_label (the caller fills it in)

    Side Effects: None (pure function)
    """
    now = ensure_aware(now or datetime.now(UTC))
    session_list = list(sessions)
    assignment_list = list(assignments)

    # raw minutes per bucket, summed with math.fsum below
    course_minutes: dict[str, list[float]] = {}
    day_minutes: dict[str, list[float]] = {}
    topic_counts: dict[str, int] = {}
    keyword_counts: dict[str, int] = {}
    tasks_total = tasks_done = 0

    for session in session_list:
        minutes = session_minutes(session)
        course = session.course or NO_VALUE
        course_minutes.setdefault(course, []).append(minutes)

        day = date_only(session.date) or NO_VALUE
        day_minutes.setdefault(day, []).append(minutes)

        # topics are de-duplicated per session, so this counts sessions
        for topic in dict.fromkeys(session.topics):
            topic_counts[topic] = topic_counts.get(topic, 0) + 1

        for word in extract_keywords(session.body):
            keyword_counts[word] = keyword_counts.get(word, 0) + 1

        tasks_total += session.checklist.total
        tasks_done += session.checklist.done

    per_course = {course: math.fsum(values) for course, values in course_minutes.items()}
    per_day = {day: math.fsum(values) for day, values in day_minutes.items()}

    summary = _summarize_assignments(assignment_list, now)
    gaps = find_gaps(per_course, summary.by_course)

    aggregate = ReportAggregate(
        total_minutes=math.fsum(m for values in course_minutes.values() for m in values),
        per_course=per_course,
        per_day=per_day,
        top_topics=tuple(TopicCount(topic=t, count=c) for t, c in _top(topic_counts, TOP_TOPICS_LIMIT)),
        top_keywords=tuple(
            KeywordCount(word=w, count=c) for w, c in _top(keyword_counts, TOP_KEYWORDS_LIMIT)
        ),
        assignments=summary,
        tasks=TaskSummary(total=tasks_total, done=tasks_done, open=tasks_total - tasks_done),
        gaps=tuple(gaps),
    )
    logger.debug(
        "Analyzed %d sessions and %d assignments: %.0f min, %d gaps",
        len(session_list),
        len(assignment_list),
        aggregate.total_minutes,
        len(gaps),
    )
    return aggregate
