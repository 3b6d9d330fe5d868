"""
Domain models (Pydantic v2) for the Reflexum pipeline.

Records come from the note supplier already typed; the aggregate is rebuilt
from scratch for every report and never mutated. All models are frozen.
Note bodies are kept out of repr so logs never leak journal text.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

NO_VALUE = "—"


class FrozenModel(BaseModel):
    """Base model: immutable, ignores unknown keys from older record files."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


# =============================================================================
# Input records
# =============================================================================


class Checklist(FrozenModel):
    done: int = 0
    total: int = 0


class StudySession(FrozenModel):
    """A logged unit of study/work."""

    file: str = ""
    date: str | None = None
    course: str | None = None
    topics: tuple[str, ...] = ()
    duration_min: float | None = Field(default=None, alias="durationMin")
    words: int = 0
    checklist: Checklist = Field(default_factory=Checklist)
    body: str | None = Field(default=None, repr=False)

    @field_validator("topics", mode="before")
    @classmethod
    def _dedupe_topics(cls, v: Any) -> tuple[str, ...]:
        if v is None:
            return ()
        # dict.fromkeys keeps first-seen order
        return tuple(dict.fromkeys(str(t) for t in v))

    @field_validator("course", "date", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Assignment(FrozenModel):
    """A tracked deliverable with a due date and completion progress."""

    file: str = ""
    course: str | None = None
    title: str | None = None
    due: str | None = None
    status: str | None = None
    progress: float = 0

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(value):
            return 0.0
        return min(100.0, max(0.0, value))

    @field_validator("course", "due", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DeadlineItem(FrozenModel):
    """Flattened deadline row for the digest's upcoming-deadlines list."""

    course: str | None = None
    title: str | None = None
    due: str | None = None
    progress: float = 0

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> DeadlineItem:
        return cls(
            course=assignment.course,
            title=assignment.title,
            due=assignment.due,
            progress=assignment.progress,
        )


@dataclass(frozen=True)
class NoteInfo:
    """Listing entry from the note supplier."""

    path: str
    modified_ms: int


# =============================================================================
# Aggregate
# =============================================================================


class TopicCount(FrozenModel):
    topic: str
    count: int


class KeywordCount(FrozenModel):
    word: str
    count: int


class CourseAssignmentStats(FrozenModel):
    open: int = 0
    done: int = 0
    overdue: int = 0
    progress_avg: int = 0


class AssignmentSummary(FrozenModel):
    total: int = 0
    done: int = 0
    overdue: int = 0
    open: int = 0
    by_course: dict[str, CourseAssignmentStats] = Field(default_factory=dict)


class TaskSummary(FrozenModel):
    total: int = 0
    done: int = 0
    open: int = 0


class ReportAggregate(FrozenModel):
    """Statistical summary over a set of sessions and assignments."""

    total_minutes: float = 0
    per_course: dict[str, float] = Field(default_factory=dict)
    per_day: dict[str, float] = Field(default_factory=dict)
    top_topics: tuple[TopicCount, ...] = ()
    top_keywords: tuple[KeywordCount, ...] = ()
    assignments: AssignmentSummary = Field(default_factory=AssignmentSummary)
    tasks: TaskSummary = Field(default_factory=TaskSummary)
    gaps: tuple[str, ...] = ()
    period_label: str = ""

    def is_empty(self) -> bool:
        """True when there is nothing measurable to report."""
        return not (
            self.total_minutes > 0
            or self.per_course
            or self.per_day
            or self.top_topics
            or self.top_keywords
            or self.tasks.total > 0
            or self.assignments.total > 0
        )

    def with_period_label(self, label: str) -> ReportAggregate:
        return self.model_copy(update={"period_label": label})
