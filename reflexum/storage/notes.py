"""
Study record supplier.

Notes arrive already typed: one JSON object per `*.json` file below the
records directory. Markdown/frontmatter parsing happens upstream (in the
editor plugin or an export script), never here.

Record shape (camelCase, same field names as the plugin):
    {"type": "session", "date": "2026-10-12", "course": "Math",
     "topics": ["algebra"], "durationMin": 30, "words": 420,
     "checklist": {"done": 2, "total": 3}, "body": "..."}
    {"type": "assignment", "course": "Math", "title": "HW 3",
     "due": "2026-10-20", "status": "open", "progress": 40}

A record without "type" is a session; a session record that carries a
"due" also counts as an assignment.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from reflexum.config import REPORTS_DIR
from reflexum.domain.models import Assignment, NoteInfo, StudySession
from reflexum.errors import NoteReadError
from reflexum.observability.logging import get_logger

logger = get_logger(__name__)

ASSIGNMENT_TYPE = "assignment"


class JsonRecordSupplier:
    """NoteSupplier over a directory of JSON record files."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def list_notes(self) -> list[NoteInfo]:
        if not self.root.is_dir():
            logger.warning("Records directory %s does not exist", self.root)
            return []

        notes = []
        for file in sorted(self.root.rglob("*.json")):
            rel = file.relative_to(self.root).as_posix()
            if rel.startswith(REPORTS_DIR):
                continue
            notes.append(NoteInfo(path=rel, modified_ms=int(file.stat().st_mtime * 1000)))
        return notes

    def read_note(self, path: str) -> str:
        try:
            return (self.root / path).read_text(encoding="utf-8")
        except OSError as e:
            raise NoteReadError(f"Cannot read {path}: {e}") from e

    def _decode(self, path: str, content: str) -> dict[str, Any] | None:
        try:
            record = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Skipping %s: not valid JSON (%s)", path, e)
            return None
        if not isinstance(record, dict):
            logger.warning("Skipping %s: record must be a JSON object", path)
            return None
        return record

    def parse_to_session(
        self, path: str, content: str, course_filter: Sequence[str]
    ) -> StudySession | None:
        record = self._decode(path, content)
        if record is None:
            return None
        if str(record.get("type") or "").strip() == ASSIGNMENT_TYPE:
            return None

        try:
            session = StudySession.model_validate({**record, "file": path})
        except ValidationError as e:
            logger.warning("Skipping %s: invalid session record (%s)", path, e.error_count())
            return None

        # Sessions without a course are never filtered out
        if course_filter and session.course and session.course not in course_filter:
            return None
        return session

    def parse_to_assignment(self, path: str, content: str) -> Assignment | None:
        record = self._decode(path, content)
        if record is None:
            return None
        is_assignment = str(record.get("type") or "").strip() == ASSIGNMENT_TYPE
        if not is_assignment and not record.get("due"):
            return None

        try:
            return Assignment.model_validate({**record, "file": path})
        except ValidationError as e:
            logger.warning("Skipping %s: invalid assignment record (%s)", path, e.error_count())
            return None
