"""Tests for the JSON record supplier and the file report store."""

from __future__ import annotations

import json

import pytest

from reflexum.errors import NoteReadError
from reflexum.storage.notes import JsonRecordSupplier
from reflexum.storage.report_store import FileReportStore


@pytest.fixture
def records(tmp_path):
    root = tmp_path / "records"
    (root / "math").mkdir(parents=True)
    (root / "Reflexum" / "Reports").mkdir(parents=True)

    def write(rel, data):
        path = root / rel
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")

    write("math/week1.json", {"type": "session", "course": "Math", "durationMin": 30, "topics": ["a", "a"]})
    write("math/hw.json", {"type": "assignment", "course": "Math", "title": "HW", "due": "2026-10-20", "progress": 40})
    write("art.json", {"course": "Art", "words": 400, "due": "2026-10-22"})
    write("broken.json", "{oops")
    write("Reflexum/Reports/old.json", {"course": "X"})
    return JsonRecordSupplier(root)


def _parse(supplier, path, course_filter=()):
    content = supplier.read_note(path)
    return (
        supplier.parse_to_session(path, content, list(course_filter)),
        supplier.parse_to_assignment(path, content),
    )


class TestListing:
    def test_lists_json_records_outside_reports(self, records):
        paths = [n.path for n in records.list_notes()]

        assert paths == ["art.json", "broken.json", "math/hw.json", "math/week1.json"]
        assert all(n.modified_ms > 0 for n in records.list_notes())

    def test_missing_directory(self, tmp_path):
        assert JsonRecordSupplier(tmp_path / "nope").list_notes() == []

    def test_unreadable_note(self, records):
        with pytest.raises(NoteReadError):
            records.read_note("missing.json")


class TestParsing:
    def test_session_record(self, records):
        session, assignment = _parse(records, "math/week1.json")

        assert session.file == "math/week1.json"
        assert session.duration_min == 30
        assert session.topics == ("a",)
        assert assignment is None

    def test_assignment_record_is_not_a_session(self, records):
        session, assignment = _parse(records, "math/hw.json")

        assert session is None
        assert assignment.title == "HW"
        assert assignment.progress == 40

    def test_session_with_due_is_also_an_assignment(self, records):
        session, assignment = _parse(records, "art.json")

        assert session.course == "Art"
        assert assignment.due == "2026-10-22"

    def test_course_filter(self, records):
        session, _ = _parse(records, "math/week1.json", course_filter=["Art"])

        assert session is None

    def test_broken_json_is_skipped(self, records):
        assert _parse(records, "broken.json") == (None, None)


class TestFileReportStore:
    def test_save_and_read(self, tmp_path):
        store = FileReportStore(tmp_path)
        store.ensure_reports_dir()
        store.save_report("Reflexum/Reports/a.md", "# hi")

        assert (tmp_path / "Reflexum" / "Reports").is_dir()
        assert store.report_exists("Reflexum/Reports/a.md")
        assert store.get_report("Reflexum/Reports/a.md") == "# hi"

    def test_missing_report(self, tmp_path):
        store = FileReportStore(tmp_path)

        assert store.report_exists("Reflexum/Reports/none.md") is False
        assert store.get_report("Reflexum/Reports/none.md") is None
