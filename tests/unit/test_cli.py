"""End-to-end CLI runs against a temporary vault (Telegram and LLM off)."""

from __future__ import annotations

import json

import pytest

from reflexum.cli import main


@pytest.fixture
def vault(tmp_path):
    records = tmp_path / "records"
    (records / "math").mkdir(parents=True)
    (records / "math" / "week1.json").write_text(
        json.dumps({"course": "Math", "date": "2026-10-12", "durationMin": 45, "topics": ["algebra"]}),
        encoding="utf-8",
    )
    return tmp_path


def _args(vault, *command):
    return [
        "--vault",
        str(vault),
        "--notes",
        str(vault / "records"),
        "--settings",
        str(vault / "reflexum.json"),
        *command,
    ]


def test_report_writes_markdown(vault):
    code = main(_args(vault, "report", "--from", "2000-01-01", "--to", "2100-01-01"))

    assert code == 0
    reports = list((vault / "Reflexum" / "Reports").glob("2000-01-01_2100-01-01__*.md"))
    assert len(reports) == 1
    assert "| Math | 45 |" in reports[0].read_text(encoding="utf-8")


def test_note_report(vault):
    assert main(_args(vault, "note-report", "math/week1.json")) == 0
    assert (vault / "Reflexum" / "Reports" / "one_week1.md").exists()


def test_digest_without_telegram_fails(vault):
    assert main(_args(vault, "digest")) == 1


def test_tick_with_defaults_does_nothing(vault):
    assert main(_args(vault, "tick")) == 0
    assert not (vault / "Reflexum").exists()


def test_broken_settings_file(vault):
    (vault / "reflexum.json").write_text("{broken", encoding="utf-8")

    assert main(_args(vault, "report")) == 1
