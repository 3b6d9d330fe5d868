"""
Structured Logging Kit for Reflexum

Provides one-line JSON event logging with:
- Correlation IDs (run_id per CLI invocation / timer tick)
- Event taxonomy across the report pipeline handoffs
- Privacy: note paths are hashed, free text is truncated

Usage:
    from reflexum.observability.structured import StructuredLogger, EventType

    slog = StructuredLogger(run_id="20261019_200000")

    slog.log_event(
        EventType.DIGEST_SEND_ERROR,
        note_path="Courses/Math/week1.md",
        error="HTTP 400",
    )

Output:
    {"ts":"2026-10-19T20:00:00.123+00:00","level":"ERROR","run":"20261019_200000","event":"digest_send_error","note":"4f1c...","error":"HTTP 400"}
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from reflexum.observability.logging import get_logger

logger = get_logger("reflexum.structured")

_MAX_FIELD_LEN = 200


class EventType(str, Enum):
    """Event taxonomy covering the report pipeline handoffs"""

    # 1. Note collection
    NOTES_COLLECTED = "notes_collected"
    NOTE_READ_ERROR = "note_read_error"

    # 2. Aggregation / rendering
    REPORT_BUILD_OK = "report_build_ok"
    REPORT_SAVE_ERROR = "report_save_error"
    DIGEST_BUILD_OK = "digest_build_ok"

    # 3. LLM annotations
    LLM_CALL_OK = "llm_call_ok"
    LLM_CALL_ERROR = "llm_call_error"

    # 4. Delivery
    DIGEST_SEND_OK = "digest_send_ok"
    DIGEST_SEND_ERROR = "digest_send_error"

    # 5. Scheduling
    AUTO_REPORT_SKIPPED = "auto_report_skipped"
    AUTO_REPORT_FIRED = "auto_report_fired"
    AUTO_REPORT_RECORDED = "auto_report_recorded"
    DEADLINE_REMINDER_SENT = "deadline_reminder_sent"


EVENT_SEVERITY = {
    EventType.NOTES_COLLECTED: logging.DEBUG,
    EventType.NOTE_READ_ERROR: logging.WARNING,
    EventType.REPORT_BUILD_OK: logging.INFO,
    EventType.REPORT_SAVE_ERROR: logging.ERROR,
    EventType.DIGEST_BUILD_OK: logging.INFO,
    EventType.LLM_CALL_OK: logging.DEBUG,
    EventType.LLM_CALL_ERROR: logging.ERROR,
    EventType.DIGEST_SEND_OK: logging.INFO,
    EventType.DIGEST_SEND_ERROR: logging.ERROR,
    EventType.AUTO_REPORT_SKIPPED: logging.DEBUG,
    EventType.AUTO_REPORT_FIRED: logging.INFO,
    EventType.AUTO_REPORT_RECORDED: logging.INFO,
    EventType.DEADLINE_REMINDER_SENT: logging.INFO,
}


class SafeJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles common non-serializable types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, "__dict__"):
            return str(obj)
        return super().default(obj)


class StructuredLogger:
    """
    Structured event logger for one pipeline run

    Features:
    - Correlation via run_id (one CLI command or timer tick)
    - Privacy: note paths are hashed, long strings truncated
    - One-line JSON output for easy grepping
    """

    def __init__(self, run_id: str | None = None):
        self.run_id = run_id or self._generate_run_id()

    @staticmethod
    def _generate_run_id() -> str:
        """Generate run ID: YYYYMMDD_HHMMSS"""
        return datetime.now(UTC).strftime("%Y%m%d_%H%M%S")

    @staticmethod
    def hash_note_path(path: str) -> str:
        """Short stable hash of a vault path (folder names often carry course names)"""
        if not path:
            return "unknown"
        return hashlib.sha256(path.encode("utf-8")).hexdigest()[:12]

    def build_event(self, event_type: EventType, note_path: str | None = None, **kwargs: Any) -> dict:
        """Build the event payload without emitting it.

        Side Effects:
            None (pure function)
        """
        severity = EVENT_SEVERITY.get(event_type, logging.INFO)
        event: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": logging.getLevelName(severity),
            "run": self.run_id,
            "event": event_type.value,
        }
        if note_path:
            event["note"] = self.hash_note_path(note_path)

        for key, value in kwargs.items():
            if isinstance(value, str) and len(value) > _MAX_FIELD_LEN:
                event[key] = value[:_MAX_FIELD_LEN] + "..."
            else:
                event[key] = value
        return event

    def log_event(self, event_type: EventType, note_path: str | None = None, **kwargs: Any) -> None:
        """
        Log a structured event

        Side Effects:
            - Writes one JSON line to the reflexum.structured logger
        """
        severity = EVENT_SEVERITY.get(event_type, logging.INFO)
        event = self.build_event(event_type, note_path=note_path, **kwargs)
        try:
            json_line = json.dumps(event, separators=(",", ":"), cls=SafeJSONEncoder, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("structured_log_error: failed to serialize event type=%s error=%s", event_type, e)
            return
        logger.log(severity, json_line)

    # Convenience methods for common events

    def report_build_ok(self, kind: str, sessions: int, assignments: int, chars: int) -> None:
        self.log_event(
            EventType.REPORT_BUILD_OK,
            kind=kind,
            sessions=sessions,
            assignments=assignments,
            chars=chars,
        )

    def digest_send_error(self, error: str, status_code: int | None = None) -> None:
        self.log_event(EventType.DIGEST_SEND_ERROR, error=error, status=status_code)

    def llm_call_error(self, stage: str, error: str) -> None:
        self.log_event(EventType.LLM_CALL_ERROR, stage=stage, error=error)

    def auto_report_decision(self, fired: bool, frequency: str, last_sent: str | None) -> None:
        self.log_event(
            EventType.AUTO_REPORT_FIRED if fired else EventType.AUTO_REPORT_SKIPPED,
            frequency=frequency,
            last_sent=last_sent,
        )


_global_logger: StructuredLogger | None = None


def get_structured_logger(run_id: str | None = None) -> StructuredLogger:
    """
    Get or create the process-wide structured logger

    Side Effects:
        - May replace the global _global_logger when a run_id is given
    """
    global _global_logger

    if run_id or _global_logger is None:
        _global_logger = StructuredLogger(run_id=run_id)

    return _global_logger
