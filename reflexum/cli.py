"""
Reflexum command line.

Usage:
    reflexum report [--from YYYY-MM-DD --to YYYY-MM-DD]
    reflexum note-report PATH
    reflexum digest [--from YYYY-MM-DD --to YYYY-MM-DD]
    reflexum tick            # hourly auto-report check (cron / systemd timer)
    reflexum remind [--days N]

Paths and credentials come from the environment (a .env file in the
working directory is loaded first); user preferences come from the JSON
settings file.
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime

from dotenv import load_dotenv

from reflexum import __version__
from reflexum.errors import ReflexumError
from reflexum.observability.logging import get_logger, set_level
from reflexum.observability.telemetry import log_event, snapshot

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reflexum",
        description="Study journal analytics: Markdown reports and Telegram digests",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--vault", help="Vault directory (default: REFLEXUM_VAULT_DIR)")
    parser.add_argument("--notes", help="Records directory (default: REFLEXUM_NOTES_DIR)")
    parser.add_argument("--settings", help="Settings file (default: REFLEXUM_SETTINGS_FILE)")

    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("report", "Build a long-form report for the configured date preset"),
        ("digest", "Send a Telegram digest for the configured date preset"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--from", dest="date_from", help="Start date (overrides the preset)")
        cmd.add_argument("--to", dest="date_to", help="End date (overrides the preset)")

    note = sub.add_parser("note-report", help="Build a report for a single note")
    note.add_argument("path", help="Note path relative to the records directory")

    sub.add_parser("tick", help="Run one auto-report scheduler tick")

    remind = sub.add_parser("remind", help="Send a reminder about upcoming deadlines")
    remind.add_argument("--days", type=int, help="Days ahead (default: dueReminderDays)")

    return parser


def _window(args: argparse.Namespace, settings, now: datetime):
    from reflexum.domain.settings import DatePreset
    from reflexum.scheduling.auto_report import preset_window

    if args.date_from or args.date_to:
        settings = settings.model_copy(
            update={
                "date_preset": DatePreset.CUSTOM,
                "date_from": args.date_from,
                "date_to": args.date_to,
            }
        )
    return preset_window(settings, now)


def run(args: argparse.Namespace) -> int:
    """Wire adapters and dispatch one command. Returns a process exit code."""
    from pathlib import Path

    from reflexum.config import NOTES_DIR, SETTINGS_FILE, VAULT_DIR
    from reflexum.reports.service import AutoReportRunner, DeadlineReminder, ReportService
    from reflexum.storage.notes import JsonRecordSupplier
    from reflexum.storage.report_store import FileReportStore
    from reflexum.storage.settings_store import JsonSettingsStore

    vault = Path(args.vault) if args.vault else VAULT_DIR
    settings_store = JsonSettingsStore(args.settings or SETTINGS_FILE)
    service = ReportService(
        JsonRecordSupplier(args.notes or NOTES_DIR),
        FileReportStore(vault),
        settings_store,
    )
    now = service.resolve_now(None)

    if args.command == "tick":
        AutoReportRunner(service, settings_store).tick(now)
        return 0

    if args.command == "remind":
        DeadlineReminder(service, settings_store).check(args.days, now)
        return 0

    if args.command == "note-report":
        result = service.generate_note_report(args.path, now=now)
        return 0 if result is not None and result.saved else 1

    settings = settings_store.load()
    window = _window(args, settings, now)
    if args.command == "report":
        result = service.generate_period_report(window, settings=settings, now=now)
        return 0 if result is not None and result.saved else 1
    if args.command == "digest":
        return 0 if service.send_digest(window, settings=settings, now=now) else 1

    logger.error("Unknown command: %s", args.command)
    return 2


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _build_parser().parse_args(argv)
    if args.verbose:
        set_level("DEBUG")

    try:
        code = run(args)
    except ReflexumError as e:
        logger.error("%s", e)
        code = 1

    log_event("command_finished", command=args.command, exit_code=code)
    logger.debug("Telemetry: %s", snapshot())
    return code


if __name__ == "__main__":
    sys.exit(main())
