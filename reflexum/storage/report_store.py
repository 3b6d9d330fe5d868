"""Report files written below the vault root."""

from __future__ import annotations

from pathlib import Path

from reflexum.config import REPORTS_DIR
from reflexum.observability.logging import get_logger

logger = get_logger(__name__)


class FileReportStore:
    """
    ReportStore writing Markdown reports under `<vault>/Reflexum/Reports/`.

    Paths passed in are vault-relative (see reflexum.rendering.paths).
    """

    def __init__(self, vault_dir: str | Path):
        self.vault_dir = Path(vault_dir)

    def _resolve(self, path: str) -> Path:
        return self.vault_dir / path

    def ensure_reports_dir(self) -> None:
        self._resolve(REPORTS_DIR).mkdir(parents=True, exist_ok=True)

    def save_report(self, path: str, content: str) -> None:
        """
        Side Effects:
            - Creates parent directories
            - Overwrites any existing file at `path`
        """
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.info("Saved report %s (%d chars)", path, len(content))

    def report_exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def get_report(self, path: str) -> str | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        return target.read_text(encoding="utf-8")
