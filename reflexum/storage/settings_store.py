"""
Settings persistence.

The store is whole-object: `load` always returns a complete settings object
(defaults merged over whatever is on disk) and `save` overwrites the file.
Concurrent writers race; the last write wins.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from reflexum.domain.settings import ReflexumSettings
from reflexum.errors import SettingsError
from reflexum.observability.logging import get_logger

logger = get_logger(__name__)


class JsonSettingsStore:
    """Settings stored as a camelCase JSON object in a single file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> ReflexumSettings:
        """
        Load settings, falling back to defaults when the file does not exist.

        Raises:
            SettingsError: File is unreadable, not JSON, or fails validation
                (e.g. a malformed autoReportTime)
        """
        if not self.path.exists():
            logger.info("No settings file at %s, using defaults", self.path)
            return ReflexumSettings()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(f"Cannot read settings from {self.path}: {e}") from e

        if not isinstance(raw, dict):
            raise SettingsError(f"Settings file {self.path} must hold a JSON object")

        try:
            return ReflexumSettings.model_validate(raw)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings in {self.path}: {e}") from e

    def save(self, settings: ReflexumSettings) -> None:
        """
        Overwrite the settings file.

        Side Effects:
            - Creates the parent directory if missing
            - Writes via a temp file then renames it over the target
        """
        payload = json.dumps(settings.to_store(), ensure_ascii=False, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(payload, encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise SettingsError(f"Cannot write settings to {self.path}: {e}") from e
        logger.debug("Saved settings to %s", self.path)


class InMemorySettingsStore:
    """Settings held in memory; used by tests and one-off CLI runs."""

    def __init__(self, settings: ReflexumSettings | None = None):
        self._data = (settings or ReflexumSettings()).to_store()
        self.save_count = 0

    def load(self) -> ReflexumSettings:
        # Fresh copy per load, like re-reading a file
        return ReflexumSettings.model_validate(self._data)

    def save(self, settings: ReflexumSettings) -> None:
        self._data = settings.to_store()
        self.save_count += 1
