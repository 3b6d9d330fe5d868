from __future__ import annotations

import logging
import os
from typing import Final

_HANDLERS_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"
_PACKAGE_LOGGER: Final[str] = "reflexum"


def _resolve_level(override: str | None = None) -> int:
    level_name = (override or os.getenv("REFLEXUM_LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def _attach_handlers(level: int) -> None:
    """Attach the stream handler (and the optional file handler) once per process."""
    global _HANDLERS_ATTACHED

    formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)
    package_logger = logging.getLogger(_PACKAGE_LOGGER)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    package_logger.addHandler(stream)

    # Optional file sink for unattended hourly ticks
    log_file = os.getenv("REFLEXUM_LOG_FILE")
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.setLevel(level)
    _HANDLERS_ATTACHED = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the shared `reflexum` handler tree."""
    level = _resolve_level()

    if not _HANDLERS_ATTACHED:
        _attach_handlers(level)

    if not name.startswith(_PACKAGE_LOGGER):
        name = f"{_PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def set_level(level_name: str) -> None:
    """Change the package log level at runtime (used by `reflexum --verbose`)."""
    level = _resolve_level(level_name)
    if not _HANDLERS_ATTACHED:
        _attach_handlers(level)
    logging.getLogger(_PACKAGE_LOGGER).setLevel(level)
