"""Exception types raised by Reflexum adapters.

Core functions (aggregation, rendering, scheduling) never raise; these are for
the collaborators around them and are caught by reflexum.reports.service.
"""

from __future__ import annotations


class ReflexumError(Exception):
    """Base class for all Reflexum errors."""


class SettingsError(ReflexumError):
    """Persisted settings could not be loaded, validated or saved."""


class DeliveryError(ReflexumError):
    """The message sink rejected or failed to deliver a message."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InsightError(ReflexumError):
    """The LLM could not produce insights or self-check questions."""


class NoteReadError(ReflexumError):
    """A note listed by the supplier could not be read."""
