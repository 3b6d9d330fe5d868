"""
Type Contracts for Reflexum

Protocol-based capability contracts between the pure core (analysis,
rendering, scheduling) and the I/O adapters (storage, delivery, llm).

Architecture:
    reports/service.py (orchestration)
            |
            v
    contracts/ (protocols only, no logic)
            ^
            |
    storage/  delivery/  llm/  (adapters)

Re-exports for convenience:
"""

from reflexum.contracts.ports import (
    InsightMode,
    InsightProvider,
    MessageSink,
    NoteSupplier,
    Notifier,
    ReportStore,
    SettingsStore,
)

__all__ = [
    "InsightMode",
    "InsightProvider",
    "MessageSink",
    "NoteSupplier",
    "Notifier",
    "ReportStore",
    "SettingsStore",
]
