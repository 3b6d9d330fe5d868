"""File-backed adapters for settings, study records and reports."""
