"""Report orchestration: collection, annotation, saving, sending and timers."""
