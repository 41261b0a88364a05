"""Counters for the ingestion and recommendation paths."""

import threading
from typing import Dict

COUNTERS = (
    "updates_received",
    "updates_validated",
    "updates_persisted",
    "updates_published",
    "dropped_invalid",
    "db_errors",
    "publish_errors",
    "stale_filtered",
)


class Metrics:
    """
    Thread-safe counter registry.

    One instance is created per entrypoint and handed to the handlers that
    report into it; request threads and the consumer loop may increment
    concurrently.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts = {name: 0 for name in COUNTERS}

    def increment(self, name: str, amount: int = 1):
        if name not in self._counts:
            raise KeyError(f"Unknown counter {name}")
        with self._lock:
            self._counts[name] += amount

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)
