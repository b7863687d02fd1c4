"""Timestamps that never run backwards within one store."""
import threading
from datetime import datetime, timezone
from typing import Optional


class MonotonicClock:
    """UTC wall clock whose readings are non-decreasing."""

    def __init__(self):
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Current UTC time, or the previous reading if the wall clock stepped back."""
        current = datetime.now(timezone.utc)
        with self._lock:
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
        return current
