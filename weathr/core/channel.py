"""Single-slot hand-off between producer threads and the render loop."""

from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Latest-value channel. Thread-safe.

    ``publish`` overwrites whatever is pending; ``take`` drains at most one
    value. Only the newest value is ever delivered, so a slow consumer never
    builds up a backlog.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._pending = False
        self._published = 0

    def publish(self, value: T) -> None:
        with self._lock:
            self._value = value
            self._pending = True
            self._published += 1

    def take(self) -> Optional[T]:
        """Return the pending value and clear the slot, or None if nothing is pending."""
        with self._lock:
            if not self._pending:
                return None
            value = self._value
            self._value = None
            self._pending = False
            return value

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending

    @property
    def published_count(self) -> int:
        """Total values ever published (including overwritten ones)."""
        with self._lock:
            return self._published
