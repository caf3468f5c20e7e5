"""
Latest-frame gate between a frame producer and the lane detector.

The detector is single-threaded and its temporal history must only ever
see one frame at a time. When frames arrive faster than they are
processed, only the newest one is kept and the rest are dropped.
"""

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class LatestFrameGate(Generic[T]):
    """
    Single-slot mailbox that keeps only the most recent item.

    Thread-safe: a capture thread may call offer() while the processing
    loop calls take().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Optional[T] = None
        self._dropped = 0
        self._accepted = 0

    def offer(self, item: T) -> bool:
        """
        Hand over a new item, replacing any unprocessed one.

        Returns:
            True if an older pending item was dropped
        """
        with self._lock:
            replaced = self._pending is not None
            if replaced:
                self._dropped += 1
            self._pending = item
            self._accepted += 1
            return replaced

    def take(self) -> Optional[T]:
        """Return the newest pending item and empty the slot."""
        with self._lock:
            item = self._pending
            self._pending = None
            return item

    def clear(self) -> None:
        """Discard any pending item without counting it as dropped."""
        with self._lock:
            self._pending = None

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    @property
    def dropped_count(self) -> int:
        with self._lock:
            return self._dropped

    @property
    def accepted_count(self) -> int:
        with self._lock:
            return self._accepted
