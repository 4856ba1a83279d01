"""Bounded gesture history for temporal smoothing.

Keeps the last N per-frame classifications together with where the
palm was at that moment, so motion across frames can be recovered.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from threading import Lock

from handcue.types import GestureType, Hand


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One classified frame.

    Attributes:
        type: Classified gesture (``none`` included).
        timestamp: Frame time in milliseconds.
        centroid: Palm center (x, y), or None when no hand was seen.
    """
    type: GestureType
    timestamp: int
    centroid: tuple[float, float] | None = None


class HistoryBuffer:
    """Fixed-capacity FIFO of recent classifications.

    Oldest entries drop silently once capacity is reached.

    Usage:
        >>> history = HistoryBuffer(capacity=10)
        >>> history.push(GestureType.FIST, hand, timestamp=1000)
        >>> history.types
        [<GestureType.FIST: 'fist'>]
    """

    def __init__(self, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._buffer: deque[HistoryEntry] = deque(maxlen=capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def length(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def is_full(self) -> bool:
        with self._lock:
            return len(self._buffer) == self._capacity

    @property
    def types(self) -> list[GestureType]:
        with self._lock:
            return [entry.type for entry in self._buffer]

    def push(self, gesture_type: GestureType, hand: Hand | None, timestamp: int) -> HistoryEntry:
        """Append a classified frame.

        Args:
            gesture_type: Classification for the frame.
            hand: Hand it was read from; None or empty when no hand was seen.
            timestamp: Frame time in milliseconds.
        """
        centroid = None if hand is None or hand.is_empty else hand.centroid()
        entry = HistoryEntry(type=gesture_type, timestamp=timestamp, centroid=centroid)
        with self._lock:
            self._buffer.append(entry)
        return entry

    def entries(self, since: int | None = None) -> list[HistoryEntry]:
        """Snapshot of entries, oldest first, optionally only those at or after `since`."""
        with self._lock:
            current = list(self._buffer)
        if since is None:
            return current
        return [e for e in current if e.timestamp >= since]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()
