"""Temporal stabilization of per-frame classifications.

Turns noisy frame-by-frame labels into rate-limited events:
    - debounce gate: minimum interval between processed frames
    - history: bounded record of recent classifications and palm positions
    - swipe detection: palm travel across the recent history
    - swipe cooldown: one physical swipe fires once
"""

from __future__ import annotations

from loguru import logger

from handcue.temporal.history import HistoryBuffer
from handcue.types import Classification, GestureType, Hand

DEFAULT_DEBOUNCE_MS = 100
DEFAULT_SWIPE_COOLDOWN_MS = 1000
DEFAULT_HISTORY_SIZE = 10
DEFAULT_SWIPE_WINDOW_MS = 600
DEFAULT_SWIPE_MIN_DISTANCE = 0.2

# Dominant axis must travel at least this many times the other axis
SWIPE_AXIS_DOMINANCE = 2.0
SWIPE_MIN_CONFIDENCE = 0.7
SWIPE_MAX_CONFIDENCE = 0.95


class TemporalStabilizer:
    """Decide which per-frame classifications become reported events.

    All times are integer milliseconds supplied by the caller, which keeps
    the stabilizer deterministic under test.

    Usage:
        >>> stabilizer = TemporalStabilizer(debounce_ms=100)
        >>> if stabilizer.admit(now):
        ...     stabilizer.record(result.type, hand, now)
        ...     swipe = stabilizer.detect_swipe(now)
        ...     if stabilizer.accept((swipe or result).type, now):
        ...         emit(...)
    """

    def __init__(
        self,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        swipe_cooldown_ms: int = DEFAULT_SWIPE_COOLDOWN_MS,
        history_size: int = DEFAULT_HISTORY_SIZE,
        swipe_window_ms: int = DEFAULT_SWIPE_WINDOW_MS,
        swipe_min_distance: float = DEFAULT_SWIPE_MIN_DISTANCE,
    ) -> None:
        if debounce_ms < 0 or swipe_cooldown_ms < 0 or swipe_window_ms < 0:
            raise ValueError("Time intervals must be non-negative")
        if swipe_min_distance <= 0:
            raise ValueError(f"swipe_min_distance must be positive, got {swipe_min_distance}")
        self._debounce_ms = debounce_ms
        self._swipe_cooldown_ms = swipe_cooldown_ms
        self._swipe_window_ms = swipe_window_ms
        self._swipe_min_distance = swipe_min_distance
        self._history = HistoryBuffer(capacity=history_size)
        self._min_swipe_samples = max(2, history_size // 2)
        self._last_admitted_ms: int | None = None
        self._last_swipe_ms: int | None = None

    @property
    def history(self) -> HistoryBuffer:
        return self._history

    @property
    def debounce_ms(self) -> int:
        return self._debounce_ms

    @property
    def swipe_cooldown_ms(self) -> int:
        return self._swipe_cooldown_ms

    def admit(self, now_ms: int) -> bool:
        """Debounce gate: True if a new frame may enter the pipeline."""
        last = self._last_admitted_ms
        if last is not None and now_ms - last < self._debounce_ms:
            return False
        self._last_admitted_ms = now_ms
        return True

    def record(self, gesture_type: GestureType, hand: Hand | None, now_ms: int) -> None:
        """Append a classification to history, whether or not it is reported."""
        self._history.push(gesture_type, hand, now_ms)

    def in_swipe_cooldown(self, now_ms: int) -> bool:
        last = self._last_swipe_ms
        return last is not None and now_ms - last < self._swipe_cooldown_ms

    def accept(self, gesture_type: GestureType, now_ms: int) -> bool:
        """Whether this frame's classification may be reported.

        Non-swipe gestures always pass. A swipe is refused during the
        cooldown that follows the previous accepted swipe; accepting one
        starts a new cooldown.
        """
        if not gesture_type.is_swipe:
            return True
        if self.in_swipe_cooldown(now_ms):
            logger.debug("Swipe {} suppressed by cooldown", gesture_type.value)
            return False
        self._last_swipe_ms = now_ms
        return True

    def detect_swipe(self, now_ms: int) -> Classification | None:
        """Look for a directional palm movement in the recent history.

        Only palm positions recorded since the last accepted swipe and
        inside the swipe window count, so one movement is read once.
        """
        since = now_ms - self._swipe_window_ms
        if self._last_swipe_ms is not None:
            since = max(since, self._last_swipe_ms + 1)

        track = [e.centroid for e in self._history.entries(since) if e.centroid is not None]
        if len(track) < self._min_swipe_samples:
            return None

        (x0, y0), (x1, y1) = track[0], track[-1]
        dx, dy = x1 - x0, y1 - y0
        ax, ay = abs(dx), abs(dy)

        if ax >= self._swipe_min_distance and ax >= ay * SWIPE_AXIS_DOMINANCE:
            gesture_type = GestureType.SWIPE_RIGHT if dx > 0 else GestureType.SWIPE_LEFT
            travel = ax
        elif ay >= self._swipe_min_distance and ay >= ax * SWIPE_AXIS_DOMINANCE:
            # Image y grows downward
            gesture_type = GestureType.SWIPE_DOWN if dy > 0 else GestureType.SWIPE_UP
            travel = ay
        else:
            return None

        confidence = min(
            SWIPE_MAX_CONFIDENCE,
            SWIPE_MIN_CONFIDENCE + (travel - self._swipe_min_distance),
        )
        logger.debug(
            "Swipe candidate {} | travel={:.3f} samples={}",
            gesture_type.value, travel, len(track),
        )
        return Classification(type=gesture_type, confidence=confidence)

    def reset(self) -> None:
        self._history.clear()
        self._last_admitted_ms = None
        self._last_swipe_ms = None
