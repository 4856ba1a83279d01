"""Gesture detection session.

Owns a landmark provider for its whole lifetime and funnels frames
through: debounce gate → result sequencer → classifier → swipe detection
→ stabilizer → confidence threshold → gesture callback.

Lifecycle:
    UNINITIALIZED → INITIALIZING → READY ⇄ DETECTING, any → CLOSED
"""

from __future__ import annotations

import inspect
import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger

from handcue.classification.rules import DEFAULT_PINCH_THRESHOLD, RuleBasedClassifier
from handcue.errors import (
    FrameProcessingError,
    InitializationError,
    NotInitializedError,
    SessionDisposedError,
)
from handcue.inference.sequencer import ResultSequencer
from handcue.temporal.stabilizer import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_HISTORY_SIZE,
    DEFAULT_SWIPE_COOLDOWN_MS,
    DEFAULT_SWIPE_MIN_DISTANCE,
    DEFAULT_SWIPE_WINDOW_MS,
    TemporalStabilizer,
)
from handcue.types import Gesture, GestureCallback, ProviderOptions, SessionState

if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np

    from handcue.types import Hand, LandmarkProvider


FPS_WINDOW_FRAMES = 30


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Configuration for a detection session; fixed for its lifetime.

    Attributes:
        min_confidence: Minimum confidence for a gesture to be reported.
        debounce_ms: Minimum interval between processed frames.
        swipe_cooldown_ms: Minimum interval between reported swipes.
        history_size: Capacity of the classification history.
        pinch_threshold: Thumb/index tip distance that counts as a pinch.
        swipe_window_ms: How far back palm movement is examined for swipes.
        swipe_min_distance: Palm travel (normalized) that counts as a swipe.
        enable_swipes: Whether to derive swipes from palm movement.
        result_timeout_ms: Give up on a provider result after this long
            (None waits indefinitely).
    """
    min_confidence: float = 0.7
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    swipe_cooldown_ms: int = DEFAULT_SWIPE_COOLDOWN_MS
    history_size: int = DEFAULT_HISTORY_SIZE
    pinch_threshold: float = DEFAULT_PINCH_THRESHOLD
    swipe_window_ms: int = DEFAULT_SWIPE_WINDOW_MS
    swipe_min_distance: float = DEFAULT_SWIPE_MIN_DISTANCE
    enable_swipes: bool = True
    result_timeout_ms: float | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError(f"min_confidence must lie in [0, 1], got {self.min_confidence}")
        if self.result_timeout_ms is not None and self.result_timeout_ms <= 0:
            raise ValueError(f"result_timeout_ms must be positive, got {self.result_timeout_ms}")


@dataclass
class SessionStats:
    """Per-session frame counters and timing.

    ``fps`` is the incoming frame rate over the last ``FPS_WINDOW_FRAMES``
    frames, read from the session clock. Processing time covers
    submit → classify for frames that produced a result.
    """
    frames_received: int = 0
    frames_debounced: int = 0
    frames_failed: int = 0
    frames_discarded: int = 0
    frames_processed: int = 0
    gestures_emitted: int = 0
    last_processing_ms: float = 0.0
    total_processing_ms: float = 0.0
    _arrivals: deque[int] = field(
        default_factory=lambda: deque(maxlen=FPS_WINDOW_FRAMES), repr=False
    )

    @property
    def mean_processing_ms(self) -> float:
        if self.frames_processed == 0:
            return 0.0
        return self.total_processing_ms / self.frames_processed

    @property
    def fps(self) -> float:
        if len(self._arrivals) < 2:
            return 0.0
        span_ms = self._arrivals[-1] - self._arrivals[0]
        if span_ms <= 0:
            return 0.0
        return (len(self._arrivals) - 1) * 1000.0 / span_ms

    def mark_received(self, now_ms: int) -> None:
        self.frames_received += 1
        self._arrivals.append(now_ms)

    def mark_processed(self, processing_ms: float) -> None:
        self.frames_processed += 1
        self.last_processing_ms = processing_ms
        self.total_processing_ms += processing_ms


class DetectionSession:
    """One independent gesture detection pipeline.

    Usage:
        >>> session = DetectionSession(provider, on_gesture=print)
        >>> await session.initialize()
        >>> session.start()
        >>>
        >>> # In your frame loop:
        >>> await session.process_frame(rgba_frame)
        >>>
        >>> session.close()
    """

    def __init__(
        self,
        provider: LandmarkProvider,
        config: SessionConfig | None = None,
        on_gesture: GestureCallback | None = None,
        provider_options: ProviderOptions | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or SessionConfig()
        self._provider_options = provider_options or ProviderOptions()
        self._on_gesture = on_gesture
        self._clock = clock or _now_ms

        self._classifier = RuleBasedClassifier(pinch_threshold=self._config.pinch_threshold)
        self._stabilizer = TemporalStabilizer(
            debounce_ms=self._config.debounce_ms,
            swipe_cooldown_ms=self._config.swipe_cooldown_ms,
            history_size=self._config.history_size,
            swipe_window_ms=self._config.swipe_window_ms,
            swipe_min_distance=self._config.swipe_min_distance,
        )
        self._sequencer: ResultSequencer | None = None

        self._state = SessionState.UNINITIALIZED
        self._current_gesture: Gesture | None = None
        self._error: str | None = None
        self._stats = SessionStats()

    # ── Observable state ─────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._state in (SessionState.READY, SessionState.DETECTING)

    @property
    def is_detecting(self) -> bool:
        return self._state is SessionState.DETECTING

    @property
    def current_gesture(self) -> Gesture | None:
        return self._current_gesture

    @property
    def error(self) -> str | None:
        """Last user-facing error message, if any."""
        return self._error

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def stabilizer(self) -> TemporalStabilizer:
        return self._stabilizer

    # ── Lifecycle ────────────────────────────────────────────

    async def initialize(self) -> None:
        """Configure the provider and register the result callback.

        Raises:
            InitializationError: If the provider cannot be configured.
            SessionDisposedError: If the session is closed.
        """
        self._ensure_open()
        if self._state is not SessionState.UNINITIALIZED:
            logger.debug("Session already initialized (state={})", self._state.name)
            return

        self._state = SessionState.INITIALIZING
        try:
            if self._sequencer is None:
                self._sequencer = ResultSequencer(
                    self._provider,
                    timeout_ms=self._config.result_timeout_ms,
                )
            self._provider.configure(self._provider_options)
        except Exception as e:
            self._state = SessionState.UNINITIALIZED
            self._error = "Failed to initialize gesture detection"
            logger.error("Failed to initialize gesture detection: {}", e)
            raise InitializationError(f"Landmark provider configuration failed: {e}") from e

        self._state = SessionState.READY
        self._error = None
        logger.info(
            "Detection session ready | min_confidence={} debounce={}ms swipes={}",
            self._config.min_confidence,
            self._config.debounce_ms,
            "on" if self._config.enable_swipes else "off",
        )

    def start(self) -> None:
        """Begin accepting frames.

        Raises:
            NotInitializedError: If the session is not READY yet.
            SessionDisposedError: If the session is closed.
        """
        self._ensure_open()
        if self._state is SessionState.DETECTING:
            return
        if self._state is not SessionState.READY:
            self._error = "Gesture service not initialized"
            raise NotInitializedError(f"Cannot start detection in state {self._state.name}")
        self._state = SessionState.DETECTING
        self._error = None
        logger.info("Gesture detection started")

    def stop(self) -> None:
        """Stop accepting frames. In-flight results are ignored when they land."""
        self._ensure_open()
        if self._state is SessionState.DETECTING:
            self._state = SessionState.READY
            logger.info("Gesture detection stopped")

    def close(self) -> None:
        """Release the provider and abandon pending frames. Idempotent."""
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        if self._sequencer is not None:
            self._sequencer.clear()
        self._provider.close()
        self._stabilizer.reset()
        self._current_gesture = None
        logger.info(
            "Detection session closed | frames={} emitted={} failed={} mean={:.1f}ms",
            self._stats.frames_received,
            self._stats.gestures_emitted,
            self._stats.frames_failed,
            self._stats.mean_processing_ms,
        )

    async def __aenter__(self) -> DetectionSession:
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()

    # ── Frame processing ─────────────────────────────────────

    async def process_frame(self, frame: np.ndarray) -> Gesture | None:
        """Run one frame through the pipeline.

        Returns:
            The reported gesture, or None if the frame was skipped,
            failed, or produced nothing reportable.

        Raises:
            SessionDisposedError: If the session is closed.
        """
        self._ensure_open()
        if self._state is not SessionState.DETECTING or self._sequencer is None:
            return None

        arrived = self._clock()
        self._stats.mark_received(arrived)
        if not self._stabilizer.admit(arrived):
            self._stats.frames_debounced += 1
            return None

        t_start = time.perf_counter()
        try:
            hands = await self._sequencer.submit(frame)
        except FrameProcessingError as e:
            if self._state is not SessionState.DETECTING:
                self._stats.frames_discarded += 1
                return None
            self._record_failure(e)
            return None

        if self._state is not SessionState.DETECTING:
            logger.debug("Discarding late result; detection is no longer active")
            self._stats.frames_discarded += 1
            return None

        try:
            gesture = self._evaluate(hands, self._clock())
        except Exception as e:
            self._record_failure(FrameProcessingError(f"Classification failed: {e}"))
            return None
        self._stats.mark_processed((time.perf_counter() - t_start) * 1000.0)

        self._current_gesture = gesture
        if gesture is None:
            return None

        self._stats.gestures_emitted += 1
        await self._emit(gesture)
        return gesture

    def _evaluate(self, hands: list[Hand], now: int) -> Gesture | None:
        gesture = self._classifier.recognize(hands, now)
        hand = hands[0] if hands else None
        self._stabilizer.record(gesture.type, hand, now)

        # A rejected swipe falls back to the frame's own classification
        if self._config.enable_swipes and hand is not None:
            swipe = self._stabilizer.detect_swipe(now)
            if (
                swipe is not None
                and swipe.confidence >= self._config.min_confidence
                and self._stabilizer.accept(swipe.type, now)
            ):
                return Gesture(type=swipe.type, confidence=swipe.confidence, hand=hand, timestamp=now)

        if gesture.confidence < self._config.min_confidence:
            return None
        if not self._stabilizer.accept(gesture.type, now):
            return None
        return gesture

    async def _emit(self, gesture: Gesture) -> None:
        if self._on_gesture is None:
            return
        try:
            outcome = self._on_gesture(gesture)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self._error = "Gesture callback failed"
            logger.exception("Gesture callback failed: {}", e)

    def _record_failure(self, error: FrameProcessingError) -> None:
        self._stats.frames_failed += 1
        self._error = "Error processing frame"
        logger.warning("Frame processing failed: {}", error)

    def _ensure_open(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionDisposedError("Detection session has been closed")
