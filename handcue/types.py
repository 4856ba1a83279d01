"""Shared types, protocols, and constants for the HandCue pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Protocol

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NUM_HAND_LANDMARKS = 21
LANDMARK_DIMS = 3  # x, y, z

WRIST = 0
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_TIP = 20

# Tip / middle-joint pairs in thumb → pinky order
DIGIT_TIPS: tuple[int, ...] = (THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
DIGIT_JOINTS: tuple[int, ...] = (THUMB_IP, INDEX_PIP, MIDDLE_PIP, RING_PIP, PINKY_PIP)

# Wrist + MCP knuckles, used to locate the palm
PALM_POINTS: tuple[int, ...] = (WRIST, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class GestureType(str, Enum):
    """Closed set of gestures the pipeline can report.

    ``NONE`` is an explicit "nothing recognized" value, not an absence.
    """
    FIST = "fist"
    OPEN_PALM = "open_palm"
    POINTING = "pointing"
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"
    SWIPE_LEFT = "swipe_left"
    SWIPE_RIGHT = "swipe_right"
    SWIPE_UP = "swipe_up"
    SWIPE_DOWN = "swipe_down"
    PINCH = "pinch"
    NONE = "none"

    @property
    def is_swipe(self) -> bool:
        return self in SWIPE_TYPES


SWIPE_TYPES = frozenset({
    GestureType.SWIPE_LEFT,
    GestureType.SWIPE_RIGHT,
    GestureType.SWIPE_UP,
    GestureType.SWIPE_DOWN,
})


class SessionState(Enum):
    """Lifecycle of a detection session."""
    UNINITIALIZED = auto()
    INITIALIZING = auto()
    READY = auto()
    DETECTING = auto()
    CLOSED = auto()


# ---------------------------------------------------------------------------
# Core Data Structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Landmark:
    """A single normalized hand point (x/y in [0, 1], z relative depth)."""
    x: float
    y: float
    z: float


@dataclass(frozen=True, slots=True)
class Hand:
    """Landmarks for one detected hand in one frame.

    Attributes:
        landmarks: (21, 3) array of [x, y, z] in normalized coordinates,
            or (0, 3) for the empty hand.
        handedness: "Left", "Right", or "Unknown_<index>"; "" for the empty hand.
    """
    landmarks: NDArray[np.float32]
    handedness: str = ""

    def __post_init__(self) -> None:
        assert self.landmarks.shape in (
            (NUM_HAND_LANDMARKS, LANDMARK_DIMS),
            (0, LANDMARK_DIMS),
        ), (
            f"Expected shape ({NUM_HAND_LANDMARKS}, {LANDMARK_DIMS}), "
            f"got {self.landmarks.shape}"
        )

    @classmethod
    def empty(cls) -> Hand:
        return cls(landmarks=np.zeros((0, LANDMARK_DIMS), dtype=np.float32))

    @classmethod
    def from_points(cls, points: list[tuple[float, float, float]], handedness: str = "") -> Hand:
        return cls(landmarks=np.asarray(points, dtype=np.float32), handedness=handedness)

    @property
    def is_empty(self) -> bool:
        return self.landmarks.shape[0] == 0

    def point(self, index: int) -> Landmark:
        x, y, z = self.landmarks[index]
        return Landmark(float(x), float(y), float(z))

    def centroid(self) -> tuple[float, float]:
        """Palm center (mean of wrist and MCP knuckles) in x/y."""
        if self.is_empty:
            raise ValueError("Empty hand has no centroid")
        cx, cy = self.landmarks[list(PALM_POINTS), :2].mean(axis=0)
        return float(cx), float(cy)


@dataclass(frozen=True, slots=True)
class Classification:
    """Per-frame classifier output."""
    type: GestureType
    confidence: float


@dataclass(frozen=True, slots=True)
class Gesture:
    """A gesture event handed to consumers.

    Attributes:
        type: Recognized gesture.
        confidence: Score in [0, 1].
        hand: Hand the gesture was read from.
        timestamp: Wall-clock time in integer milliseconds.
    """
    type: GestureType
    confidence: float
    hand: Hand
    timestamp: int

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must lie in [0, 1], got {self.confidence}")

    @classmethod
    def empty(cls, timestamp: int) -> Gesture:
        """The zero-hands sentinel."""
        return cls(type=GestureType.NONE, confidence=0.0, hand=Hand.empty(), timestamp=timestamp)


@dataclass(frozen=True, slots=True)
class ProviderOptions:
    """Landmark provider configuration.

    Attributes:
        max_hands: Maximum number of hands to detect.
        model_complexity: 0 (lite) or 1 (full).
        min_detection_confidence: Palm detection threshold.
        min_tracking_confidence: Landmark tracking threshold.
    """
    max_hands: int = 1
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    def __post_init__(self) -> None:
        if self.max_hands < 1:
            raise ValueError(f"max_hands must be >= 1, got {self.max_hands}")
        if self.model_complexity not in (0, 1):
            raise ValueError(f"model_complexity must be 0 or 1, got {self.model_complexity}")
        for name in ("min_detection_confidence", "min_tracking_confidence"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1], got {value}")


# ---------------------------------------------------------------------------
# Protocols (Interfaces)
# ---------------------------------------------------------------------------

ResultCallback = Callable[[int, list[Hand]], None]
GestureCallback = Callable[[Gesture], object]


class LandmarkProvider(Protocol):
    """Protocol for asynchronous hand landmark backends.

    Results come back through the single callback registered with
    ``on_result``, tagged with the ticket the frame was submitted under.
    """

    def configure(self, options: ProviderOptions) -> None:
        """Load the model and apply options."""
        ...

    def on_result(self, callback: ResultCallback) -> None:
        """Register the result handler (once per session)."""
        ...

    def submit_frame(self, image: NDArray[np.uint8], ticket: int) -> None:
        """Queue an RGB/RGBA frame for detection."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...
