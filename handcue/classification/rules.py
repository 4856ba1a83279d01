"""Rule-based per-frame gesture classification from landmark geometry.

Purely geometric, no ML involved. A digit counts as extended when its tip
sits above its middle joint in image space (y grows downward).

Confidence is a fixed per-gesture constant, not derived from landmark
quality. Treat it as a placeholder score rather than a calibrated
probability; consumers only rely on it lying in [0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from loguru import logger

from handcue.types import (
    DIGIT_JOINTS,
    DIGIT_TIPS,
    INDEX_TIP,
    THUMB_TIP,
    Classification,
    Gesture,
    GestureType,
    Hand,
)

DEFAULT_PINCH_THRESHOLD = 0.05

BASE_CONFIDENCE: dict[GestureType, float] = {
    GestureType.FIST: 0.9,
    GestureType.OPEN_PALM: 0.9,
    GestureType.POINTING: 0.9,
    GestureType.PINCH: 0.8,
}
FALLBACK_CONFIDENCE = 0.5


def base_confidence(gesture_type: GestureType) -> float:
    return BASE_CONFIDENCE.get(gesture_type, FALLBACK_CONFIDENCE)


@dataclass(frozen=True, slots=True)
class FingerStates:
    """Extension state of each digit."""
    thumb: bool
    index: bool
    middle: bool
    ring: bool
    pinky: bool

    @property
    def count(self) -> int:
        return sum((self.thumb, self.index, self.middle, self.ring, self.pinky))

    @property
    def only_index(self) -> bool:
        return self.index and self.count == 1


def finger_states(hand: Hand) -> FingerStates:
    """Compute which digits are extended.

    Raises:
        ValueError: If the hand carries no landmarks.
    """
    if hand.is_empty:
        raise ValueError("Cannot compute finger states of an empty hand")
    lm = hand.landmarks
    extended = lm[list(DIGIT_TIPS), 1] < lm[list(DIGIT_JOINTS), 1]
    return FingerStates(*(bool(e) for e in extended))


def thumb_index_distance(hand: Hand) -> float:
    """2D (x/y) distance between thumb tip and index tip."""
    lm = hand.landmarks
    return float(np.linalg.norm(lm[THUMB_TIP, :2] - lm[INDEX_TIP, :2]))


class RuleBasedClassifier:
    """Map one hand's landmarks to a gesture and a confidence.

    Deterministic and stateless; safe to share across sessions.

    Directional swipes are never produced here: a single frame cannot
    tell a held pose from a hand in motion. See ``TemporalStabilizer``.

    Usage:
        >>> classifier = RuleBasedClassifier()
        >>> result = classifier.classify(hand)
        >>> result.type, result.confidence
        (<GestureType.OPEN_PALM: 'open_palm'>, 0.9)
    """

    def __init__(self, pinch_threshold: float = DEFAULT_PINCH_THRESHOLD) -> None:
        if pinch_threshold <= 0:
            raise ValueError(f"pinch_threshold must be positive, got {pinch_threshold}")
        self._pinch_threshold = pinch_threshold

    @property
    def pinch_threshold(self) -> float:
        return self._pinch_threshold

    def classify(self, hand: Hand) -> Classification:
        gesture_type = self.detect_type(hand)
        return Classification(type=gesture_type, confidence=base_confidence(gesture_type))

    def detect_type(self, hand: Hand) -> GestureType:
        fingers = finger_states(hand)
        logger.trace("Finger states: {} (extended={})", fingers, fingers.count)

        if fingers.count == 0:
            return GestureType.FIST
        if fingers.count == 5:
            return GestureType.OPEN_PALM
        if fingers.only_index:
            return GestureType.POINTING

        if thumb_index_distance(hand) < self._pinch_threshold:
            return GestureType.PINCH

        return GestureType.NONE

    def recognize(self, hands: list[Hand], timestamp: int) -> Gesture:
        """Build a gesture event from the first detected hand.

        No hands yields the ``none`` sentinel with zero confidence.
        """
        if not hands:
            return Gesture.empty(timestamp)

        hand = hands[0]
        result = self.classify(hand)
        return Gesture(
            type=result.type,
            confidence=result.confidence,
            hand=hand,
            timestamp=timestamp,
        )
