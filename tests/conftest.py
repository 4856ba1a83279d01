"""Shared test fixtures for HandCue."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable

import numpy as np
import pytest

from handcue.types import (
    DIGIT_JOINTS,
    DIGIT_TIPS,
    INDEX_TIP,
    LANDMARK_DIMS,
    NUM_HAND_LANDMARKS,
    THUMB_TIP,
    Hand,
    ProviderOptions,
)

OPEN = (True, True, True, True, True)
CLOSED = (False, False, False, False, False)
INDEX_ONLY = (False, True, False, False, False)


def build_hand(
    extended: tuple[bool, bool, bool, bool, bool] = OPEN,
    pinch: bool = False,
    offset: tuple[float, float] = (0.0, 0.0),
    handedness: str = "Right",
) -> Hand:
    """Synthetic hand whose digit extension matches `extended` (thumb → pinky).

    Joints sit at y=0.5; extended tips at y=0.4, curled tips at y=0.6.
    Digits are spread 0.08 apart in x so thumb and index tips are far
    apart unless `pinch` moves the index tip next to the thumb tip.
    """
    lm = np.full((NUM_HAND_LANDMARKS, LANDMARK_DIMS), 0.5, dtype=np.float32)
    lm[:, 2] = 0.0
    lm[0] = [0.45, 0.8, 0.0]  # wrist
    for digit, (tip, joint) in enumerate(zip(DIGIT_TIPS, DIGIT_JOINTS)):
        x = 0.3 + digit * 0.08
        lm[joint] = [x, 0.5, 0.0]
        lm[tip] = [x, 0.4 if extended[digit] else 0.6, 0.0]
        lm[tip - 3 if tip != THUMB_TIP else 1] = [x, 0.65, 0.0]  # MCP / CMC
    if pinch:
        lm[INDEX_TIP, 0] = lm[THUMB_TIP, 0] + 0.02
        lm[INDEX_TIP, 1] = lm[THUMB_TIP, 1]
    lm[:, 0] += offset[0]
    lm[:, 1] += offset[1]
    return Hand(landmarks=lm, handedness=handedness)


class FakeLandmarkProvider:
    """In-memory provider answering through a single result callback.

    With ``auto=True`` each submission is answered on the next loop
    iteration using queued responses (or ``default_hands``). With
    ``auto=False`` the test answers explicitly through ``respond``.
    """

    def __init__(
        self,
        responses: list[list[Hand]] | None = None,
        default_hands: list[Hand] | None = None,
        auto: bool = True,
        fail_configure: bool = False,
    ) -> None:
        self.responses: deque[list[Hand]] = deque(responses or [])
        self.default_hands = default_hands or []
        self.auto = auto
        self.fail_configure = fail_configure
        self.fail_next_submit = False
        self.options: ProviderOptions | None = None
        self.callback: Callable[[int, list[Hand]], None] | None = None
        self.callback_registrations = 0
        self.submitted: list[int] = []
        self.closed = False

    def configure(self, options: ProviderOptions) -> None:
        if self.fail_configure:
            raise RuntimeError("model asset missing")
        self.options = options

    def on_result(self, callback: Callable[[int, list[Hand]], None]) -> None:
        self.callback = callback
        self.callback_registrations += 1

    def submit_frame(self, image: np.ndarray, ticket: int) -> None:
        if self.fail_next_submit:
            self.fail_next_submit = False
            raise RuntimeError("graph error")
        self.submitted.append(ticket)
        if self.auto:
            hands = self.responses.popleft() if self.responses else self.default_hands
            asyncio.get_running_loop().call_soon(self.callback, ticket, hands)

    def respond(self, ticket: int, hands: list[Hand]) -> None:
        assert self.callback is not None
        self.callback(ticket, hands)

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def make_hand() -> Callable[..., Hand]:
    return build_hand


@pytest.fixture
def open_palm_hand() -> Hand:
    return build_hand(OPEN)


@pytest.fixture
def fist_hand() -> Hand:
    return build_hand(CLOSED)


@pytest.fixture
def pointing_hand() -> Hand:
    return build_hand(INDEX_ONLY)


@pytest.fixture
def fake_provider() -> FakeLandmarkProvider:
    return FakeLandmarkProvider()


@pytest.fixture
def make_provider() -> Callable[..., FakeLandmarkProvider]:
    return FakeLandmarkProvider


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rgba_frame() -> np.ndarray:
    """Generate a dummy 480x640 RGBA frame."""
    return np.random.default_rng(42).integers(0, 256, (480, 640, 4), dtype=np.uint8)
