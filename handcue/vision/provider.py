"""MediaPipe-based asynchronous hand landmark provider.

Wraps the MediaPipe Tasks Hand Landmarker in live-stream mode: frames are
queued with ``submit_frame`` and results arrive later, on a MediaPipe
worker thread, through a single result callback. Each frame's ticket is
used as its stream timestamp and comes back with the result.
"""

from __future__ import annotations

import asyncio
import urllib.request
from pathlib import Path
from typing import Any

import numpy as np
from loguru import logger

from handcue.types import LANDMARK_DIMS, NUM_HAND_LANDMARKS, Hand, ProviderOptions, ResultCallback
from handcue.vision.preprocessor import FramePreprocessor, PreprocessConfig

HAND_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/latest/hand_landmarker.task"
)
HAND_MODEL_PATH = "models/hand_landmarker.task"


def ensure_model(path: str | Path, url: str = HAND_MODEL_URL) -> Path:
    """Download the landmarker model if it is not on disk yet."""
    path = Path(path)
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model → {}", path)
        urllib.request.urlretrieve(url, str(path))
        logger.info("Downloaded {} ({:.1f} MB)", path.name, path.stat().st_size / (1024 * 1024))
    return path


def hands_from_result(result: Any) -> list[Hand]:
    """Convert a ``HandLandmarkerResult`` into ``Hand`` objects."""
    hands: list[Hand] = []
    handedness = getattr(result, "handedness", None) or []
    for idx, hand_lms in enumerate(result.hand_landmarks or []):
        landmarks = np.array([[lm.x, lm.y, lm.z] for lm in hand_lms], dtype=np.float32)
        if landmarks.shape != (NUM_HAND_LANDMARKS, LANDMARK_DIMS):
            logger.warning("Skipping hand {} with unexpected landmark shape {}", idx, landmarks.shape)
            continue

        label = f"Unknown_{idx}"
        if idx < len(handedness) and handedness[idx]:
            label = handedness[idx][0].category_name or label

        hands.append(Hand(landmarks=landmarks, handedness=label))
    return hands


class MediaPipeLandmarkProvider:
    """Live-stream hand landmark provider backed by MediaPipe Tasks.

    Results are handed to the registered callback on the event loop that
    was running when ``configure`` was called, never on MediaPipe's thread.

    ``model_complexity`` has no counterpart in the Tasks landmarker, which
    ships a single model; it is validated and logged only.

    Usage:
        >>> provider = MediaPipeLandmarkProvider()
        >>> provider.on_result(lambda ticket, hands: ...)
        >>> provider.configure(ProviderOptions(max_hands=1))  # inside a running loop
        >>> provider.submit_frame(rgba_frame, ticket=1)
        >>> provider.close()
    """

    def __init__(
        self,
        model_path: str | Path = HAND_MODEL_PATH,
        model_url: str = HAND_MODEL_URL,
        preprocess_config: PreprocessConfig | None = None,
    ) -> None:
        self._model_path = Path(model_path)
        self._model_url = model_url
        self._preprocessor = FramePreprocessor(preprocess_config)
        self._landmarker: Any = None
        self._callback: ResultCallback | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False

    def on_result(self, callback: ResultCallback) -> None:
        if self._callback is not None:
            raise RuntimeError("A result callback is already registered")
        self._callback = callback

    def configure(self, options: ProviderOptions) -> None:
        """Create the landmarker.

        Must be called from within a running asyncio event loop.

        Raises:
            RuntimeError: If no event loop is running or the provider is closed.
        """
        if self._closed:
            raise RuntimeError("Provider is closed")
        self._loop = asyncio.get_running_loop()

        from mediapipe.tasks.python import BaseOptions
        from mediapipe.tasks.python.vision import (
            HandLandmarker,
            HandLandmarkerOptions,
            RunningMode,
        )

        model_path = ensure_model(self._model_path, self._model_url)
        self._landmarker = HandLandmarker.create_from_options(
            HandLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=str(model_path)),
                running_mode=RunningMode.LIVE_STREAM,
                num_hands=options.max_hands,
                min_hand_detection_confidence=options.min_detection_confidence,
                min_hand_presence_confidence=options.min_detection_confidence,
                min_tracking_confidence=options.min_tracking_confidence,
                result_callback=self._handle_result,
            )
        )
        logger.info(
            "MediaPipe hand landmarker ready | max_hands={} complexity={} det={:.2f} track={:.2f}",
            options.max_hands,
            options.model_complexity,
            options.min_detection_confidence,
            options.min_tracking_confidence,
        )

    def submit_frame(self, image: np.ndarray, ticket: int) -> None:
        """Queue a frame; its result arrives later tagged with `ticket`.

        Raises:
            RuntimeError: If the provider is not configured.
            ValueError: If the frame is invalid.
        """
        if self._landmarker is None:
            raise RuntimeError("Provider not configured. Call configure() first.")

        import mediapipe as mp

        rgb = self._preprocessor.process(image)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        self._landmarker.detect_async(mp_image, ticket)

    def _handle_result(self, result: Any, output_image: Any, timestamp_ms: int) -> None:
        """MediaPipe callback; runs on a MediaPipe thread."""
        if self._closed or self._callback is None or self._loop is None:
            return
        hands = hands_from_result(result)
        try:
            self._loop.call_soon_threadsafe(self._callback, timestamp_ms, hands)
        except RuntimeError:
            logger.debug("Event loop closed; dropping result for ticket {}", timestamp_ms)

    def close(self) -> None:
        """Release MediaPipe resources."""
        self._closed = True
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None

    def __enter__(self) -> MediaPipeLandmarkProvider:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
