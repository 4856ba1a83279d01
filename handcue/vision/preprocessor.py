"""Frame preparation for the landmark provider.

Validates camera frames, drops the alpha channel, optionally mirrors and
downscales, and writes the result into a reusable RGB scratch buffer.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass(frozen=True, slots=True)
class PreprocessConfig:
    """Configuration for frame preparation.

    Attributes:
        max_dimension: Maximum dimension; downscale if exceeded.
        flip_horizontal: Mirror the frame (selfie view). Mirroring swaps
            the reported left/right swipe directions.
    """
    max_dimension: int = 1280
    flip_horizontal: bool = False


class FramePreprocessor:
    """Convert RGBA/RGB camera frames into the provider's RGB scratch buffer.

    The scratch buffer is reused and overwritten on every call: an array
    returned by ``process`` is only valid until the next call.

    Usage:
        >>> preprocessor = FramePreprocessor(PreprocessConfig(max_dimension=640))
        >>> rgb = preprocessor.process(rgba_frame)
    """

    def __init__(self, config: PreprocessConfig | None = None) -> None:
        self._config = config or PreprocessConfig()
        self._scratch: np.ndarray | None = None

    @property
    def config(self) -> PreprocessConfig:
        return self._config

    def process(self, frame: np.ndarray) -> np.ndarray:
        """Prepare a frame.

        Args:
            frame: (H, W, 4) RGBA or (H, W, 3) RGB image, dtype uint8.

        Returns:
            (H', W', 3) RGB view of the scratch buffer.

        Raises:
            ValueError: If frame is invalid.
        """
        self._validate(frame)

        if frame.shape[2] == 4:
            result = cv2.cvtColor(frame, cv2.COLOR_RGBA2RGB)
        else:
            result = frame

        if self._config.flip_horizontal:
            result = cv2.flip(result, 1)

        result = self._resize(result)
        return self._write_scratch(result)

    def _validate(self, frame: np.ndarray) -> None:
        if frame is None:
            raise ValueError("Frame is None")
        if frame.ndim != 3 or frame.shape[2] not in (3, 4):
            raise ValueError(f"Expected (H, W, 4) RGBA or (H, W, 3) RGB frame, got shape {frame.shape}")
        if frame.size == 0:
            raise ValueError("Frame is empty")
        if frame.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {frame.dtype}")

    def _resize(self, frame: np.ndarray) -> np.ndarray:
        h, w = frame.shape[:2]
        max_dim = max(h, w)
        if max_dim > self._config.max_dimension:
            scale = self._config.max_dimension / max_dim
            new_w = int(w * scale)
            new_h = int(h * scale)
            return cv2.resize(frame, (new_w, new_h), interpolation=cv2.INTER_LINEAR)
        return frame

    def _write_scratch(self, frame: np.ndarray) -> np.ndarray:
        if self._scratch is None or self._scratch.shape != frame.shape:
            self._scratch = np.empty(frame.shape, dtype=np.uint8)
        np.copyto(self._scratch, frame)
        return self._scratch
