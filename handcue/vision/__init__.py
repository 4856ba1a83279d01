"""Vision module — MediaPipe landmark provider and frame preparation."""

from handcue.vision.preprocessor import FramePreprocessor, PreprocessConfig
from handcue.vision.provider import MediaPipeLandmarkProvider

__all__ = ["FramePreprocessor", "MediaPipeLandmarkProvider", "PreprocessConfig"]
