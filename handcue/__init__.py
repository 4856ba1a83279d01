"""HandCue — debounced hand gesture events from camera landmarks.

The core pipeline runs on-device and has no server dependency; see
``backend/`` for the optional streaming API.
"""

from handcue.inference.session import DetectionSession, SessionConfig
from handcue.types import Gesture, GestureType, Hand, ProviderOptions, SessionState

__version__ = "0.1.0"

__all__ = [
    "DetectionSession",
    "Gesture",
    "GestureType",
    "Hand",
    "ProviderOptions",
    "SessionConfig",
    "SessionState",
]
