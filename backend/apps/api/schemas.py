"""HandCue — Pydantic API Schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from handcue.types import Gesture

# ── Gestures ─────────────────────────────────────────────────


class GestureEvent(BaseModel):
    type: str = Field(..., description="Recognized gesture label")
    confidence: float = Field(..., ge=0.0, le=1.0)
    handedness: str = ""
    timestamp: int = Field(..., description="Wall-clock time in ms")

    @classmethod
    def from_gesture(cls, gesture: Gesture) -> GestureEvent:
        return cls(
            type=gesture.type.value,
            confidence=round(gesture.confidence, 4),
            handedness=gesture.hand.handedness,
            timestamp=gesture.timestamp,
        )


class StreamMessage(BaseModel):
    frame_id: int
    gesture: GestureEvent | None = None
    state: str
    fps: float = Field(0.0, description="Incoming frame rate seen by the session")
    processing_ms: float = Field(0.0, description="Submit-to-classify time of the latest processed frame")


class GestureInfo(BaseModel):
    name: str
    base_confidence: float = Field(..., ge=0.0, le=1.0)
    swipe: bool = False


class GestureCatalog(BaseModel):
    gestures: list[GestureInfo] = Field(default_factory=list)
    min_confidence: float
    debounce_ms: int
    swipe_cooldown_ms: int


# ── Health ───────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    active_streams: int
    uptime_seconds: float
