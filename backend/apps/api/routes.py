"""HandCue — API Routes.

REST + WebSocket endpoints for gesture streaming.
Every WebSocket connection gets its own DetectionSession.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import TYPE_CHECKING

import cv2
import numpy as np
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from loguru import logger

from backend.apps.api.dependencies import ProviderFactory, get_provider_factory, get_settings
from backend.apps.api.schemas import (
    GestureCatalog,
    GestureEvent,
    GestureInfo,
    HealthResponse,
    StreamMessage,
)
from handcue.classification.rules import base_confidence
from handcue.errors import InitializationError
from handcue.inference.session import DetectionSession
from handcue.types import GestureType

if TYPE_CHECKING:
    from backend.config import Settings

router = APIRouter()

_active_streams = 0


def active_streams() -> int:
    return _active_streams


def decode_frame(data: str) -> np.ndarray | None:
    """Decode a base64 JPEG/PNG into an RGB array; None if undecodable."""
    try:
        img_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None
    if not img_bytes:
        return None
    bgr = cv2.imdecode(np.frombuffer(img_bytes, np.uint8), cv2.IMREAD_COLOR)
    if bgr is None:
        return None
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


# ── Health ───────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Liveness / readiness check."""
    from backend.apps.api.main import get_uptime

    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        active_streams=active_streams(),
        uptime_seconds=round(get_uptime(), 2),
    )


# ── Gesture catalog ──────────────────────────────────────────


@router.get("/gestures", response_model=GestureCatalog, tags=["Gestures"])
async def list_gestures(
    settings: Settings = Depends(get_settings),
) -> GestureCatalog:
    """Gesture types the pipeline can report, with their base confidences."""
    return GestureCatalog(
        gestures=[
            GestureInfo(name=g.value, base_confidence=base_confidence(g), swipe=g.is_swipe)
            for g in GestureType
        ],
        min_confidence=settings.min_confidence,
        debounce_ms=settings.debounce_ms,
        swipe_cooldown_ms=settings.swipe_cooldown_ms,
    )


# ── WebSocket Real-Time Stream ───────────────────────────────


@router.websocket("/ws/stream")
async def websocket_stream(
    ws: WebSocket,
    settings: Settings = Depends(get_settings),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
) -> None:
    """Real-time gesture events over WebSocket.

    Protocol:
      Client → Server: base64-encoded JPEG/PNG frame, or a JSON control
                       message {"action": "start" | "stop"}
      Server → Client: JSON StreamMessage per frame, or {"error": ...}
    """
    global _active_streams

    await ws.accept()
    session = DetectionSession(
        provider_factory(),
        config=settings.session_config(),
        provider_options=settings.provider_options(),
    )

    try:
        await session.initialize()
    except InitializationError:
        await ws.send_json({"error": "Failed to initialize gesture detection"})
        await ws.close(code=1011, reason="Initialization failed")
        session.close()
        return

    session.start()
    _active_streams += 1
    logger.info("WebSocket client connected | active={}", _active_streams)
    frame_count = 0

    try:
        while True:
            data = await ws.receive_text()

            if data.startswith("{"):
                await _handle_control(ws, session, data)
                continue

            frame = decode_frame(data)
            if frame is None:
                await ws.send_json({"error": "Invalid image data"})
                continue

            frame_count += 1
            gesture = await session.process_frame(frame)
            message = StreamMessage(
                frame_id=frame_count,
                gesture=GestureEvent.from_gesture(gesture) if gesture else None,
                state=session.state.name.lower(),
                fps=round(session.stats.fps, 1),
                processing_ms=round(session.stats.last_processing_ms, 2),
            )
            await ws.send_json(message.model_dump())

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected | frames={}", frame_count)
    except Exception as e:
        logger.error("WebSocket error: {}", e)
        await ws.close(code=1011, reason="Internal error")
    finally:
        _active_streams -= 1
        session.close()


async def _handle_control(ws: WebSocket, session: DetectionSession, data: str) -> None:
    try:
        action = json.loads(data).get("action")
    except (json.JSONDecodeError, AttributeError):
        await ws.send_json({"error": "Invalid control message"})
        return

    if action == "start":
        session.start()
    elif action == "stop":
        session.stop()
    else:
        await ws.send_json({"error": f"Unknown action: {action}"})
        return
    await ws.send_json({"state": session.state.name.lower()})
