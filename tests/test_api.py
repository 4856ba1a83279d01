"""Tests for the FastAPI backend — REST endpoints and gesture stream."""

from __future__ import annotations

import asyncio
import base64

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from backend.apps.api.dependencies import get_provider_factory
from backend.apps.api.main import create_app
from backend.apps.api.routes import decode_frame
from backend.apps.api.schemas import GestureEvent
from handcue.types import Gesture, GestureType


def _encoded_frame() -> str:
    image = np.full((48, 64, 3), 128, dtype=np.uint8)
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return base64.b64encode(buf.tobytes()).decode("ascii")


@pytest.fixture
def client_factory(make_provider, open_palm_hand):
    """Build a test client whose streams use fake providers."""

    def build(**provider_kwargs) -> TestClient:
        provider_kwargs.setdefault("default_hands", [open_palm_hand])
        app = create_app()
        app.dependency_overrides[get_provider_factory] = lambda: (
            lambda: make_provider(**provider_kwargs)
        )
        # No context manager: lifespan (log file sinks) is not needed here
        return TestClient(app)

    return build


class TestRest:
    """Tests for REST endpoints."""

    def test_health(self, client_factory) -> None:
        response = client_factory().get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["active_streams"] == 0
        assert set(body) == {"status", "version", "active_streams", "uptime_seconds"}

    def test_request_id_header(self, client_factory) -> None:
        client = client_factory()
        response = client.get("/api/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert "X-Response-Time-Ms" in response.headers
        assert client.get("/api/health").headers["X-Request-ID"]

    def test_gesture_catalog(self, client_factory) -> None:
        body = client_factory().get("/api/gestures").json()
        names = {g["name"] for g in body["gestures"]}
        assert "open_palm" in names
        assert "swipe_left" in names
        assert body["debounce_ms"] == 100
        pinch = next(g for g in body["gestures"] if g["name"] == "pinch")
        assert pinch["base_confidence"] == 0.8


class TestDecodeFrame:
    """Tests for base64 frame decoding."""

    def test_valid_png(self) -> None:
        frame = decode_frame(_encoded_frame())
        assert frame is not None
        assert frame.shape == (48, 64, 3)

    @pytest.mark.parametrize("data", ["not base64!!", base64.b64encode(b"garbage").decode()])
    def test_invalid_data(self, data: str) -> None:
        assert decode_frame(data) is None


class TestStream:
    """Tests for the WebSocket gesture stream."""

    def test_frame_produces_gesture(self, client_factory) -> None:
        with client_factory().websocket_connect("/api/ws/stream") as ws:
            ws.send_text(_encoded_frame())
            message = ws.receive_json()

        assert message["frame_id"] == 1
        assert message["state"] == "detecting"
        assert message["gesture"]["type"] == "open_palm"
        assert message["gesture"]["confidence"] == pytest.approx(0.9)
        assert message["gesture"]["handedness"] == "Right"
        assert set(message) == {"frame_id", "gesture", "state", "fps", "processing_ms"}
        assert message["processing_ms"] >= 0.0

    def test_invalid_image(self, client_factory) -> None:
        with client_factory().websocket_connect("/api/ws/stream") as ws:
            ws.send_text("not an image")
            assert ws.receive_json() == {"error": "Invalid image data"}

    def test_stop_control(self, client_factory) -> None:
        with client_factory().websocket_connect("/api/ws/stream") as ws:
            ws.send_text('{"action": "stop"}')
            assert ws.receive_json() == {"state": "ready"}

            ws.send_text(_encoded_frame())
            message = ws.receive_json()
            assert message["gesture"] is None
            assert message["state"] == "ready"

            ws.send_text('{"action": "start"}')
            assert ws.receive_json() == {"state": "detecting"}

    def test_unknown_action(self, client_factory) -> None:
        with client_factory().websocket_connect("/api/ws/stream") as ws:
            ws.send_text('{"action": "jump"}')
            assert ws.receive_json() == {"error": "Unknown action: jump"}

    def test_initialization_failure(self, client_factory) -> None:
        with client_factory(fail_configure=True).websocket_connect("/api/ws/stream") as ws:
            assert ws.receive_json() == {"error": "Failed to initialize gesture detection"}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()
            assert exc_info.value.code == 1011


class TestLifespan:
    """Tests for startup helpers."""

    def test_model_prefetch_failure_is_not_fatal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import backend.apps.api.main as main_module

        def offline(*args, **kwargs):
            raise OSError("network unreachable")

        monkeypatch.setattr(main_module, "ensure_model", offline)
        asyncio.run(main_module._prefetch_model())


class TestSchemas:
    """Tests for API response models."""

    def test_gesture_event_from_gesture(self, fist_hand) -> None:
        gesture = Gesture(type=GestureType.FIST, confidence=0.912345, hand=fist_hand, timestamp=42)
        assert GestureEvent.from_gesture(gesture).model_dump() == {
            "type": "fist",
            "confidence": 0.9123,
            "handedness": "Right",
            "timestamp": 42,
        }
