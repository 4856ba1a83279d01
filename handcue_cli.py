"""HandCue CLI — webcam demo, API server, and environment info.

Usage:
    python handcue_cli.py demo --camera 0
    python handcue_cli.py serve --port 8000
    python handcue_cli.py info
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from loguru import logger

from backend.config import settings
from backend.logging_config import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="handcue",
        description="HandCue — hand gesture events for accessible UI control",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- demo ----
    demo_parser = subparsers.add_parser("demo", help="Run real-time webcam demo")
    demo_parser.add_argument("--camera", type=int, default=settings.camera_index, help="Camera device index")
    demo_parser.add_argument("--min-confidence", type=float, default=settings.min_confidence, help="Report threshold")
    demo_parser.add_argument("--no-swipes", action="store_true", help="Disable swipe detection")
    demo_parser.add_argument("--mirror", action="store_true", help="Mirror the preview (selfie view)")

    # ---- serve ----
    serve_parser = subparsers.add_parser("serve", help="Start the FastAPI API server")
    serve_parser.add_argument("--host", type=str, default=settings.host, help="Host")
    serve_parser.add_argument("--port", type=int, default=settings.port, help="Port")
    serve_parser.add_argument("--workers", type=int, default=settings.workers, help="Number of workers")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    # ---- info ----
    subparsers.add_parser("info", help="Show system information")

    args = parser.parse_args()

    if args.command == "demo":
        setup_logging(args.log_level)
        cmd_demo(args)
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "info":
        cmd_info()


def cmd_demo(args: argparse.Namespace) -> None:
    """Run real-time webcam demo."""
    from dataclasses import replace

    from handcue.errors import InitializationError

    config = replace(
        settings.session_config(),
        min_confidence=args.min_confidence,
        enable_swipes=not args.no_swipes,
    )
    try:
        asyncio.run(_demo_loop(args.camera, config, args.mirror))
    except InitializationError as e:
        logger.error("Gesture detection unavailable: {}", e)
        sys.exit(1)


async def _demo_loop(camera: int, config, mirror: bool) -> None:  # noqa: ANN001
    import cv2

    from handcue.inference.session import DetectionSession
    from handcue.types import Gesture
    from handcue.vision.provider import MediaPipeLandmarkProvider

    def on_gesture(gesture: Gesture) -> None:
        logger.info("Gesture: {} ({:.0%})", gesture.type.value, gesture.confidence)

    provider = MediaPipeLandmarkProvider(
        model_path=settings.hand_model_path,
        model_url=settings.hand_model_url,
    )

    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        logger.error("Cannot open camera {}", camera)
        sys.exit(1)
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, settings.camera_width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, settings.camera_height)

    try:
        async with DetectionSession(
            provider,
            config=config,
            on_gesture=on_gesture,
            provider_options=settings.provider_options(),
        ) as session:
            session.start()
            logger.info("Press 'q' to quit")

            while True:
                ret, frame = cap.read()
                if not ret:
                    logger.warning("Camera stopped delivering frames")
                    break

                rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                await session.process_frame(rgb)

                # Draw landmarks
                h, w = frame.shape[:2]
                gesture = session.current_gesture
                if gesture is not None:
                    for x, y, _ in gesture.hand.landmarks:
                        cv2.circle(frame, (int(x * w), int(y * h)), 4, (99, 102, 241), -1)

                if mirror:
                    frame = cv2.flip(frame, 1)

                label = f"{gesture.type.value}: {gesture.confidence:.0%}" if gesture else "-"
                stats = session.stats
                cv2.putText(
                    frame,
                    f"{label} | frames {stats.frames_received} | events {stats.gestures_emitted}",
                    (10, 30),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.7,
                    (0, 255, 0),
                    2,
                )
                cv2.putText(
                    frame,
                    f"FPS {stats.fps:.1f} | processing {stats.last_processing_ms:.1f} ms "
                    f"(avg {stats.mean_processing_ms:.1f})",
                    (10, 60),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.6,
                    (255, 255, 0),
                    1,
                )

                cv2.imshow("HandCue", frame)
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break
    finally:
        cap.release()
        cv2.destroyAllWindows()


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI API server (optional server mode)."""
    import uvicorn

    logger.info("Starting HandCue API server...")
    uvicorn.run(
        "backend.apps.api.main:app",
        host=args.host,
        port=args.port,
        workers=args.workers,
        reload=args.reload,
        log_level="info",
    )


def cmd_info() -> None:
    """Show system information."""
    import platform

    import cv2
    import numpy as np

    try:
        import mediapipe as mp
        mp_ver = mp.__version__
    except ImportError:
        mp_ver = "not installed"

    print(f"""
HandCue — Gesture Events for Accessible UI
══════════════════════════════════════════════
  Python:         {platform.python_version()}
  Platform:       {platform.system()} {platform.machine()}
  MediaPipe:      {mp_ver}
  OpenCV:         {cv2.__version__}
  NumPy:          {np.__version__}
  Model:          {settings.hand_model_path}
  Min confidence: {settings.min_confidence}
  Debounce:       {settings.debounce_ms} ms
  Swipe cooldown: {settings.swipe_cooldown_ms} ms
""")


if __name__ == "__main__":
    main()
