# ============================================================
#  HandCue — FastAPI Application Factory
# ============================================================
"""
Gesture streaming service:
  • GET /api/health and GET /api/gestures
  • WS /api/ws/stream, one detection session per connection
  • request ID / latency middleware and CORS
  • hand landmarker model fetched at startup so the first stream does not block

The handcue package runs without this server; it is an optional front end.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger

from backend.apps.api.middleware import RequestContextMiddleware
from backend.apps.api.routes import active_streams
from backend.apps.api.routes import router as api_router
from backend.config import settings
from backend.logging_config import setup_logging
from handcue.vision.provider import ensure_model

_start_time: float = time.time()


def get_uptime() -> float:
    return time.time() - _start_time


async def _prefetch_model() -> None:
    try:
        await asyncio.to_thread(ensure_model, settings.hand_model_path, settings.hand_model_url)
    except OSError as e:
        # Streams will report initialization failure until the model is present
        logger.warning("Hand landmarker model unavailable at startup: {}", e)


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ANN001
    global _start_time
    _start_time = time.time()
    setup_logging()
    logger.info("{} v{} starting | env={}", settings.app_name, settings.app_version, settings.app_env)
    if settings.prefetch_model:
        await _prefetch_model()
    yield
    logger.info(
        "{} stopping after {:.0f}s | open streams={}",
        settings.app_name,
        get_uptime(),
        active_streams(),
    )


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "**HandCue** streams debounced hand gesture events for "
            "camera-driven accessible UI control.\n\n"
            "Frames are processed in memory and never stored."
        ),
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
