# ============================================================
#  HandCue — HTTP Middleware
# ============================================================
from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each HTTP request with an X-Request-ID and log its latency.

    WebSocket traffic bypasses ``BaseHTTPMiddleware``; streams log their
    own connect/disconnect events.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.debug(
                "{} {} → {} in {:.1f} ms",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.1f}"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response
