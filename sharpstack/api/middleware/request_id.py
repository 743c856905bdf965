"""
Request correlation for the HTTP layer.

Every request gets an id (the caller's X-Request-ID or a fresh uuid4). It is
echoed back on the response and bound to `request_id_var`, so every log line
written while handling the request carries it.
"""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sharpstack.config import get_settings
from sharpstack.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request; warn on slow ones."""

    def __init__(self, app, slow_request_ms: Optional[float] = None):
        super().__init__(app)
        if slow_request_ms is None:
            slow_request_ms = get_settings().slow_request_ms
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        response.headers[REQUEST_ID_HEADER] = request_id
        if elapsed_ms > self.slow_request_ms:
            logger.warning(
                "Slow request",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
            )
        return response
