"""API middleware for request timing, logging, etc."""
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Middleware to track request timing and add request IDs."""

    def __init__(self, app: ASGIApp, slow_request_seconds: float = 1.0):
        super().__init__(app)
        self.slow_request_seconds = slow_request_seconds

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        """Process request with timing."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.3f}"

        if process_time > self.slow_request_seconds:
            logger.warning(
                f"SLOW REQUEST [{request_id}]: "
                f"{request.method} {request.url.path} "
                f"took {process_time:.3f}s"
            )
        else:
            logger.debug(
                f"Request {request_id}: {request.method} {request.url.path} "
                f"completed in {process_time:.3f}s"
            )

        return response
