"""
Middleware components for request handling and logging.

Binds a request ID for every request, logs request start/completion and
feeds the HTTP request metrics.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging_config import clear_request_id, get_logger, set_request_id
from .metrics import track_request_metrics

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request and response logging.

    Logs incoming requests and outgoing responses with timing, status codes
    and request IDs, and records request metrics.
    """

    def __init__(self, app: ASGIApp, slow_request_threshold_ms: float = 1000.0) -> None:
        """
        Initialize request logging middleware.

        Args:
            app: ASGI application instance
            slow_request_threshold_ms: Requests slower than this are logged as warnings
        """
        super().__init__(app)
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and log details.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            HTTP response
        """
        request_id = set_request_id(request.headers.get("X-Request-ID") or None)
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            duration = time.perf_counter() - start_time
            duration_ms = duration * 1000
            response.headers["X-Request-ID"] = request_id

            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            track_request_metrics(request.method, endpoint, response.status_code, duration)

            log = logger.warning if duration_ms > self.slow_request_threshold_ms else logger.info
            log(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            return response
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
            )
            raise
        finally:
            clear_request_id()
