"""
Request Context Middleware Module
=================================

Starlette middleware for request tracing.

Features:
- Request ID generation (or propagation of an incoming X-Request-ID)
- Request timing
- Structured request logging

Note:
    Authentication and organization resolution happen in the dependency
    layer; this middleware only prepares per-request log context.
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from stratikey.core.logging import (
    get_logger,
    organization_id_context,
    request_id_context,
    user_id_context,
)

# Initialize logger
logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/", "/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Attach a request id to every request and log its outcome.

    Responsibilities:
    - Generate unique request ID for tracing
    - Reset user/organization log context from previous requests
    - Add X-Request-ID and X-Process-Time response headers
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_context.set(request_id)
        user_id_context.set(None)
        organization_id_context.set(None)

        request.state.request_id = request_id
        request.state.user_id = None
        request.state.organization_id = None

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_processing_error",
                error=str(e),
                path=request.url.path,
                method=request.method,
            )
            raise

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        self._log_request(request, response, process_time)
        return response

    def _log_request(self, request: Request, response: Response, process_time: float) -> None:
        if request.url.path in QUIET_PATHS:
            return

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
            "user_id": getattr(request.state, "user_id", None),
            "organization_id": getattr(request.state, "organization_id", None),
            "ip_address": request.client.host if request.client else None,
        }

        if response.status_code >= 500:
            logger.error("request_completed_with_error", **log_data)
        elif response.status_code >= 400:
            logger.warning("request_completed_with_client_error", **log_data)
        else:
            logger.info("request_completed", **log_data)
