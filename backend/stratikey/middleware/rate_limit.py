"""
Rate Limiting Module
====================

In-memory fixed-window rate limiting.

Limits:
- every request, per client IP (middleware, before authentication)
- every request, per active organization
- approval mutations, per active organization, on a longer window

Organization budgets are charged by `TenantRateLimiter` from the
request context dependency, i.e. only once the caller's membership in
that organization has been verified. A client cannot spend another
tenant's budget by naming its id.

Note:
    Counters live in process memory; a multi-process deployment gets
    one budget per worker.
"""

import math
import re
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from stratikey.core.config import settings
from stratikey.core.exceptions import RateLimitError, to_error_envelope
from stratikey.core.logging import get_logger, security_logger

# Initialize logger
logger = get_logger(__name__)

APPROVAL_PATH = re.compile(r"^/api/(assets|tasks)/[^/]+/approval/?$")
EXEMPT_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


class FixedWindowLimiter:
    """
    Counts hits per key inside aligned windows of `window_seconds`.

    Usage:
        limiter = FixedWindowLimiter(max_requests=100, window_seconds=60)
        retry_after = limiter.hit("ip:10.0.0.1")
        if retry_after is not None:
            ...  # reject
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: Dict[str, Tuple[int, int]] = {}

    def hit(self, key: str) -> Optional[int]:
        """
        Record one request for `key`.

        Returns:
            None if allowed, otherwise seconds until the window resets
        """
        now = self._clock()
        window = int(now // self.window_seconds)

        with self._lock:
            current_window, count = self._counters.get(key, (window, 0))
            if current_window != window:
                count = 0
            if count >= self.max_requests:
                reset_at = (window + 1) * self.window_seconds
                return max(1, math.ceil(reset_at - now))
            self._counters[key] = (window, count + 1)

            if len(self._counters) > 10000:
                self._evict(window)
        return None

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def _evict(self, window: int) -> None:
        stale = [k for k, (w, _) in self._counters.items() if w != window]
        for k in stale:
            del self._counters[k]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests over the per-IP budget with a 429 envelope and Retry-After."""

    def __init__(
        self,
        app: ASGIApp,
        general_limiter: Optional[FixedWindowLimiter] = None,
        enabled: Optional[bool] = None,
    ):
        super().__init__(app)
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        self.general_limiter = general_limiter or FixedWindowLimiter(
            settings.RATE_LIMIT_MAX_REQUESTS,
            settings.RATE_LIMIT_WINDOW_SECONDS,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        key = f"ip:{client_ip}"

        retry_after = self.general_limiter.hit(key)
        if retry_after is not None:
            security_logger.log_rate_limit_exceeded(
                key=key,
                endpoint=request.url.path,
                retry_after=retry_after,
            )
            exc = RateLimitError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content=to_error_envelope(exc),
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)


class TenantRateLimiter:
    """
    Per-organization budgets for requests whose membership is verified.

    Usage:
        limiter.check(request, organization_id)  # raises RateLimitError
    """

    def __init__(
        self,
        general_limiter: Optional[FixedWindowLimiter] = None,
        approval_limiter: Optional[FixedWindowLimiter] = None,
        enabled: Optional[bool] = None,
    ):
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        self.general_limiter = general_limiter or FixedWindowLimiter(
            settings.RATE_LIMIT_MAX_REQUESTS,
            settings.RATE_LIMIT_WINDOW_SECONDS,
        )
        self.approval_limiter = approval_limiter or FixedWindowLimiter(
            settings.APPROVAL_RATE_LIMIT_MAX_REQUESTS,
            settings.APPROVAL_RATE_LIMIT_WINDOW_SECONDS,
        )

    def check(self, request: Request, organization_id: str) -> None:
        """
        Charge the organization's budgets for this request.

        Raises:
            RateLimitError: If a budget is exhausted
        """
        if not self.enabled:
            return

        keys = [(self.general_limiter, f"org:{organization_id}")]
        if request.method == "PATCH" and APPROVAL_PATH.match(request.url.path):
            keys.append((self.approval_limiter, f"approval:{organization_id}"))

        for limiter, key in keys:
            retry_after = limiter.hit(key)
            if retry_after is not None:
                security_logger.log_rate_limit_exceeded(
                    key=key,
                    endpoint=request.url.path,
                    retry_after=retry_after,
                )
                raise RateLimitError(retry_after=retry_after)


tenant_rate_limiter = TenantRateLimiter()


def get_tenant_rate_limiter() -> TenantRateLimiter:
    """FastAPI dependency returning the process-wide tenant limiter."""
    return tenant_rate_limiter
