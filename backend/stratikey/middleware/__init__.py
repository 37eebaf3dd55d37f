"""
Middleware package: request tracing, security headers, rate limiting.
"""

from stratikey.middleware.rate_limit import (
    FixedWindowLimiter,
    RateLimitMiddleware,
    TenantRateLimiter,
    get_tenant_rate_limiter,
)
from stratikey.middleware.request_context import RequestContextMiddleware
from stratikey.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "FixedWindowLimiter",
    "RateLimitMiddleware",
    "TenantRateLimiter",
    "get_tenant_rate_limiter",
    "RequestContextMiddleware",
    "SecurityHeadersMiddleware",
]
