"""Rate Limiter middleware for FastAPI.

This module provides HTTP middleware to enforce rate limits on all incoming
requests. It calls the Rate Limiter service before the request reaches an
endpoint.

SOLID Principles:
    - S: Single responsibility (HTTP interception and rate limit enforcement)
    - O: Open for extension (new routes via configuration, not code changes)
    - D: Depends on RateLimiterService (injected)

Key Design Decisions:
    1. Middleware is HTTP-layer only (no business logic)
       - Extracts client identity and path
       - Calls the Rate Limiter service for a decision
       - Returns HTTP 429 or proceeds to the endpoint

    2. Client identity
       - First X-Forwarded-For entry, then X-Real-IP, then the socket peer,
         then "unknown"

    3. Standard HTTP rate limit headers
       - Retry-After: Seconds until the window resets (RFC 6585)
       - X-RateLimit-Limit: Maximum requests allowed in the window
       - X-RateLimit-Remaining: Requests remaining after this one
       - X-RateLimit-Reset: Epoch milliseconds when the window resets

Usage:
    ```python
    from src.rate_limiter.middleware import RateLimitMiddleware

    app.add_middleware(RateLimitMiddleware, rate_limiter=rate_limiter)
    ```
"""

import math
import time
from typing import Callable, Optional

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.rate_limiter.service import RateLimiterService, RateLimitResult

logger = structlog.get_logger(__name__)


def get_client_identifier(request: Request) -> str:
    """Extract the client identity used as the rate limit key.

    Args:
        request: HTTP request.

    Returns:
        Client IP address, or "unknown".

    Examples:
        Behind proxy:
        >>> get_client_identifier(request_with_forwarded_for)
        "203.0.113.45"
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for Rate Limiter.

    Intercepts all HTTP requests before they reach endpoints. Returns HTTP
    429 when rate limited, otherwise forwards the request and sets the
    informational X-RateLimit-* headers on the response.

    Responsibilities:
        - Extract client identity and path
        - Call RateLimiterService.check
        - Return HTTP 429 with retry guidance when denied
        - Add rate limit headers to all responses

    Does NOT contain:
        - Window logic (delegated to the service)
        - Storage logic (delegated to the counter store)
        - Configuration (delegated to the route table)
    """

    def __init__(self, app: ASGIApp, rate_limiter: RateLimiterService):
        """Initialize rate limit middleware.

        Args:
            app: FastAPI/Starlette application instance.
            rate_limiter: Rate Limiter service.
        """
        super().__init__(app)
        self.rate_limiter = rate_limiter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Intercept request and enforce rate limits.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/endpoint in chain.

        Returns:
            HTTP response (429 if rate limited, otherwise from endpoint).

        Note:
            Rate limiting failures never break the request: any error in the
            check is logged and the request proceeds (fail-open).
        """
        identifier = get_client_identifier(request)
        path = request.url.path

        result: Optional[RateLimitResult] = None
        try:
            result = await self.rate_limiter.check(identifier, path)
        except Exception as e:
            # Fail-open: Allow request if middleware check fails
            logger.error(
                "rate_limit_middleware_failed",
                path=path,
                identifier=identifier,
                error_type=type(e).__name__,
                error_message=str(e),
            )

        if result is not None and not result.allowed:
            return self._rate_limit_response(result)

        response = await call_next(request)
        if result is not None:
            response.headers.update(self._rate_limit_headers(result))
        return response

    @staticmethod
    def _rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

    def _rate_limit_response(self, result: RateLimitResult) -> JSONResponse:
        """Create HTTP 429 rate limit response.

        Example Response:
            ```json
            {
                "error": "Too many requests",
                "message": "Rate limit exceeded. Please try again later.",
                "retry_after": 900
            }
            ```
        """
        now_ms = int(time.time() * 1000)
        retry_after = max(1, math.ceil((result.reset_at - now_ms) / 1000))
        headers = {"Retry-After": str(retry_after), **self._rate_limit_headers(result)}
        return JSONResponse(
            status_code=429,
            content={
                "error": "Too many requests",
                "message": "Rate limit exceeded. Please try again later.",
                "retry_after": retry_after,
            },
            headers=headers,
        )
