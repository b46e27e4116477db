"""Generic Rate Limiter package.

This package provides a sliding-window rate limiter built on the shared
CounterStore abstraction (Redis with in-process fallback).

**IMPORTANT**: This is a GENERIC component with NO application-specific
configuration. Applications provide their own route table via dependency
injection (see src/config/rate_limits.py).

Architecture:
    - config.py: RateLimitRule and RateLimitConfig (route table resolution)
    - service.py: RateLimiterService (check, get_info, clear_all)
    - middleware.py: FastAPI middleware integration (429 + X-RateLimit-* headers)
    - factory.py: Builds the service from settings

Quick Start:
    ```python
    from src.rate_limiter import RateLimiterService
    from src.config.rate_limits import RATE_LIMIT_CONFIG

    rate_limiter = RateLimiterService(store, RATE_LIMIT_CONFIG)
    result = await rate_limiter.check(client_ip, request.url.path)
    if not result.allowed:
        raise HTTPException(status_code=429, detail="Rate limit exceeded")
    ```
"""

from src.rate_limiter.config import RateLimitConfig, RateLimitRule
from src.rate_limiter.service import RateLimiterService, RateLimitInfo, RateLimitResult

__all__ = [
    "RateLimitConfig",
    "RateLimitInfo",
    "RateLimitResult",
    "RateLimitRule",
    "RateLimiterService",
]
