"""Application configuration package.

This package contains application-specific configuration modules that use
generic components from other packages.

Modules:
    rate_limits: Route table for API endpoints (uses src/rate_limiter)
"""

from src.config.rate_limits import DEFAULT_RULE, RATE_LIMIT_CONFIG, RATE_LIMIT_RULES

__all__ = ["DEFAULT_RULE", "RATE_LIMIT_CONFIG", "RATE_LIMIT_RULES"]
