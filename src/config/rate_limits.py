"""Application rate limit configuration.

This module defines the route table for the platform's HTTP API. It uses the
generic rate limiter component from src/rate_limiter.

Architecture:
    - src/rate_limiter/: Generic, reusable rate limiter component
    - src/config/rate_limits.py: Application-specific route rules (THIS FILE)

Resolution: exact path, then longest matching prefix, then DEFAULT_RULE.

Usage:
    ```python
    from src.config.rate_limits import RATE_LIMIT_CONFIG

    route, rule = RATE_LIMIT_CONFIG.resolve("/api/grok/symptom-analysis")
    ```
"""

from src.rate_limiter.config import RateLimitConfig, RateLimitRule

# =============================================================================
# Route Rules
# =============================================================================
#
# Design Principles:
#   1. Credential and account endpoints are strictest (brute force, abuse)
#   2. Expensive AI endpoints are limited per hour
#   3. Public catalog reads are generous per minute
#   4. Everything under /api not listed falls back to the /api prefix rule
# =============================================================================

RATE_LIMIT_RULES: dict[str, RateLimitRule] = {
    # Authentication and account management
    "/api/auth/login": RateLimitRule.per_minutes(5, 15),
    "/api/auth/register": RateLimitRule.per_hours(3, 1),
    "/api/auth/mfa/setup": RateLimitRule.per_hours(3, 1),
    "/api/settings/password": RateLimitRule.per_hours(3, 1),
    "/api/settings/delete-account": RateLimitRule.per_hours(1, 24),
    # AI analysis
    "/api/grok/symptom-analysis": RateLimitRule.per_hours(10, 1),
    "/api/grok": RateLimitRule.per_hours(15, 1),
    # Catalog reads
    "/api/herbs": RateLimitRule.per_minutes(60, 1),
    "/api/formulas": RateLimitRule.per_minutes(60, 1),
    "/api/conditions": RateLimitRule.per_minutes(60, 1),
    "/api/practitioners": RateLimitRule.per_minutes(60, 1),
    "/api/images": RateLimitRule.per_minutes(100, 1),
    # User-facing forms and profile
    "/api/contact": RateLimitRule.per_hours(3, 1),
    "/api/profile": RateLimitRule.per_minutes(20, 1),
    # Mobile clients
    "/api/mobile/register-device": RateLimitRule.per_hours(5, 1),
    "/api/mobile/unregister-device": RateLimitRule.per_hours(10, 1),
    "/api/mobile/sync": RateLimitRule.per_minutes(30, 1),
    "/api/mobile/config": RateLimitRule.per_minutes(60, 1),
    # Admin
    "/api/admin/account-lockout": RateLimitRule.per_minutes(50, 1),
    "/api/admin/security-breach": RateLimitRule.per_minutes(10, 1),
    "/api/admin/security-events": RateLimitRule.per_minutes(100, 1),
    "/api/admin/api-logs": RateLimitRule.per_minutes(100, 1),
    # Health checks
    "/api/health": RateLimitRule.per_minutes(120, 1),
    "/api/health/cert": RateLimitRule.per_minutes(60, 1),
    # Catch-all for the API
    "/api": RateLimitRule.per_minutes(100, 1),
}

DEFAULT_RULE = RateLimitRule.per_minutes(300, 1)

RATE_LIMIT_CONFIG = RateLimitConfig(rules=RATE_LIMIT_RULES, default=DEFAULT_RULE)
