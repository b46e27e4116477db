"""Rate Limiter configuration models.

This module provides generic configuration models for the rate limiter
component: a sliding-window rule and the route table that resolves a request
path to a rule.

This is a GENERIC component with NO application-specific configuration.
Applications define their own route table (see src/config/rate_limits.py)
and inject it via dependency injection.

Key Design Decisions:
    1. Immutable rules (frozen Pydantic models)
       - Prevents accidental modification at runtime
       - Validation (positive limits and windows) happens at construction,
         so malformed configuration fails at startup, never per request

    2. Route resolution order
       - Exact path match
       - Longest matching prefix (segment aware: "/api/grok" covers
         "/api/grok" and "/api/grok/x" but not "/api/grokked")
       - Default rule

Usage:
    ```python
    from src.rate_limiter.config import RateLimitConfig, RateLimitRule

    config = RateLimitConfig(
        rules={"/api/auth/login": RateLimitRule.per_minutes(5, 15)},
        default=RateLimitRule.per_minutes(300, 1),
    )
    rule = config.resolve("/api/auth/login")
    ```
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RateLimitRule(BaseModel):
    """Sliding-window limit for one route.

    Attributes:
        requests: Maximum requests allowed inside any window.
        window_ms: Window length in milliseconds.

    Examples:
        Login endpoint (5 requests per 15 minutes):
        ```python
        RateLimitRule(requests=5, window_ms=15 * 60 * 1000)
        ```
    """

    model_config = ConfigDict(frozen=True)

    requests: int = Field(..., gt=0, description="Maximum requests per window")
    window_ms: int = Field(..., gt=0, description="Window length in milliseconds")

    @property
    def window_seconds(self) -> float:
        """Window length in seconds."""
        return self.window_ms / 1000

    @classmethod
    def per_minutes(cls, requests: int, minutes: float) -> "RateLimitRule":
        """Build a rule from a limit per N minutes."""
        return cls(requests=requests, window_ms=int(minutes * 60 * 1000))

    @classmethod
    def per_hours(cls, requests: int, hours: float) -> "RateLimitRule":
        """Build a rule from a limit per N hours."""
        return cls(requests=requests, window_ms=int(hours * 60 * 60 * 1000))


class RateLimitConfig(BaseModel):
    """Route table: path or prefix to rule, plus a default.

    Keys must be absolute paths. A key matches a request path exactly, or as
    a prefix when the request path continues with "/".
    """

    model_config = ConfigDict(frozen=True)

    rules: dict[str, RateLimitRule] = Field(
        default_factory=dict, description="Rules keyed by path or path prefix"
    )
    default: RateLimitRule = Field(..., description="Rule for unmatched paths")

    @field_validator("rules")
    @classmethod
    def validate_paths(cls, v: dict[str, RateLimitRule]) -> dict[str, RateLimitRule]:
        """
        Reject route keys that cannot match a request path.

        Args:
            v: Rules keyed by path.

        Returns:
            dict[str, RateLimitRule]: Rules with trailing slashes removed.

        Raises:
            ValueError: If a key is empty or not absolute.
        """
        normalized: dict[str, RateLimitRule] = {}
        for path, rule in v.items():
            if not path.startswith("/"):
                raise ValueError(f"Route key must start with '/': {path!r}")
            normalized[path.rstrip("/") or "/"] = rule
        return normalized

    def resolve(self, path: str) -> tuple[str, RateLimitRule]:
        """Find the rule for a request path.

        Args:
            path: Request path (e.g., "/api/grok/symptom-analysis").

        Returns:
            Tuple of (matched route key or "default", rule).
        """
        rule = self.rules.get(path)
        if rule is not None:
            return path, rule

        best: str | None = None
        for prefix in self.rules:
            matches = prefix == "/" or path.startswith(prefix + "/")
            if matches and (best is None or len(prefix) > len(best)):
                best = prefix

        if best is not None:
            return best, self.rules[best]
        return "default", self.default
