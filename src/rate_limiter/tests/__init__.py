"""Unit tests for the rate limiter package.

Co-located with the package. Both counter stores are exercised: the
in-process store directly and the Redis store through fakeredis.

Test Organization:
    - test_config.py: Rule validation and route table resolution
    - test_service.py: Sliding window, fail-open, DoS alert, admin helpers
    - test_middleware.py: HTTP 429 responses and X-RateLimit-* headers

Running Tests:
    pytest src/rate_limiter/tests/
"""
