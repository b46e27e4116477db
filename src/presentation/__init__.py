"""Presentation layer - HTTP endpoints.

This layer contains the FastAPI routers. It is thin: handlers call the
security components held by the SecurityCore and translate results to HTTP
responses. Request-time enforcement lives in RateLimitMiddleware.

Structure:
- routers/system.py: Health check
- routers/admin.py: Token-protected security administration
"""
