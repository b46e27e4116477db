"""FastAPI dependencies shared by the routers."""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from src.core.container import SecurityCore


def get_security_core(request: Request) -> SecurityCore:
    """The SecurityCore built by the application factory."""
    return request.app.state.security_core


def require_admin_token(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    core: SecurityCore = Depends(get_security_core),
) -> None:
    """Reject requests without the configured admin token.

    Raises:
        HTTPException: 403 when the token is missing, wrong, or not configured.
    """
    expected = core.settings.admin_api_token
    if expected is None or x_admin_token is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    if not secrets.compare_digest(
        x_admin_token.encode(), expected.get_secret_value().encode()
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
