"""System router for non-versioned application endpoints.

Health checks are lightweight and side-effect free; they report which
counter store is serving and whether it is running on the local fallback.
"""

from fastapi import APIRouter, Depends

from src.core.container import SecurityCore
from src.presentation.routers.dependencies import get_security_core
from src.schemas.security_schemas import HealthResponse

system_router = APIRouter(prefix="/api", tags=["System"])


@system_router.get("/health", response_model=HealthResponse)
async def health(core: SecurityCore = Depends(get_security_core)) -> HealthResponse:
    """Health check endpoint for monitoring and load balancers.

    Returns:
        HealthResponse: Status, storage backend name and degraded flag.
    """
    return HealthResponse(
        status="healthy",
        storage=core.store.name,
        degraded=getattr(core.store, "degraded", False),
    )
