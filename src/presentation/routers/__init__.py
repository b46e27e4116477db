"""Non-versioned routers.

System endpoints (health) and the security admin API.
"""

from src.presentation.routers.admin import admin_router
from src.presentation.routers.system import system_router

__all__ = ["admin_router", "system_router"]
