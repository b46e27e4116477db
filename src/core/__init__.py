"""Core shared kernel.

This module provides foundations used by every security component:
- Settings (pydantic-settings) and environment detection
- Logging configuration (structlog)
- Counter storage abstraction (Redis, in-process, failover)
- The container that wires components into one SecurityCore

Only config and enums are imported eagerly; storage and container modules are
imported by path to keep package import side-effect free.
"""

from src.core.config import Settings, get_settings
from src.core.enums import Environment

__all__ = ["Environment", "Settings", "get_settings"]
