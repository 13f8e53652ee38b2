"""Router package exports."""

from __future__ import annotations

from .admin import router as admin_router
from .api_v1 import router as api_router
from .wizard import router as wizard_router

__all__ = ["admin_router", "api_router", "wizard_router"]
