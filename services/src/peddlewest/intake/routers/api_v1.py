"""API v1 aggregate router."""

from __future__ import annotations

from fastapi import APIRouter

from .admin import router as admin_router
from .wizard import router as wizard_router

router = APIRouter(prefix="/api/v1")
router.include_router(wizard_router)
router.include_router(admin_router)

__all__ = ["router"]
