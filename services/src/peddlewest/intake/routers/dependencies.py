"""Dependency injection helpers for FastAPI routers."""

from __future__ import annotations

from typing import cast

from fastapi import Header, Request

from ..config import ServiceSettings
from ..export_service import ExportSyncService
from ..http import USER_HEADER
from ..persistence.ledger import RecordLedger
from ..wizard import StepController

__all__ = [
    "get_controller",
    "get_current_user",
    "get_exporter",
    "get_ledger",
    "get_settings",
]


def get_settings(request: Request) -> ServiceSettings:
    """Return the service settings configured for the application."""

    return cast(ServiceSettings, request.app.state.settings)


def get_controller(request: Request) -> StepController:
    """Return the wizard controller bound to this process's session."""

    return cast(StepController, request.app.state.controller)


def get_ledger(request: Request) -> RecordLedger:
    return cast(RecordLedger, request.app.state.ledger)


def get_exporter(request: Request) -> ExportSyncService:
    return cast(ExportSyncService, request.app.state.exporter)


def get_current_user(user: str | None = Header(default=None, alias=USER_HEADER)) -> str | None:
    """Return the opaque current-user value supplied by the surrounding system, if any."""

    if user is None:
        return None
    return user.strip() or None
