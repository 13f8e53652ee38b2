"""Administrative ledger endpoints: list, export, and clear submitted records."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from ..config import ServiceSettings
from ..errors import LocalDeliveryError
from ..export_service import ExportSyncService
from ..http import raise_export_write_failed
from ..models.export import ExportSummary
from ..models.record import RECORD_COLUMNS
from ..persistence.ledger import RecordLedger
from .dependencies import get_current_user, get_exporter, get_ledger, get_settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class RecordListResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    count: int
    columns: list[str]
    records: list[dict[str, str]]


class ClearResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cleared: int


@router.get("/records", response_model=RecordListResponse)
def list_records(ledger: RecordLedger = Depends(get_ledger)) -> RecordListResponse:
    """Return every submitted record in ledger order."""

    records = ledger.all()
    return RecordListResponse(
        count=len(records),
        columns=list(RECORD_COLUMNS),
        records=[record.as_row() for record in records],
    )


@router.post("/export", response_model=ExportSummary)
async def export_records(
    ledger: RecordLedger = Depends(get_ledger),
    exporter: ExportSyncService = Depends(get_exporter),
    settings: ServiceSettings = Depends(get_settings),
    user: str | None = Depends(get_current_user),
) -> ExportSummary:
    """Export the whole ledger; remote delivery is attempted on a best-effort basis."""

    records = await asyncio.to_thread(ledger.all)
    try:
        result = await exporter.export_and_sync(records, trigger="admin")
    except LocalDeliveryError as exc:
        raise_export_write_failed(
            message=exc.message,
            details=exc.details,
            diagnostics_root=settings.diagnostics_root,
        )
    LOGGER.info(
        "admin.exported",
        extra={"extra_payload": {"user": user, "record_count": result.artifact.record_count}},
    )
    return ExportSummary.from_result(result)


@router.delete("/records", response_model=ClearResponse)
def clear_records(
    ledger: RecordLedger = Depends(get_ledger),
    user: str | None = Depends(get_current_user),
) -> ClearResponse:
    cleared = ledger.clear()
    LOGGER.warning("admin.ledger_cleared", extra={"extra_payload": {"user": user, "cleared": cleared}})
    return ClearResponse(cleared=cleared)


__all__ = ["ClearResponse", "RecordListResponse", "router"]
