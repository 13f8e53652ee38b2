"""Wizard endpoints: read state, edit the draft, move between steps, submit."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..config import ServiceSettings
from ..errors import DraftPathError, LocalDeliveryError, SubmitNotAllowedError
from ..http import raise_export_write_failed, raise_submit_not_allowed, raise_validation_error
from ..models.export import ExportSummary
from ..models.wizard import (
    DraftUpdateRequest,
    SubmissionResponse,
    TransitionResponse,
    WizardStateResponse,
)
from ..wizard import StepController, TransitionResult
from .dependencies import get_controller, get_current_user, get_settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/wizard", tags=["wizard"])


def _state_response(controller: StepController) -> WizardStateResponse:
    state = controller.state
    return WizardStateResponse(
        state=state,
        step_label=state.step_label,
        draft=controller.draft.to_storage(),
        storage_degraded=controller.storage_degraded,
    )


def _transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(moved=result.moved, state=result.state)


@router.get("", response_model=WizardStateResponse)
def read_wizard(controller: StepController = Depends(get_controller)) -> WizardStateResponse:
    """Return the current step, its errors, and the saved draft."""

    return _state_response(controller)


@router.patch("/draft", response_model=WizardStateResponse)
def update_draft_field(
    payload: DraftUpdateRequest,
    controller: StepController = Depends(get_controller),
    user: str | None = Depends(get_current_user),
) -> WizardStateResponse:
    try:
        controller.update_field(payload.path, payload.value)
    except DraftPathError as exc:
        raise_validation_error(message=exc.message, details=exc.details)
    LOGGER.debug("wizard.draft_updated", extra={"extra_payload": {"user": user}})
    return _state_response(controller)


@router.delete("/draft", response_model=WizardStateResponse)
def discard_draft(
    controller: StepController = Depends(get_controller),
    user: str | None = Depends(get_current_user),
) -> WizardStateResponse:
    controller.discard()
    LOGGER.info("wizard.discard_requested", extra={"extra_payload": {"user": user}})
    return _state_response(controller)


@router.post("/advance", response_model=TransitionResponse)
def advance(controller: StepController = Depends(get_controller)) -> TransitionResponse:
    """Validate the current step and move forward when it passes."""

    return _transition_response(controller.advance())


@router.post("/retreat", response_model=TransitionResponse)
def retreat(controller: StepController = Depends(get_controller)) -> TransitionResponse:
    return _transition_response(controller.retreat())


@router.post("/submit", response_model=SubmissionResponse)
async def submit(
    controller: StepController = Depends(get_controller),
    settings: ServiceSettings = Depends(get_settings),
    user: str | None = Depends(get_current_user),
) -> SubmissionResponse:
    """Record the reviewed draft and export the ledger.

    A failed remote upload still returns ``accepted``; the export summary
    reports ``local_only`` with the reason.
    """

    try:
        result = await controller.submit()
    except SubmitNotAllowedError as exc:
        raise_submit_not_allowed(message=exc.message, details=exc.details)
    except LocalDeliveryError as exc:
        raise_export_write_failed(
            message=exc.message,
            details={**exc.details, "draft_kept": True},
            diagnostics_root=settings.diagnostics_root,
        )

    LOGGER.info(
        "wizard.submit_handled",
        extra={"extra_payload": {"user": user, "accepted": result.accepted}},
    )
    return SubmissionResponse(
        accepted=result.accepted,
        state=result.state,
        record=result.record.as_row() if result.record else None,
        export=ExportSummary.from_result(result.export) if result.export else None,
    )


__all__ = ["router"]
