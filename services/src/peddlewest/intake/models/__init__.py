"""Pydantic models and result types exposed by the intake service."""

from .draft import AssessmentDraft, WorkEntry, empty_draft, update_draft
from .errors import ErrorResponse
from .export import ArtifactHandle, Delivered, DeliveryOutcome, ExportResult, ExportSummary, LocalOnly
from .record import RECORD_COLUMNS, AssessmentRecord
from .wizard import LAST_STEP, WIZARD_STEPS, StepState

__all__ = [
    "ArtifactHandle",
    "AssessmentDraft",
    "AssessmentRecord",
    "Delivered",
    "DeliveryOutcome",
    "ErrorResponse",
    "ExportResult",
    "ExportSummary",
    "LAST_STEP",
    "LocalOnly",
    "RECORD_COLUMNS",
    "StepState",
    "WIZARD_STEPS",
    "WorkEntry",
    "empty_draft",
    "update_draft",
]
