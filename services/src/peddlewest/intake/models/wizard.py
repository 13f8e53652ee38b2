"""Wizard step state and request/response models for the wizard endpoints."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from .export import ExportSummary

WIZARD_STEPS: tuple[str, ...] = ("Contact", "Basics", "Language", "Work History", "Interest", "Review")
FIRST_STEP = 0
LAST_STEP = len(WIZARD_STEPS) - 1

__all__ = [
    "DraftUpdateRequest",
    "FIRST_STEP",
    "LAST_STEP",
    "StepState",
    "SubmissionResponse",
    "TransitionResponse",
    "WIZARD_STEPS",
    "WizardStateResponse",
]


class StepState(BaseModel):
    """Current step index plus the error mapping shown for it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    current_step: int = Field(default=FIRST_STEP, ge=FIRST_STEP, le=LAST_STEP)
    errors: dict[str, str | None] = Field(default_factory=dict)

    @property
    def step_label(self) -> str:
        return WIZARD_STEPS[self.current_step]


class WizardStateResponse(BaseModel):
    """Snapshot of the session returned by ``GET /wizard`` and draft edits."""

    model_config = ConfigDict(extra="forbid")

    state: StepState
    step_label: str
    steps: list[str] = Field(default_factory=lambda: list(WIZARD_STEPS))
    draft: dict[str, Any]
    storage_degraded: bool = False


class DraftUpdateRequest(BaseModel):
    """Replace one leaf of the draft, addressed by a dotted path or segment list."""

    model_config = ConfigDict(extra="forbid")

    path: Union[str, list[Union[str, int]]]
    value: Union[str, bool, int, float, None]


class TransitionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    moved: bool
    state: StepState


class SubmissionResponse(BaseModel):
    """Outcome of ``POST /wizard/submit``."""

    model_config = ConfigDict(extra="forbid")

    accepted: bool
    state: StepState
    record: dict[str, str] | None = None
    export: ExportSummary | None = None
