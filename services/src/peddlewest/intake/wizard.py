"""Six-step wizard controller tying validation, the draft store and submission together."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .assembler import assemble
from .errors import LocalDeliveryError, SubmitNotAllowedError
from .export_service import ExportSyncService
from .metrics import record_submission
from .models.draft import AssessmentDraft, DraftPath
from .models.export import ExportResult
from .models.record import AssessmentRecord
from .models.wizard import FIRST_STEP, LAST_STEP, WIZARD_STEPS, StepState
from .persistence.draft import DraftStore
from .persistence.ledger import RecordLedger
from .validation import step_passes, validate_step

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransitionResult:
    moved: bool
    state: StepState


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """Outcome of a submit call.

    ``accepted`` is False when the Review step failed validation; nothing was
    recorded and the draft is untouched.
    """

    accepted: bool
    state: StepState
    record: AssessmentRecord | None = None
    export: ExportResult | None = None


class StepController:
    """Drive the Contact → Review wizard for a single session."""

    def __init__(
        self,
        *,
        store: DraftStore,
        ledger: RecordLedger,
        exporter: ExportSyncService,
        export_on_submit: bool = True,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._exporter = exporter
        self._export_on_submit = export_on_submit
        self._submit_lock = asyncio.Lock()

    @property
    def state(self) -> StepState:
        return self._store.state

    @property
    def draft(self) -> AssessmentDraft:
        return self._store.draft

    @property
    def storage_degraded(self) -> bool:
        return self._store.degraded

    def _validate_current(self) -> tuple[bool, StepState]:
        state = self._store.state
        errors = validate_step(self._store.draft, state.current_step)
        return step_passes(errors), self._store.set_errors(errors)

    def advance(self) -> TransitionResult:
        """Validate the current step and move forward when it passes."""

        passed, state = self._validate_current()
        if not passed:
            LOGGER.info(
                "wizard.advance_blocked",
                extra={"extra_payload": {"step": state.current_step, "fields": sorted(_failing(state))}},
            )
            return TransitionResult(moved=False, state=state)
        target = min(state.current_step + 1, LAST_STEP)
        moved = target != state.current_step
        state = self._store.move_to(target, state.errors)
        return TransitionResult(moved=moved, state=state)

    def retreat(self) -> TransitionResult:
        """Move back one step without validating; errors are left as they are."""

        state = self._store.state
        target = max(state.current_step - 1, FIRST_STEP)
        if target == state.current_step:
            return TransitionResult(moved=False, state=state)
        return TransitionResult(moved=True, state=self._store.move_to(target, state.errors))

    def update_field(self, path: DraftPath, value: Any) -> AssessmentDraft:
        return self._store.update_field(path, value)

    def discard(self) -> StepState:
        """Abandon the session: clear the saved draft and return to the first step."""

        LOGGER.info("wizard.discarded", extra={"extra_payload": {"step": self._store.state.current_step}})
        return self._store.reset()

    async def submit(self) -> SubmissionResult:
        """Record the draft, export the ledger, and reset the session.

        Raises :class:`SubmitNotAllowedError` outside the Review step. When the
        local artifact cannot be written the draft is kept and
        :class:`LocalDeliveryError` propagates; the record is already in the
        ledger at that point.
        """

        async with self._submit_lock:
            current = self._store.state.current_step
            if current != LAST_STEP:
                raise SubmitNotAllowedError(
                    "Submission is only available from the Review step.",
                    {"current_step": current, "required_step": LAST_STEP, "step_label": WIZARD_STEPS[current]},
                )

            passed, state = self._validate_current()
            if not passed:
                record_submission("invalid")
                return SubmissionResult(accepted=False, state=state)

            record = assemble(self._store.draft)
            count = await asyncio.to_thread(self._ledger.append, record)

            export: ExportResult | None = None
            if self._export_on_submit:
                records = await asyncio.to_thread(self._ledger.all)
                try:
                    export = await self._exporter.export_and_sync(records, trigger="submit")
                except LocalDeliveryError:
                    record_submission("failed")
                    raise

            state = self._store.reset()
            record_submission("accepted")
            LOGGER.info(
                "wizard.submitted",
                extra={
                    "extra_payload": {
                        "record_count": count,
                        "delivery": export.outcome.status if export else "skipped",
                    }
                },
            )
            return SubmissionResult(accepted=True, state=state, record=record, export=export)


def _failing(state: StepState) -> list[str]:
    return [field for field, message in state.errors.items() if message is not None]


__all__ = ["StepController", "SubmissionResult", "TransitionResult"]
