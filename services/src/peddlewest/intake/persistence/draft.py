"""Saved-progress store owning the current draft and wizard step state."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from pydantic import ValidationError

from ..models.draft import AssessmentDraft, DraftPath, empty_draft, update_draft
from ..models.wizard import FIRST_STEP, StepState
from .storage import KeyValueStorage

LOGGER = logging.getLogger(__name__)

PROGRESS_KEY = "pw_assessment_progress"


class DraftStore:
    """Hold the session draft and persist it on every change.

    Only the draft is persisted. A restored session starts on the first step
    with the saved answers in place.
    """

    def __init__(self, storage: KeyValueStorage, *, key: str = PROGRESS_KEY) -> None:
        self._storage = storage
        self._key = key
        self._lock = RLock()
        self._draft = self._restore()
        self._state = StepState()

    def _restore(self) -> AssessmentDraft:
        payload = self._storage.load(self._key)
        if payload is None:
            return empty_draft()
        try:
            return AssessmentDraft.from_storage(payload)
        except ValidationError as exc:
            draft, dropped = AssessmentDraft.salvage(payload)
            LOGGER.warning(
                "draft.restore_partial",
                extra={
                    "extra_payload": {
                        "key": self._key,
                        "error_count": exc.error_count(),
                        "dropped_sections": dropped,
                    }
                },
            )
            return draft

    @property
    def draft(self) -> AssessmentDraft:
        with self._lock:
            return self._draft

    @property
    def state(self) -> StepState:
        with self._lock:
            return self._state

    @property
    def degraded(self) -> bool:
        """True when the backing storage has fallen back to memory."""

        return bool(getattr(self._storage, "degraded", False))

    def update_field(self, path: DraftPath, value: Any) -> AssessmentDraft:
        """Replace one leaf of the draft and persist the result."""

        with self._lock:
            updated = update_draft(self._draft, path, value)
            self._storage.save(self._key, updated.to_storage())
            self._draft = updated
            return updated

    def move_to(self, step: int, errors: dict[str, str | None] | None = None) -> StepState:
        with self._lock:
            self._state = StepState(current_step=step, errors=errors or {})
            return self._state

    def set_errors(self, errors: dict[str, str | None]) -> StepState:
        with self._lock:
            self._state = self._state.model_copy(update={"errors": dict(errors)})
            return self._state

    def reset(self) -> StepState:
        """Clear the draft, return to the first step, and delete the saved slot."""

        with self._lock:
            self._storage.delete(self._key)
            self._draft = empty_draft()
            self._state = StepState(current_step=FIRST_STEP)
            return self._state


__all__ = ["DraftStore", "PROGRESS_KEY"]
