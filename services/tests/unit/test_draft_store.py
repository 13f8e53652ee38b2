"""Tests for the saved-progress draft store."""

from __future__ import annotations

import pytest

from peddlewest.intake.errors import DraftPathError
from peddlewest.intake.persistence.draft import PROGRESS_KEY, DraftStore
from peddlewest.intake.persistence.storage import InMemoryStorage


def test_store_starts_empty_without_saved_progress() -> None:
    store = DraftStore(InMemoryStorage())

    assert store.draft.contact.first_name == ""
    assert store.state.current_step == 0
    assert store.state.errors == {}


def test_store_restores_saved_draft_on_the_first_step(valid_draft) -> None:
    storage = InMemoryStorage()
    storage.save(PROGRESS_KEY, valid_draft.to_storage())

    store = DraftStore(storage)

    assert store.draft == valid_draft
    assert store.state.current_step == 0


def test_saved_common_law_with_non_breaking_hyphen_restores(valid_draft) -> None:
    payload = valid_draft.to_storage()
    payload["basics"]["marital"] = "Common\u2011law"
    storage = InMemoryStorage()
    storage.save(PROGRESS_KEY, payload)

    store = DraftStore(storage)

    assert store.draft.contact.first_name == "Ada"
    assert store.draft.basics.marital == "Common-law"
    assert store.draft.work == valid_draft.work


def test_invalid_section_does_not_discard_the_rest(valid_draft) -> None:
    payload = valid_draft.to_storage()
    payload["basics"]["education"] = "Doctorate"
    storage = InMemoryStorage()
    storage.save(PROGRESS_KEY, payload)

    store = DraftStore(storage)

    assert store.draft.contact == valid_draft.contact
    assert store.draft.language == valid_draft.language
    assert store.draft.basics.education == ""
    assert store.draft.basics.age == ""


@pytest.mark.parametrize("payload", ["garbage", [1, 2], {"basics": {"education": "Doctorate"}}])
def test_unreadable_progress_falls_back_to_empty_draft(payload) -> None:
    storage = InMemoryStorage()
    storage.save(PROGRESS_KEY, payload)

    store = DraftStore(storage)

    assert store.draft.basics.education == ""


def test_update_field_persists_every_change() -> None:
    storage = InMemoryStorage()
    store = DraftStore(storage)

    store.update_field("contact.email", "ada@x.io")

    assert storage.load(PROGRESS_KEY)["contact"]["email"] == "ada@x.io"


def test_rejected_update_leaves_draft_and_slot_untouched() -> None:
    storage = InMemoryStorage()
    store = DraftStore(storage)

    with pytest.raises(DraftPathError):
        store.update_field("contact.nickname", "Ada")

    assert storage.load(PROGRESS_KEY) is None
    assert store.draft.contact.first_name == ""


def test_reset_clears_slot_and_step(valid_draft) -> None:
    storage = InMemoryStorage()
    storage.save(PROGRESS_KEY, valid_draft.to_storage())
    store = DraftStore(storage)
    store.move_to(5, {"firstName": None})

    state = store.reset()

    assert state.current_step == 0
    assert state.errors == {}
    assert storage.load(PROGRESS_KEY) is None
    assert store.draft.contact.first_name == ""


def test_set_errors_keeps_the_current_step() -> None:
    store = DraftStore(InMemoryStorage())
    store.move_to(2)

    state = store.set_errors({"ieltsReading": "Required"})

    assert state.current_step == 2
    assert state.step_label == "Language"
    assert state.errors == {"ieltsReading": "Required"}
