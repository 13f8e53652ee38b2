"""Tests for the append-only record ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from peddlewest.intake.assembler import assemble
from peddlewest.intake.persistence.ledger import LEDGER_KEY, RecordLedger
from peddlewest.intake.persistence.storage import InMemoryStorage, JsonFileStorage


def _record(valid_draft, minute: int):
    return assemble(valid_draft, now=datetime(2026, 10, 19, 9, minute, tzinfo=timezone.utc))


def test_append_is_monotonic_and_ordered(valid_draft) -> None:
    ledger = RecordLedger(InMemoryStorage())
    first = _record(valid_draft, 1)
    second = _record(valid_draft, 2)

    assert ledger.append(first) == 1
    assert ledger.append(second) == 2

    assert ledger.all() == [first, second]


def test_duplicates_are_kept(valid_draft) -> None:
    ledger = RecordLedger(InMemoryStorage())
    record = _record(valid_draft, 1)

    ledger.append(record)
    ledger.append(record)

    assert len(ledger.all()) == 2


def test_ledger_survives_a_new_session(tmp_path: Path, valid_draft) -> None:
    RecordLedger(JsonFileStorage(tmp_path)).append(_record(valid_draft, 1))

    reopened = RecordLedger(JsonFileStorage(tmp_path))

    assert [record.first_name for record in reopened.all()] == ["Ada"]


def test_clear_removes_everything(valid_draft) -> None:
    storage = InMemoryStorage()
    ledger = RecordLedger(storage)
    ledger.append(_record(valid_draft, 1))
    ledger.append(_record(valid_draft, 2))

    assert ledger.clear() == 2
    assert ledger.all() == []
    assert storage.load(LEDGER_KEY) is None


def test_non_list_payload_is_treated_as_empty() -> None:
    storage = InMemoryStorage()
    storage.save(LEDGER_KEY, {"not": "a list"})

    assert RecordLedger(storage).all() == []
    assert storage.load(LEDGER_KEY) is None


def test_non_list_payload_is_kept_aside_before_append(valid_draft) -> None:
    storage = InMemoryStorage()
    storage.save(LEDGER_KEY, {"not": "a list"})
    ledger = RecordLedger(storage)

    assert ledger.append(_record(valid_draft, 0)) == 1

    set_aside = [key for key in storage._slots if key.startswith(f"{LEDGER_KEY}.invalid-")]
    assert len(set_aside) == 1
    assert storage.load(set_aside[0]) == {"not": "a list"}


def test_corrupt_ledger_file_is_preserved_on_append(tmp_path: Path, valid_draft) -> None:
    storage = JsonFileStorage(tmp_path)
    ledger = RecordLedger(storage)
    ledger.append(_record(valid_draft, 0))
    ledger.append(_record(valid_draft, 1))
    ledger_file = tmp_path / f"{LEDGER_KEY}.json"
    damaged = ledger_file.read_bytes()[:-5]
    ledger_file.write_bytes(damaged)

    assert ledger.append(_record(valid_draft, 2)) == 1

    corrupt = list(tmp_path.glob(f"{LEDGER_KEY}.corrupt-*.json"))
    assert len(corrupt) == 1
    assert corrupt[0].read_bytes() == damaged
    assert [record.timestamp for record in ledger.all()] == ["2026-10-19T09:02:00.000Z"]
