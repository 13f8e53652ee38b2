"""Tests for flattening drafts into ledger records."""

from __future__ import annotations

from datetime import datetime, timezone

from peddlewest.intake.assembler import assemble
from peddlewest.intake.models.draft import empty_draft, update_draft
from peddlewest.intake.models.record import RECORD_COLUMNS

FIXED = datetime(2026, 10, 19, 14, 30, 5, 123000, tzinfo=timezone.utc)


def test_record_columns_are_in_export_order() -> None:
    assert RECORD_COLUMNS == (
        "timestamp",
        "firstName",
        "lastName",
        "email",
        "phone",
        "age",
        "education",
        "marital",
        "ieltsListening",
        "ieltsReading",
        "ieltsWriting",
        "ieltsSpeaking",
        "overall",
        "program",
        "notes",
        "work_0_title",
        "work_0_employer",
        "work_0_city",
        "work_0_country",
    )


def test_assemble_maps_every_column(valid_draft) -> None:
    row = assemble(valid_draft, now=FIXED).as_row()

    assert list(row) == list(RECORD_COLUMNS)
    assert row["timestamp"] == "2026-10-19T14:30:05.123Z"
    assert row["firstName"] == "Ada"
    assert row["education"] == "Master"
    assert row["marital"] == "Single"
    assert row["program"] == "Express Entry"
    assert row["overall"] == ""
    assert row["notes"] == ""
    assert row["work_0_title"] == "Engineer"
    assert row["work_0_country"] == "Canada"


def test_assemble_is_deterministic_apart_from_timestamp(valid_draft) -> None:
    first = assemble(valid_draft, now=FIXED)
    second = assemble(valid_draft, now=FIXED)

    assert first == second
    assert assemble(valid_draft).model_copy(update={"timestamp": first.timestamp}) == first


def test_assemble_does_not_validate() -> None:
    record = assemble(update_draft(empty_draft(), "contact.email", "not-an-email"), now=FIXED)

    assert record.email == "not-an-email"
    assert record.first_name == ""


def test_naive_timestamps_are_treated_as_utc(valid_draft) -> None:
    record = assemble(valid_draft, now=datetime(2026, 1, 2, 3, 4, 5))

    assert record.timestamp == "2026-01-02T03:04:05.000Z"
