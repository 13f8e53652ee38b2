"""Flatten a completed draft into a ledger record."""

from __future__ import annotations

from datetime import datetime, timezone

from .models.draft import AssessmentDraft, WorkEntry
from .models.record import AssessmentRecord


def _utc_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def assemble(draft: AssessmentDraft, *, now: datetime | None = None) -> AssessmentRecord:
    """Return the flat record for ``draft`` stamped with ``now`` (default: current UTC time).

    No validation happens here; callers validate before assembling.
    """

    moment = now or datetime.now(timezone.utc)
    first = draft.work[0] if draft.work else WorkEntry()
    return AssessmentRecord(
        timestamp=_utc_timestamp(moment),
        first_name=draft.contact.first_name,
        last_name=draft.contact.last_name,
        email=draft.contact.email,
        phone=draft.contact.phone,
        age=draft.basics.age,
        education=draft.basics.education,
        marital=draft.basics.marital,
        ielts_listening=draft.language.ielts_listening,
        ielts_reading=draft.language.ielts_reading,
        ielts_writing=draft.language.ielts_writing,
        ielts_speaking=draft.language.ielts_speaking,
        overall=draft.language.overall,
        program=draft.interest.program,
        notes=draft.interest.notes,
        work_0_title=first.title,
        work_0_employer=first.employer,
        work_0_city=first.city,
        work_0_country=first.country,
    )


__all__ = ["assemble"]
