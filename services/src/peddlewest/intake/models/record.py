"""Flattened submission record persisted in the ledger and exported."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AssessmentRecord(BaseModel):
    """One submitted assessment, flattened to spreadsheet columns.

    Field order is the column order of every export. Work history is reduced
    to the first entry's title, employer, city and country.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    timestamp: str = Field(min_length=1)
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    age: str = ""
    education: str = ""
    marital: str = ""
    ielts_listening: str = ""
    ielts_reading: str = ""
    ielts_writing: str = ""
    ielts_speaking: str = ""
    overall: str = ""
    program: str = ""
    notes: str = ""
    work_0_title: str = Field(default="", alias="work_0_title")
    work_0_employer: str = Field(default="", alias="work_0_employer")
    work_0_city: str = Field(default="", alias="work_0_city")
    work_0_country: str = Field(default="", alias="work_0_country")

    def as_row(self) -> dict[str, str]:
        """Return the record keyed by its column names, in column order."""

        return self.model_dump(by_alias=True)

    @classmethod
    def from_row(cls, payload: Any) -> "AssessmentRecord":
        return cls.model_validate(payload)


RECORD_COLUMNS: tuple[str, ...] = tuple(
    info.alias or name for name, info in AssessmentRecord.model_fields.items()
)

__all__ = ["AssessmentRecord", "RECORD_COLUMNS"]
