"""Per-step field validation for the assessment wizard.

Validation never raises. Each call returns a mapping of field name to error
message, with ``None`` for fields of the step that passed.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from pydantic import BaseModel

REQUIRED_MESSAGE = "This field is required."
INVALID_EMAIL_MESSAGE = "Enter a valid email."
SHORT_REQUIRED_MESSAGE = "Required"

_EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

ErrorMap = dict[str, str | None]


def _as_mapping(draft: BaseModel | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(draft, BaseModel):
        return draft.model_dump(by_alias=True)
    return draft


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name)
    return value if isinstance(value, Mapping) else {}


def _first_work_entry(data: Mapping[str, Any]) -> Mapping[str, Any]:
    work = data.get("work")
    if isinstance(work, (list, tuple)) and work and isinstance(work[0], Mapping):
        return work[0]
    return {}


def _required(value: Any, message: str = REQUIRED_MESSAGE) -> str | None:
    return None if value else message


def _email(value: Any) -> str | None:
    missing = _required(value)
    if missing:
        return missing
    if not isinstance(value, str) or not _EMAIL_PATTERN.match(value):
        return INVALID_EMAIL_MESSAGE
    return None


def _contact(data: Mapping[str, Any]) -> ErrorMap:
    contact = _section(data, "contact")
    return {
        "firstName": _required(contact.get("firstName")),
        "lastName": _required(contact.get("lastName")),
        "email": _email(contact.get("email")),
    }


def _basics(data: Mapping[str, Any]) -> ErrorMap:
    basics = _section(data, "basics")
    return {
        "age": _required(basics.get("age")),
        "education": _required(basics.get("education")),
    }


def _language(data: Mapping[str, Any]) -> ErrorMap:
    language = _section(data, "language")
    skills = ("ieltsListening", "ieltsReading", "ieltsWriting", "ieltsSpeaking")
    return {key: _required(language.get(key), SHORT_REQUIRED_MESSAGE) for key in skills}


def _work_history(data: Mapping[str, Any]) -> ErrorMap:
    # Only the first entry is checked; later entries are optional.
    first = _first_work_entry(data)
    fields = ("title", "employer", "city", "country")
    return {key: _required(first.get(key), SHORT_REQUIRED_MESSAGE) for key in fields}


_STEP_RULES: dict[int, Callable[[Mapping[str, Any]], ErrorMap]] = {
    0: _contact,
    1: _basics,
    2: _language,
    3: _work_history,
}


def validate_step(draft: BaseModel | Mapping[str, Any], step_index: int) -> ErrorMap:
    """Return the error map for ``step_index``; steps without rules yield ``{}``."""

    rule = _STEP_RULES.get(step_index)
    if rule is None:
        return {}
    return rule(_as_mapping(draft))


def step_passes(errors: Mapping[str, str | None]) -> bool:
    """A step passes when no field carries a message."""

    return all(message is None for message in errors.values())


__all__ = [
    "INVALID_EMAIL_MESSAGE",
    "REQUIRED_MESSAGE",
    "SHORT_REQUIRED_MESSAGE",
    "step_passes",
    "validate_step",
]
