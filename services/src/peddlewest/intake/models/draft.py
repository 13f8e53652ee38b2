"""Assessment draft models and leaf-path updates.

The draft is an immutable pydantic tree. Its JSON form keeps the camelCase
keys the client portal has always stored (``contact.firstName``,
``language.ieltsListening``), so saved progress from earlier sessions keeps
loading. Updates go through :func:`update_draft`, which replaces exactly one
existing leaf and returns a new draft.
"""

from __future__ import annotations

from typing import Any, Literal, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..errors import DraftPathError

Education = Literal["", "Secondary", "Diploma", "Bachelor", "Master", "PhD"]
MaritalStatus = Literal["Single", "Married", "Common-law"]
Program = Literal["Express Entry", "Study Permit", "Work Permit", "PNP", "Family Sponsorship"]

EDUCATION_CHOICES: tuple[str, ...] = ("Secondary", "Diploma", "Bachelor", "Master", "PhD")
MARITAL_CHOICES: tuple[str, ...] = ("Single", "Married", "Common-law")
PROGRAM_CHOICES: tuple[str, ...] = (
    "Express Entry",
    "Study Permit",
    "Work Permit",
    "PNP",
    "Family Sponsorship",
)

PathSegment = Union[str, int]
DraftPath = Union[str, Sequence[PathSegment]]


class _DraftNode(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class ContactSection(_DraftNode):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


class BasicsSection(_DraftNode):
    age: str = ""
    education: Education = ""
    marital: MaritalStatus = "Single"

    @field_validator("marital", mode="before")
    @classmethod
    def _ascii_hyphen(cls, value: Any) -> Any:
        # Older portal builds stored "Common\u2011law" with a non-breaking hyphen.
        if isinstance(value, str):
            return value.replace("\u2011", "-")
        return value


class LanguageSection(_DraftNode):
    ielts_listening: str = ""
    ielts_reading: str = ""
    ielts_writing: str = ""
    ielts_speaking: str = ""
    overall: str = ""


class InterestSection(_DraftNode):
    program: Program = "Express Entry"
    notes: str = ""


class WorkEntry(_DraftNode):
    start: str = ""
    end: str = ""
    title: str = ""
    employer: str = ""
    city: str = ""
    country: str = ""
    state: str = ""
    current: bool = False


def _default_work() -> tuple[WorkEntry, ...]:
    return (WorkEntry(),)


class AssessmentDraft(_DraftNode):
    """In-progress wizard answers for a single session."""

    contact: ContactSection = Field(default_factory=ContactSection)
    basics: BasicsSection = Field(default_factory=BasicsSection)
    language: LanguageSection = Field(default_factory=LanguageSection)
    interest: InterestSection = Field(default_factory=InterestSection)
    work: tuple[WorkEntry, ...] = Field(default_factory=_default_work, min_length=1)

    def to_storage(self) -> dict[str, Any]:
        """Return the JSON-serialisable form written to the progress slot."""

        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_storage(cls, payload: Any) -> "AssessmentDraft":
        """Rebuild a draft from a stored payload, raising ``ValidationError`` on mismatch."""

        return cls.model_validate(payload)

    @classmethod
    def salvage(cls, payload: Any) -> tuple["AssessmentDraft", list[str]]:
        """Keep every stored section that validates on its own.

        Returns the rebuilt draft and the aliases of the sections that were
        reset to their defaults.
        """

        if not isinstance(payload, dict):
            return cls(), _section_aliases()
        kept: dict[str, Any] = {}
        dropped: list[str] = []
        for alias in _section_aliases():
            if alias not in payload:
                continue
            try:
                section = cls.model_validate({alias: payload[alias]})
            except ValidationError:
                dropped.append(alias)
                continue
            kept[alias] = section.model_dump(mode="json", by_alias=True)[alias]
        return cls.model_validate(kept), dropped


def _section_aliases() -> list[str]:
    return [field.alias or name for name, field in AssessmentDraft.model_fields.items()]


def empty_draft() -> AssessmentDraft:
    """Return a structurally complete draft with every leaf at its default."""

    return AssessmentDraft()


def parse_path(path: DraftPath) -> tuple[PathSegment, ...]:
    """Normalise a dotted string or a segment sequence into path segments."""

    if isinstance(path, str):
        segments: list[PathSegment] = [part for part in path.strip().split(".")]
    else:
        segments = list(path)
    if not segments or any(segment == "" for segment in segments):
        raise DraftPathError("Draft path must name a field.", {"path": _render_path(path)})
    return tuple(segments)


def _render_path(path: DraftPath) -> str:
    if isinstance(path, str):
        return path
    return ".".join(str(segment) for segment in path)


def _child(container: Any, segment: PathSegment, path: str) -> tuple[Any, PathSegment]:
    if isinstance(container, dict):
        key = str(segment)
        if key not in container:
            raise DraftPathError("Unknown draft field.", {"path": path, "segment": key})
        return container[key], key
    if isinstance(container, list):
        try:
            index = int(segment)
        except (TypeError, ValueError):
            raise DraftPathError("Expected a list index.", {"path": path, "segment": str(segment)}) from None
        if index < 0 or index >= len(container):
            raise DraftPathError("List index out of range.", {"path": path, "index": index})
        return container[index], index
    raise DraftPathError("Draft path descends past a leaf value.", {"path": path})


def update_draft(draft: AssessmentDraft, path: DraftPath, value: Any) -> AssessmentDraft:
    """Return a copy of ``draft`` with the leaf at ``path`` replaced by ``value``."""

    segments = parse_path(path)
    rendered = _render_path(path)
    data = draft.model_dump(mode="json", by_alias=True)

    parent: Any = data
    for segment in segments[:-1]:
        parent, _ = _child(parent, segment, rendered)
    current, leaf_key = _child(parent, segments[-1], rendered)
    if isinstance(current, (dict, list)):
        raise DraftPathError("Draft updates must target a single leaf value.", {"path": rendered})

    parent[leaf_key] = value
    try:
        return AssessmentDraft.model_validate(data)
    except ValidationError as exc:
        raise DraftPathError(
            "Invalid value for draft field.",
            {"path": rendered, "errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


__all__ = [
    "AssessmentDraft",
    "BasicsSection",
    "ContactSection",
    "DraftPath",
    "EDUCATION_CHOICES",
    "InterestSection",
    "LanguageSection",
    "MARITAL_CHOICES",
    "PROGRAM_CHOICES",
    "WorkEntry",
    "empty_draft",
    "parse_path",
    "update_draft",
]
