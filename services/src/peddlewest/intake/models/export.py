"""Export artifact handles, delivery outcomes, and their API views."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

LocalOnlyReason = Literal[
    "disabled",
    "not_connected",
    "credential_unavailable",
    "upload_failed",
    "remote_failed",
    "timeout",
    "circuit_open",
]

__all__ = [
    "ArtifactHandle",
    "Delivered",
    "DeliveryOutcome",
    "ExportResult",
    "ExportSummary",
    "LocalOnly",
    "LocalOnlyReason",
]


@dataclass(frozen=True, slots=True)
class ArtifactHandle:
    """A spreadsheet artifact written to local storage."""

    path: Path
    filename: str
    media_type: str
    size_bytes: int
    record_count: int
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Delivered:
    """The artifact reached the remote store."""

    remote_id: str

    @property
    def status(self) -> str:
        return "delivered"


@dataclass(frozen=True, slots=True)
class LocalOnly:
    """The artifact exists locally only; remote delivery was skipped or failed."""

    reason: LocalOnlyReason
    detail: str = ""

    @property
    def status(self) -> str:
        return "local_only"


DeliveryOutcome = Union[Delivered, LocalOnly]


@dataclass(frozen=True, slots=True)
class ExportResult:
    artifact: ArtifactHandle
    outcome: DeliveryOutcome

    @property
    def delivered(self) -> bool:
        return isinstance(self.outcome, Delivered)


class ExportSummary(BaseModel):
    """JSON view of an :class:`ExportResult`."""

    model_config = ConfigDict(extra="forbid")

    filename: str
    path: str
    media_type: str
    size_bytes: int
    record_count: int
    created_at: str
    delivery: Literal["delivered", "local_only"]
    remote_id: str | None = None
    reason: str | None = None
    detail: str | None = None

    @classmethod
    def from_result(cls, result: ExportResult) -> "ExportSummary":
        artifact = result.artifact
        outcome = result.outcome
        payload: dict[str, object] = {
            "filename": artifact.filename,
            "path": artifact.path.as_posix(),
            "media_type": artifact.media_type,
            "size_bytes": artifact.size_bytes,
            "record_count": artifact.record_count,
            "created_at": artifact.created_at.isoformat().replace("+00:00", "Z"),
            "delivery": outcome.status,
        }
        if isinstance(outcome, Delivered):
            payload["remote_id"] = outcome.remote_id
        else:
            payload["reason"] = outcome.reason
            payload["detail"] = outcome.detail or None
        return cls.model_validate(payload)
