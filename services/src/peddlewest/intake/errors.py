"""Domain exceptions raised by the intake pipeline.

Field validation failures are not exceptions: they are returned as error
mappings by :mod:`peddlewest.intake.validation`. The types below cover the
remaining failure classes and where they are expected to be handled.
"""

from __future__ import annotations

from typing import Any


class IntakeError(Exception):
    """Base class for intake pipeline errors carrying structured details."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DraftPathError(IntakeError):
    """Raised when a draft update names a missing leaf or carries a bad value."""


class SubmitNotAllowedError(IntakeError):
    """Raised when submit is requested before the wizard reaches the Review step."""


class RemoteDeliveryError(IntakeError):
    """Base class for failures on the optional remote delivery path."""

    reason: str = "remote_failed"


class CredentialError(RemoteDeliveryError):
    """The remote credential was declined, unavailable, or could not be issued."""

    reason = "credential_unavailable"


class RemoteUploadError(RemoteDeliveryError):
    """The upload request failed or returned a non-2xx status."""

    reason = "upload_failed"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class LocalDeliveryError(IntakeError):
    """The spreadsheet artifact could not be written to local storage."""

    def __init__(self, message: str, *, cause: OSError, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)
        self.cause = cause


__all__ = [
    "CredentialError",
    "DraftPathError",
    "IntakeError",
    "LocalDeliveryError",
    "RemoteDeliveryError",
    "RemoteUploadError",
    "SubmitNotAllowedError",
]
