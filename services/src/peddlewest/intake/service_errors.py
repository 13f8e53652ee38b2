"""Central service error definitions and helper exception types."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


ERROR_DEFINITIONS: Dict[str, ErrorDefinition] = {
    "INTERNAL": ErrorDefinition("INTERNAL", "Internal server error.", status.HTTP_500_INTERNAL_SERVER_ERROR),
    "VALIDATION": ErrorDefinition("VALIDATION", "Validation failed.", status.HTTP_400_BAD_REQUEST),
    "SUBMIT_NOT_ALLOWED": ErrorDefinition(
        "SUBMIT_NOT_ALLOWED",
        "Submission is only available from the Review step.",
        status.HTTP_409_CONFLICT,
    ),
    "EXPORT_WRITE_FAILED": ErrorDefinition(
        "EXPORT_WRITE_FAILED",
        "The spreadsheet artifact could not be written locally.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    ),
}

DEFAULT_ERROR_DEFINITION = ErrorDefinition(
    "UNEXPECTED_ERROR",
    "Unexpected error occurred.",
    status.HTTP_500_INTERNAL_SERVER_ERROR,
)


class ServiceError(Exception):
    """Structured error for router responses."""

    def __init__(
        self,
        *,
        code: str,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
        diagnostics_root: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        self.diagnostics_root = diagnostics_root


__all__ = ["DEFAULT_ERROR_DEFINITION", "ERROR_DEFINITIONS", "ErrorDefinition", "ServiceError"]
