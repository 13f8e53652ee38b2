"""HTTP utilities shared across the intake service routers."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Final, NoReturn
from uuid import UUID, uuid4

from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .models.errors import ErrorResponse
from .service_errors import DEFAULT_ERROR_DEFINITION, ERROR_DEFINITIONS, ServiceError

LOGGER = logging.getLogger(__name__)

TRACE_ID_HEADER: Final[str] = "x-trace-id"
USER_HEADER: Final[str] = "x-intake-user"
_TRACE_ID_CONTEXT: ContextVar[str] = ContextVar("peddlewest_trace_id", default="")

_ERROR_STATUSES: Final[tuple[int, ...]] = (
    status.HTTP_400_BAD_REQUEST,
    status.HTTP_409_CONFLICT,
    status.HTTP_500_INTERNAL_SERVER_ERROR,
)


def default_error_responses() -> dict[int | str, dict[str, Any]]:
    """OpenAPI response entries documenting the error envelope."""

    return {status_code: {"model": ErrorResponse} for status_code in _ERROR_STATUSES}


def resolve_trace_id(candidate: str | None) -> str:
    """Return a valid UUID string, preferring the provided candidate."""

    if candidate:
        try:
            UUID(candidate)
            return candidate
        except ValueError:
            LOGGER.debug("Ignoring invalid trace identifier: %s", candidate)
    return str(uuid4())


def ensure_trace_id() -> str:
    """Return the active trace identifier, creating one if absent."""

    trace_id = _TRACE_ID_CONTEXT.get()
    if not trace_id:
        trace_id = str(uuid4())
        _TRACE_ID_CONTEXT.set(trace_id)
    return trace_id


def get_trace_context() -> ContextVar[str]:
    return _TRACE_ID_CONTEXT


def build_error_payload(*, code: str, message: str, details: dict[str, Any], trace_id: str) -> ErrorResponse:
    return ErrorResponse(code=code, message=message, details=details, trace_id=trace_id)


def http_exception_to_response(exc: HTTPException, trace_id: str) -> JSONResponse:
    """Translate an ``HTTPException`` into the error envelope with trace headers."""

    headers = dict(exc.headers or {})
    headers.setdefault(TRACE_ID_HEADER, trace_id)

    detail = exc.detail
    if isinstance(detail, dict):
        payload_data = dict(detail)
        payload_data.setdefault("code", "INTERNAL")
        payload_data.setdefault("message", "Internal server error.")
        payload_data.setdefault("details", {})
        payload_data["trace_id"] = trace_id
        payload = ErrorResponse.model_validate(payload_data)
    else:
        payload = ErrorResponse(code="INTERNAL", message=str(detail), details={}, trace_id=trace_id)

    return JSONResponse(status_code=exc.status_code, content=payload.model_dump(), headers=headers)


def request_validation_response(exc: RequestValidationError, trace_id: str) -> JSONResponse:
    """Render request body validation failures using the shared error model."""

    payload = build_error_payload(
        code="VALIDATION",
        message="Request validation failed.",
        details={"errors": _sanitize_details(list(exc.errors()))},
        trace_id=trace_id,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=payload.model_dump(),
        headers={TRACE_ID_HEADER: trace_id},
    )


def internal_error_response(trace_id: str) -> JSONResponse:
    payload = build_error_payload(
        code="INTERNAL",
        message="Internal server error.",
        details={},
        trace_id=trace_id,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=payload.model_dump(),
        headers={TRACE_ID_HEADER: trace_id},
    )


def _sanitize_details(details: Any) -> Any:
    """Convert exception instances and tuples inside details into serialisable values."""

    if isinstance(details, Exception):
        return str(details)
    if isinstance(details, dict):
        return {key: _sanitize_details(value) for key, value in details.items()}
    if isinstance(details, (list, tuple)):
        return [_sanitize_details(item) for item in details]
    return details


def _raise(code: str, message: str, details: dict[str, Any], diagnostics_root: Path | None = None) -> NoReturn:
    definition = ERROR_DEFINITIONS.get(code, DEFAULT_ERROR_DEFINITION)
    raise ServiceError(
        code=definition.code,
        status_code=definition.status_code,
        message=message or definition.message,
        details=_sanitize_details(details),
        diagnostics_root=diagnostics_root,
    )


def raise_validation_error(*, message: str, details: dict[str, Any]) -> NoReturn:
    """Reject a request whose draft path or value cannot be applied (400)."""

    _raise("VALIDATION", message, details)


def raise_submit_not_allowed(*, message: str, details: dict[str, Any]) -> NoReturn:
    _raise("SUBMIT_NOT_ALLOWED", message, details)


def raise_export_write_failed(*, message: str, details: dict[str, Any], diagnostics_root: Path) -> NoReturn:
    """Report a failed local artifact write (500).

    The trace middleware records a diagnostic under ``diagnostics_root`` with
    the request method, path and trace id added to ``details``.
    """

    _raise("EXPORT_WRITE_FAILED", message, details, diagnostics_root)


__all__: list[str] = [
    "TRACE_ID_HEADER",
    "USER_HEADER",
    "build_error_payload",
    "default_error_responses",
    "ensure_trace_id",
    "get_trace_context",
    "http_exception_to_response",
    "internal_error_response",
    "raise_export_write_failed",
    "raise_submit_not_allowed",
    "raise_validation_error",
    "request_validation_response",
    "resolve_trace_id",
]
