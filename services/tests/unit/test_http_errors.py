from __future__ import annotations

import json
from uuid import UUID

import pytest
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from peddlewest.intake.http import (
    TRACE_ID_HEADER,
    USER_HEADER,
    http_exception_to_response,
    raise_export_write_failed,
    raise_submit_not_allowed,
    raise_validation_error,
    resolve_trace_id,
)
from peddlewest.intake.routers.dependencies import get_current_user
from peddlewest.intake.service_errors import ServiceError


def test_resolve_trace_id_keeps_valid_candidates() -> None:
    candidate = "5d0c6f0e-8f7e-4c55-9f3c-0f1f0b5a2e11"

    assert resolve_trace_id(candidate) == candidate


def test_resolve_trace_id_replaces_invalid_candidates() -> None:
    trace_id = resolve_trace_id("not-a-uuid")

    assert UUID(trace_id)
    assert trace_id != "not-a-uuid"


def test_http_exception_to_response_wraps_plain_details() -> None:
    response = http_exception_to_response(HTTPException(status_code=404, detail="Not Found"), "trace-1")

    body = json.loads(response.body)
    assert response.status_code == 404
    assert response.headers[TRACE_ID_HEADER] == "trace-1"
    assert body == {"code": "INTERNAL", "message": "Not Found", "details": {}, "trace_id": "trace-1"}


def test_validation_helper_uses_the_definition_table() -> None:
    with pytest.raises(ServiceError) as excinfo:
        raise_validation_error(message="Unknown draft field.", details={"path": "contact.nickname"})

    assert excinfo.value.status_code == 400
    assert excinfo.value.code == "VALIDATION"
    assert excinfo.value.diagnostics_root is None


def test_submit_not_allowed_is_a_conflict() -> None:
    with pytest.raises(ServiceError) as excinfo:
        raise_submit_not_allowed(message="Submission is only available from the Review step.", details={})

    assert excinfo.value.status_code == 409
    assert excinfo.value.code == "SUBMIT_NOT_ALLOWED"


def test_export_write_failure_is_a_server_error(tmp_path) -> None:
    with pytest.raises(ServiceError) as excinfo:
        raise_export_write_failed(
            message="The spreadsheet artifact could not be written locally.",
            details={"cause": OSError("disk full")},
            diagnostics_root=tmp_path,
        )

    assert excinfo.value.status_code == 500
    assert excinfo.value.details == {"cause": "disk full"}
    assert excinfo.value.diagnostics_root == tmp_path


def test_current_user_is_read_from_the_intake_user_header() -> None:
    app = FastAPI()

    @app.get("/whoami")
    def whoami(user: str | None = Depends(get_current_user)) -> dict[str, str | None]:
        return {"user": user}

    client = TestClient(app)

    assert client.get("/whoami", headers={USER_HEADER: "  advisor-7 "}).json() == {"user": "advisor-7"}
    assert client.get("/whoami", headers={USER_HEADER: "   "}).json() == {"user": None}
    assert client.get("/whoami").json() == {"user": None}
