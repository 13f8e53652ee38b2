"""HTTP API tests for the intake service."""

from __future__ import annotations

import errno
import json
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from peddlewest.intake import export_service as export_service_module
from peddlewest.intake.app import SERVICE_VERSION, create_app
from peddlewest.intake.config import ServiceSettings
from peddlewest.intake.settings import DEFAULT_TOKEN_URL, RemoteSettings

API_PREFIX = "/api/v1"


def _fill(client: TestClient, answers: tuple[tuple[str, Any], ...]) -> None:
    for path, value in answers:
        response = client.patch(f"{API_PREFIX}/wizard/draft", json={"path": path, "value": value})
        assert response.status_code == 200, response.text


def _walk_to_review(client: TestClient) -> None:
    for _ in range(5):
        response = client.post(f"{API_PREFIX}/wizard/advance")
        assert response.json()["moved"], response.text


def test_service_index_manifest(test_client: TestClient) -> None:
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.json() == {"service": "peddlewest-intake", "version": SERVICE_VERSION, "api_base": "/api/v1"}


def test_initial_wizard_state(test_client: TestClient) -> None:
    response = test_client.get(f"{API_PREFIX}/wizard")

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == {"current_step": 0, "errors": {}}
    assert body["step_label"] == "Contact"
    assert body["steps"] == ["Contact", "Basics", "Language", "Work History", "Interest", "Review"]
    assert body["draft"]["basics"]["marital"] == "Single"
    assert body["storage_degraded"] is False


def test_invalid_email_blocks_advance(test_client: TestClient) -> None:
    _fill(
        test_client,
        (
            ("contact.firstName", "Ada"),
            ("contact.lastName", "Lovelace"),
            ("contact.email", "not-an-email"),
        ),
    )

    response = test_client.post(f"{API_PREFIX}/wizard/advance")

    body = response.json()
    assert body["moved"] is False
    assert body["state"]["current_step"] == 0
    assert body["state"]["errors"]["email"] == "Enter a valid email."
    assert body["state"]["errors"]["firstName"] is None


def test_express_entry_submission_flow(test_client: TestClient, valid_answers, tmp_path: Path) -> None:
    _fill(test_client, valid_answers)
    _walk_to_review(test_client)

    response = test_client.post(f"{API_PREFIX}/wizard/submit", headers={"x-intake-user": "advisor-7"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["accepted"] is True
    assert body["state"] == {"current_step": 0, "errors": {}}
    assert body["record"]["program"] == "Express Entry"
    assert body["record"]["firstName"] == "Ada"
    assert body["record"]["timestamp"].endswith("Z")
    export = body["export"]
    assert export["delivery"] == "local_only"
    assert export["reason"] == "not_connected"
    assert export["record_count"] == 1
    assert Path(export["path"]).exists()

    wizard = test_client.get(f"{API_PREFIX}/wizard").json()
    assert wizard["draft"]["contact"]["firstName"] == ""

    records = test_client.get(f"{API_PREFIX}/admin/records").json()
    assert records["count"] == 1
    assert records["columns"][0] == "timestamp"
    assert records["records"][0]["email"] == "ada@x.io"


def test_two_submissions_are_listed_in_order(test_client: TestClient, valid_answers) -> None:
    for first_name in ("Ada", "Grace"):
        _fill(test_client, valid_answers)
        _fill(test_client, (("contact.firstName", first_name),))
        _walk_to_review(test_client)
        assert test_client.post(f"{API_PREFIX}/wizard/submit").json()["accepted"]

    records = test_client.get(f"{API_PREFIX}/admin/records").json()["records"]

    assert [record["firstName"] for record in records] == ["Ada", "Grace"]


def test_submit_outside_review_is_a_conflict(test_client: TestClient) -> None:
    trace_id = "5d0c6f0e-8f7e-4c55-9f3c-0f1f0b5a2e11"

    response = test_client.post(f"{API_PREFIX}/wizard/submit", headers={"x-trace-id": trace_id})

    assert response.status_code == 409
    assert response.headers["x-trace-id"] == trace_id
    body = response.json()
    assert body["code"] == "SUBMIT_NOT_ALLOWED"
    assert body["trace_id"] == trace_id
    assert body["details"]["current_step"] == 0


def test_unknown_draft_path_is_rejected(test_client: TestClient) -> None:
    response = test_client.patch(f"{API_PREFIX}/wizard/draft", json={"path": "contact.nickname", "value": "Ada"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION"
    assert body["details"]["path"] == "contact.nickname"


def test_malformed_request_body_is_rejected(test_client: TestClient) -> None:
    response = test_client.patch(f"{API_PREFIX}/wizard/draft", json={"path": "contact.firstName"})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION"


def test_retreat_and_discard(test_client: TestClient, valid_answers) -> None:
    _fill(test_client, valid_answers)
    test_client.post(f"{API_PREFIX}/wizard/advance")

    retreat = test_client.post(f"{API_PREFIX}/wizard/retreat").json()
    assert retreat == {"moved": True, "state": {"current_step": 0, "errors": {"firstName": None, "lastName": None, "email": None}}}

    discarded = test_client.delete(f"{API_PREFIX}/wizard/draft").json()
    assert discarded["draft"]["contact"]["email"] == ""
    assert discarded["state"]["current_step"] == 0


def test_progress_resumes_in_a_new_session(
    test_client: TestClient,
    tmp_path: Path,
    disconnected_remote: RemoteSettings,
) -> None:
    _fill(test_client, (("contact.firstName", "Ada"), ("work.0.city", "Toronto")))

    resumed = create_app(ServiceSettings(data_dir=tmp_path / "data"), remote_settings=disconnected_remote)
    with TestClient(resumed) as client:
        body = client.get(f"{API_PREFIX}/wizard").json()

    assert body["draft"]["contact"]["firstName"] == "Ada"
    assert body["draft"]["work"][0]["city"] == "Toronto"
    assert body["state"]["current_step"] == 0


def test_admin_export_and_clear(test_client: TestClient, valid_answers) -> None:
    empty_export = test_client.post(f"{API_PREFIX}/admin/export")
    assert empty_export.status_code == 200
    assert empty_export.json()["record_count"] == 0

    _fill(test_client, valid_answers)
    _walk_to_review(test_client)
    test_client.post(f"{API_PREFIX}/wizard/submit")

    export = test_client.post(f"{API_PREFIX}/admin/export").json()
    assert export["record_count"] == 1
    assert export["filename"].startswith("peddlewest_assessments_")
    assert export["media_type"] == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    cleared = test_client.delete(f"{API_PREFIX}/admin/records").json()
    assert cleared == {"cleared": 1}
    assert test_client.get(f"{API_PREFIX}/admin/records").json()["count"] == 0


def test_connected_remote_delivers(tmp_path: Path, valid_answers) -> None:
    uploads: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == DEFAULT_TOKEN_URL:
            return httpx.Response(200, json={"access_token": "ya29.token", "expires_in": 3600})
        uploads.append(request)
        return httpx.Response(200, json={"id": "file-123"})

    app = create_app(
        ServiceSettings(data_dir=tmp_path / "data"),
        remote_settings=RemoteSettings(client_id="client-123", refresh_token="refresh-abc", _env_file=None),
        remote_transport=httpx.MockTransport(handler),
    )
    with TestClient(app) as client:
        _fill(client, valid_answers)
        _walk_to_review(client)
        body = client.post(f"{API_PREFIX}/wizard/submit").json()

    assert body["export"]["delivery"] == "delivered"
    assert body["export"]["remote_id"] == "file-123"
    assert len(uploads) == 1
    assert uploads[0].headers["authorization"] == "Bearer ya29.token"


def test_local_write_failure_keeps_the_draft(
    test_client: TestClient,
    valid_answers,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def failing_write(path: Path, content: bytes, *, durable: bool = True) -> None:
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(export_service_module, "write_bytes_atomic", failing_write)
    _fill(test_client, valid_answers)
    _walk_to_review(test_client)

    trace_id = "5d0c6f0e-8f7e-4c55-9f3c-0f1f0b5a2e11"
    response = test_client.post(f"{API_PREFIX}/wizard/submit", headers={"x-trace-id": trace_id})

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "EXPORT_WRITE_FAILED"
    assert body["details"]["draft_kept"] is True

    wizard = test_client.get(f"{API_PREFIX}/wizard").json()
    assert wizard["state"]["current_step"] == 5
    assert wizard["draft"]["contact"]["firstName"] == "Ada"

    diagnostics = list((tmp_path / "data" / "history" / "diagnostics").glob("*export_write_failed.json"))
    assert len(diagnostics) == 1
    payload = json.loads(diagnostics[0].read_text(encoding="utf-8"))
    assert payload["details"]["method"] == "POST"
    assert payload["details"]["trace_id"] == trace_id


def test_health_and_metrics(test_client: TestClient) -> None:
    test_client.get(f"{API_PREFIX}/wizard")

    health = test_client.get(f"{API_PREFIX}/healthz").json()
    assert health == {
        "status": "ok",
        "version": SERVICE_VERSION,
        "storage_degraded": False,
        "remote_circuit": "closed",
    }

    metrics = test_client.get(f"{API_PREFIX}/metrics")
    assert metrics.headers["content-type"] == "text/plain; version=0.0.4"
    assert 'peddlewest_requests_total{method="get",status="200"}' in metrics.text
    assert "peddlewest_exports_total" in metrics.text
