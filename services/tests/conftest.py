"""Pytest configuration for the intake service test suite."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest


def _ensure_src_on_path() -> None:
    """Add the services src directory to ``sys.path`` for imports."""

    src_dir = Path(__file__).resolve().parent.parent / "src"
    src_path = str(src_dir)
    if src_dir.is_dir() and src_path not in sys.path:
        sys.path.insert(0, src_path)


_ensure_src_on_path()

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from peddlewest.intake import metrics  # noqa: E402
from peddlewest.intake.app import create_app  # noqa: E402
from peddlewest.intake.config import ServiceSettings  # noqa: E402
from peddlewest.intake.models.draft import AssessmentDraft, empty_draft, update_draft  # noqa: E402
from peddlewest.intake.settings import RemoteSettings, get_remote_settings  # noqa: E402

_REMOTE_ENV_NAMES = (
    "PEDDLEWEST_GOOGLE_CLIENT_ID",
    "PEDDLEWEST_GOOGLE_CLIENT_SECRET",
    "PEDDLEWEST_GOOGLE_REFRESH_TOKEN",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REFRESH_TOKEN",
)

VALID_ANSWERS: tuple[tuple[str, Any], ...] = (
    ("contact.firstName", "Ada"),
    ("contact.lastName", "Lovelace"),
    ("contact.email", "ada@x.io"),
    ("contact.phone", "555-0100"),
    ("basics.age", "34"),
    ("basics.education", "Master"),
    ("language.ieltsListening", "8"),
    ("language.ieltsReading", "7.5"),
    ("language.ieltsWriting", "7"),
    ("language.ieltsSpeaking", "7"),
    ("work.0.title", "Engineer"),
    ("work.0.employer", "Acme"),
    ("work.0.city", "Toronto"),
    ("work.0.country", "Canada"),
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep real credentials and counters from leaking between tests."""

    for name in _REMOTE_ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    get_remote_settings.cache_clear()
    metrics.reset()
    yield
    get_remote_settings.cache_clear()


@pytest.fixture()
def valid_answers() -> tuple[tuple[str, Any], ...]:
    return VALID_ANSWERS


@pytest.fixture()
def valid_draft() -> AssessmentDraft:
    """A draft that passes validation on every step."""

    draft = empty_draft()
    for path, value in VALID_ANSWERS:
        draft = update_draft(draft, path, value)
    return draft


@pytest.fixture()
def service_settings(tmp_path: Path) -> ServiceSettings:
    return ServiceSettings(data_dir=tmp_path / "data")


@pytest.fixture()
def disconnected_remote() -> RemoteSettings:
    return RemoteSettings(_env_file=None)


@pytest.fixture()
def service_app(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    disconnected_remote: RemoteSettings,
) -> Iterator[FastAPI]:
    """Provide the FastAPI application with a temporary data directory."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("INTAKE_DATA_DIR", str(tmp_path / "data"))
    app = create_app(remote_settings=disconnected_remote)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def test_client(service_app: FastAPI) -> Iterator[TestClient]:
    """Yield a test client bound to the shared FastAPI application."""

    with TestClient(service_app) as client:
        client.app = service_app  # type: ignore[attr-defined]
        yield client
