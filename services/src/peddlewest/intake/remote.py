"""Remote delivery collaborators: OAuth credentials and Drive uploads.

Both classes talk HTTP through ``httpx.AsyncClient``. Tests and offline runs
pass an ``httpx.MockTransport`` instead of reaching Google.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, runtime_checkable

import httpx

from .errors import CredentialError, RemoteUploadError
from .export import XLSX_MEDIA_TYPE
from .settings import RemoteSettings

LOGGER = logging.getLogger(__name__)

MULTIPART_BOUNDARY = "-------314159265358979323846"


@dataclass(frozen=True, slots=True)
class ExternalCredential:
    """Short-lived bearer token for one export attempt. Never persisted."""

    access_token: str
    scope: str
    expires_at: datetime | None = None
    token_type: str = "Bearer"

    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def __repr__(self) -> str:
        return f"ExternalCredential(scope={self.scope!r}, expires_at={self.expires_at!r})"


@runtime_checkable
class CredentialProvider(Protocol):
    """Source of bearer credentials for the remote store."""

    @property
    def connected(self) -> bool:
        """Whether the provider holds enough material to request a credential."""

    async def acquire(self) -> ExternalCredential:
        """Return a fresh credential or raise :class:`CredentialError`."""


class OAuthCredentialProvider:
    """Exchange the configured refresh token for an access token."""

    def __init__(
        self,
        settings: RemoteSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def connected(self) -> bool:
        return self._settings.is_connected

    async def acquire(self) -> ExternalCredential:
        settings = self._settings
        if not settings.is_connected:
            raise CredentialError("Remote storage is not connected.", {"reason": "not_connected"})

        form = {
            "grant_type": "refresh_token",
            "client_id": settings.client_id or "",
            "refresh_token": settings.refresh_token or "",
            "scope": settings.scope,
        }
        if settings.client_secret:
            form["client_secret"] = settings.client_secret

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(settings.token_url, data=form)
            except httpx.HTTPError as exc:
                raise CredentialError("Token request failed.", {"error": type(exc).__name__}) from exc

        payload = _json_body(response)
        if response.is_error:
            raise CredentialError(
                "Token endpoint declined the refresh grant.",
                {"status_code": response.status_code, "error": str(payload.get("error", ""))},
            )
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise CredentialError("Token endpoint response did not include an access token.")

        expires_at = None
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, (int, float)):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=float(expires_in))
        return ExternalCredential(
            access_token=access_token,
            scope=str(payload.get("scope") or settings.scope),
            expires_at=expires_at,
            token_type=str(payload.get("token_type") or "Bearer"),
        )


def build_multipart_body(
    content: bytes,
    *,
    filename: str,
    media_type: str,
    boundary: str = MULTIPART_BOUNDARY,
) -> bytes:
    """Return a ``multipart/related`` body with a JSON metadata part and a base64 content part."""

    metadata = json.dumps({"name": filename, "mimeType": media_type})
    encoded = base64.b64encode(content).decode("ascii")
    parts = [
        f"--{boundary}",
        "Content-Type: application/json; charset=UTF-8",
        "",
        metadata,
        f"--{boundary}",
        f"Content-Type: {media_type}",
        "Content-Transfer-Encoding: base64",
        "",
        encoded,
        f"--{boundary}--",
        "",
    ]
    return "\r\n".join(parts).encode("utf-8")


class DriveUploader:
    """Upload a workbook as a new remote file and return its identifier."""

    def __init__(
        self,
        settings: RemoteSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def upload(
        self,
        content: bytes,
        *,
        credential: ExternalCredential,
        filename: str | None = None,
        media_type: str = XLSX_MEDIA_TYPE,
    ) -> str:
        name = filename or self._settings.remote_filename
        body = build_multipart_body(content, filename=name, media_type=media_type)
        headers = {
            "Authorization": credential.authorization_header(),
            "Content-Type": f"multipart/related; boundary={MULTIPART_BOUNDARY}",
        }

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(self._settings.upload_url, content=body, headers=headers)
            except httpx.HTTPError as exc:
                raise RemoteUploadError("Upload request failed.", {"error": type(exc).__name__}) from exc

        if response.is_error:
            raise RemoteUploadError(
                "Remote store rejected the upload.",
                {"status_code": response.status_code},
                status_code=response.status_code,
            )
        remote_id = _json_body(response).get("id")
        if not isinstance(remote_id, str) or not remote_id:
            raise RemoteUploadError(
                "Upload response did not include a file id.",
                status_code=response.status_code,
            )
        LOGGER.info(
            "remote.uploaded",
            extra={"extra_payload": {"remote_id": remote_id, "size_bytes": len(content)}},
        )
        return remote_id


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


__all__ = [
    "CredentialProvider",
    "DriveUploader",
    "ExternalCredential",
    "MULTIPART_BOUNDARY",
    "OAuthCredentialProvider",
    "build_multipart_body",
]
