"""Export the record ledger locally and deliver it remotely on a best-effort basis."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Sequence

import httpx

from .config import ServiceSettings
from .diagnostics import DiagnosticLogger
from .errors import LocalDeliveryError, RemoteDeliveryError
from .export import XLSX_MEDIA_TYPE, artifact_filename, build_workbook
from .metrics import record_export
from .models.export import ArtifactHandle, Delivered, DeliveryOutcome, ExportResult, LocalOnly
from .models.record import AssessmentRecord
from .persistence.atomic import write_bytes_atomic
from .remote import CredentialProvider, DriveUploader
from .resilience import CircuitOpenError, ResiliencePolicy, ServiceResilienceExecutor

LOGGER = logging.getLogger(__name__)


def remote_policy(settings: ServiceSettings) -> ResiliencePolicy:
    """Circuit configuration for remote delivery; each step carries its own timeout."""

    return ResiliencePolicy(
        name="remote_delivery",
        timeout_seconds=None,
        circuit_failure_threshold=settings.remote_circuit_failure_threshold,
        circuit_reset_seconds=settings.remote_circuit_reset_seconds,
    )


class ExportSyncService:
    """Serialize records, write the local artifact, then attempt remote delivery.

    The local copy is written exactly once per call and its failure is the
    only error raised to the caller. Remote problems are logged, recorded as
    diagnostics and folded into a :class:`LocalOnly` outcome.
    """

    def __init__(
        self,
        *,
        settings: ServiceSettings,
        diagnostics: DiagnosticLogger,
        credentials: CredentialProvider | None = None,
        uploader: DriveUploader | None = None,
        resilience: ServiceResilienceExecutor[str] | None = None,
    ) -> None:
        self._settings = settings
        self._diagnostics = diagnostics
        self._credentials = credentials
        self._uploader = uploader
        self._resilience = resilience or ServiceResilienceExecutor(remote_policy(settings))

    @property
    def resilience(self) -> ServiceResilienceExecutor[str]:
        return self._resilience

    async def export_and_sync(
        self,
        records: Sequence[AssessmentRecord],
        *,
        trigger: str = "admin",
    ) -> ExportResult:
        snapshot = list(records)
        created_at = datetime.now(timezone.utc)
        content = await asyncio.to_thread(build_workbook, snapshot, sheet_name=self._settings.sheet_name)

        try:
            artifact = await self._deliver_local(content, record_count=len(snapshot), created_at=created_at)
        except LocalDeliveryError:
            record_export(trigger, "failed")
            raise

        outcome = await self._deliver_remote(content)
        record_export(trigger, "delivered" if isinstance(outcome, Delivered) else "local_only")
        LOGGER.info(
            "export.completed",
            extra={
                "extra_payload": {
                    "trigger": trigger,
                    "filename": artifact.filename,
                    "record_count": artifact.record_count,
                    "delivery": outcome.status,
                }
            },
        )
        return ExportResult(artifact=artifact, outcome=outcome)

    async def _deliver_local(self, content: bytes, *, record_count: int, created_at: datetime) -> ArtifactHandle:
        filename = artifact_filename(self._settings.artifact_basename, created_at)
        target = self._settings.exports_dir / filename
        try:
            await asyncio.to_thread(write_bytes_atomic, target, content)
        except OSError as exc:
            details = {"path": target.as_posix(), "errno": exc.errno, "error": str(exc)}
            LOGGER.error("export.local_failed", extra={"extra_payload": details})
            raise LocalDeliveryError(
                "The spreadsheet artifact could not be written locally.",
                cause=exc,
                details={"path": target.as_posix(), "errno": exc.errno},
            ) from exc

        LOGGER.info(
            "export.local_written",
            extra={
                "extra_payload": {
                    "filename": filename,
                    "size_bytes": len(content),
                    "record_count": record_count,
                }
            },
        )
        return ArtifactHandle(
            path=target,
            filename=filename,
            media_type=XLSX_MEDIA_TYPE,
            size_bytes=len(content),
            record_count=record_count,
            created_at=created_at,
        )

    async def _deliver_remote(self, content: bytes) -> DeliveryOutcome:
        if not self._settings.remote_upload_enabled:
            return LocalOnly("disabled", "Remote delivery is disabled by configuration.")
        if self._credentials is None or self._uploader is None or not self._credentials.connected:
            return LocalOnly("not_connected", "Remote storage is not connected.")

        try:
            remote_id = await self._resilience.run(lambda: self._sync(content), label="remote_delivery")
        except CircuitOpenError as exc:
            LOGGER.info("export.remote_skipped", extra={"extra_payload": {"reason": "circuit_open"}})
            return LocalOnly("circuit_open", str(exc))
        except TimeoutError as exc:
            return self._remote_failed(LocalOnly("timeout", str(exc)))
        except RemoteDeliveryError as exc:
            return self._remote_failed(LocalOnly(exc.reason, exc.message), exc.details)  # type: ignore[arg-type]
        except httpx.HTTPError as exc:
            return self._remote_failed(LocalOnly("upload_failed", type(exc).__name__))
        except Exception as exc:
            return self._remote_failed(
                LocalOnly("remote_failed", type(exc).__name__),
                {"error": str(exc)},
            )

        LOGGER.info("export.remote_delivered", extra={"extra_payload": {"remote_id": remote_id}})
        return Delivered(remote_id=remote_id)

    async def _sync(self, content: bytes) -> str:
        assert self._credentials is not None and self._uploader is not None
        credential_timeout = self._settings.credential_timeout_seconds
        try:
            async with asyncio.timeout(credential_timeout):
                credential = await self._credentials.acquire()
        except TimeoutError:
            raise TimeoutError(f"Credential acquisition exceeded {credential_timeout:g}s.") from None

        upload_timeout = self._settings.upload_timeout_seconds
        try:
            async with asyncio.timeout(upload_timeout):
                return await self._uploader.upload(content, credential=credential)
        except TimeoutError:
            raise TimeoutError(f"Remote upload exceeded {upload_timeout:g}s.") from None

    def _remote_failed(self, outcome: LocalOnly, details: dict | None = None) -> LocalOnly:
        payload = {"reason": outcome.reason, "detail": outcome.detail, **(details or {})}
        LOGGER.warning("export.remote_failed", extra={"extra_payload": payload})
        self._log_diagnostic("REMOTE_DELIVERY_FAILED", "Remote delivery failed; artifact kept locally.", payload)
        return outcome

    def _log_diagnostic(self, code: str, message: str, details: dict) -> None:
        try:
            self._diagnostics.log(self._settings.diagnostics_root, code=code, message=message, details=details)
        except OSError as exc:
            LOGGER.warning(
                "diagnostics.write_failed",
                extra={"extra_payload": {"code": code, "error": str(exc)}},
            )


__all__ = ["ExportSyncService", "remote_policy"]
