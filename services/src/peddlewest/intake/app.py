"""FastAPI application factory for the Peddle West intake service."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Final

import httpx
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import ServiceSettings
from .diagnostics import DiagnosticLogger
from .export_service import ExportSyncService
from .http import (
    TRACE_ID_HEADER,
    build_error_payload,
    default_error_responses,
    ensure_trace_id,
    get_trace_context,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
    resolve_trace_id,
)
from .metrics import record_request
from .persistence import DraftStore, FallbackStorage, JsonFileStorage, RecordLedger
from .remote import DriveUploader, OAuthCredentialProvider
from .routers import api_router
from .routers.health import router as health_router
from .service_errors import ServiceError
from .settings import RemoteSettings, get_remote_settings
from .wizard import StepController

LOGGER = logging.getLogger(__name__)

SERVICE_VERSION: Final[str] = "1.0.0"


class TraceMiddleware:
    """ASGI middleware that applies trace IDs and unified error handling."""

    def __init__(self, app: ASGIApp, *, trace_context: ContextVar[str]) -> None:
        self.app = app
        self._trace_context = trace_context

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        trace_id = resolve_trace_id(request.headers.get(TRACE_ID_HEADER))
        token = self._trace_context.set(trace_id)
        scope.setdefault("state", {})
        scope["state"]["trace_id"] = trace_id  # type: ignore[index]

        status_holder: dict[str, int | None] = {"status": None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.setdefault(TRACE_ID_HEADER, trace_id)
                status_holder["status"] = message.get("status")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except HTTPException as exc:
            response = http_exception_to_response(exc, trace_id)
            status_holder["status"] = exc.status_code
            await response(scope, receive, send)
        except RequestValidationError as exc:
            response = request_validation_response(exc, trace_id)
            status_holder["status"] = status.HTTP_400_BAD_REQUEST
            await response(scope, receive, send)
        except ServiceError as exc:
            payload = build_error_payload(
                code=exc.code,
                message=exc.message,
                details=exc.details,
                trace_id=trace_id,
            )
            response = JSONResponse(
                status_code=exc.status_code,
                content=payload.model_dump(),
                headers={TRACE_ID_HEADER: trace_id},
            )
            status_holder["status"] = exc.status_code
            diagnostics = getattr(scope["app"].state, "diagnostics", None)
            if diagnostics and exc.diagnostics_root is not None:
                audit_details = dict(exc.details)
                audit_details.setdefault("method", request.method)
                audit_details.setdefault("path", str(request.url.path))
                audit_details.setdefault("trace_id", trace_id)
                try:
                    diagnostics.log(
                        exc.diagnostics_root,
                        code=exc.code,
                        message=exc.message,
                        details=audit_details,
                    )
                except OSError as log_exc:
                    LOGGER.warning(
                        "diagnostics.write_failed",
                        extra={"extra_payload": {"code": exc.code, "error": str(log_exc)}},
                    )
            await response(scope, receive, send)
        except Exception as exc:
            LOGGER.exception(
                "Unhandled error processing %s %s",
                request.method,
                request.url.path,
                exc_info=exc,
            )
            response = internal_error_response(trace_id)
            status_holder["status"] = status.HTTP_500_INTERNAL_SERVER_ERROR
            await response(scope, receive, send)
        finally:
            self._trace_context.reset(token)
            status_code = status_holder["status"] or status.HTTP_500_INTERNAL_SERVER_ERROR
            record_request(request.method, status_code)


def create_app(
    settings: ServiceSettings | None = None,
    *,
    remote_settings: RemoteSettings | None = None,
    remote_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Construct the FastAPI application and wire the intake pipeline."""

    service_settings = settings or ServiceSettings.from_environment()
    remote = remote_settings or get_remote_settings()

    application = FastAPI(
        title="Peddle West Intake Service",
        version=SERVICE_VERSION,
        responses=default_error_responses(),
    )
    application.state.settings = service_settings
    application.state.remote_settings = remote
    application.state.service_version = SERVICE_VERSION
    application.state.diagnostics = DiagnosticLogger()

    storage = FallbackStorage(JsonFileStorage(service_settings.storage_dir))
    application.state.storage = storage
    application.state.ledger = RecordLedger(storage)
    application.state.exporter = ExportSyncService(
        settings=service_settings,
        diagnostics=application.state.diagnostics,
        credentials=OAuthCredentialProvider(remote, transport=remote_transport),
        uploader=DriveUploader(remote, transport=remote_transport),
    )
    application.state.controller = StepController(
        store=DraftStore(storage),
        ledger=application.state.ledger,
        exporter=application.state.exporter,
        export_on_submit=service_settings.export_on_submit,
    )

    async def http_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, HTTPException):
            return http_exception_to_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def validation_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, RequestValidationError):
            return request_validation_response(exc, trace_id)
        return internal_error_response(trace_id)

    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_origin_regex=r"^https?://(?:127\.0\.0\.1|localhost)(?::\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(TraceMiddleware, trace_context=get_trace_context())

    application.include_router(health_router)
    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def service_index(request: Request) -> dict[str, str]:
        """Return a lightweight service manifest for manual probes."""

        version = getattr(request.app.state, "service_version", SERVICE_VERSION)
        return {
            "service": "peddlewest-intake",
            "version": version,
            "api_base": "/api/v1",
        }

    return application


__all__ = ["SERVICE_VERSION", "TraceMiddleware", "create_app"]
