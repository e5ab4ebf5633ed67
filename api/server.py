"""FastAPI application exposing the backup engine over a local REST interface."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from fastapi import Body, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backup import BackupService
from backup.clock import format_timestamp
from backup.errors import (
    BackupError,
    NotFoundError,
    StorageError,
    UnavailableError,
    ValidationError,
)
from backup.types import RestoreReport

from .auth import APIKeyAuth
from .models import (
    BackupConfigModel,
    BackupInfo,
    BackupListResponse,
    CheckBackupResponse,
    CreateBackupRequest,
    CreateBackupResponse,
    ExportResponse,
    HealthResponse,
    ImportRequest,
    RestoreResponse,
    SnapshotDocument,
)

LOGGER = logging.getLogger("burbujapp.api")

_ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (UnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


@dataclass(slots=True)
class APIServerConfig:
    """Runtime configuration for the FastAPI application."""

    service: BackupService
    api_key: Optional[str]
    cors_origins: Sequence[str] = ()
    app_version: str = "dev"


def _status_for(exc: BackupError) -> int:
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _restore_response(report: RestoreReport) -> RestoreResponse:
    return RestoreResponse(**report.to_dict())


def create_app(config: APIServerConfig) -> FastAPI:
    """Create a FastAPI application bound to the given configuration."""

    app = FastAPI(
        title="BurbujApp Backup API",
        version=config.app_version,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )

    allowed_origins = [origin for origin in config.cors_origins if origin]
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["*"],
        )

    auth_dependency = APIKeyAuth(config.api_key)
    service = config.service

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[override]
        start = time.perf_counter()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            status_code = response.status_code if response is not None else 500
            LOGGER.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, status_code, duration_ms)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid parameters", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(BackupError)
    async def backup_exception_handler(_request: Request, exc: BackupError):
        code = _status_for(exc)
        if code >= 500:
            LOGGER.error("backup operation failed: %s", exc)
        return JSONResponse(status_code=code, content={"error": str(exc), "type": type(exc).__name__})

    @app.get("/v1/health", response_model=HealthResponse)
    def health_check(_: str = Depends(auth_dependency)) -> HealthResponse:
        last = service.last_backup_at()
        due = service.next_backup_due()
        return HealthResponse(
            version=config.app_version,
            time_utc=format_timestamp(datetime.now(timezone.utc)),
            backups_dir=str(service.backups_dir),
            last_backup_utc=format_timestamp(last) if last else None,
            next_backup_due_utc=format_timestamp(due) if due else None,
        )

    @app.get("/v1/backups", response_model=BackupListResponse)
    def list_backups(_: str = Depends(auth_dependency)) -> BackupListResponse:
        results = [BackupInfo(**summary.to_dict()) for summary in service.list_backups()]
        return BackupListResponse(results=results)

    @app.post("/v1/backups", response_model=CreateBackupResponse, status_code=status.HTTP_201_CREATED)
    def create_backup(
        payload: Optional[CreateBackupRequest] = None,
        _: str = Depends(auth_dependency),
    ) -> CreateBackupResponse:
        manual = payload.manual if payload is not None else True
        path = service.create_backup(manual=manual)
        return CreateBackupResponse(filename=path.name, path=str(path), manual=manual)

    @app.get("/v1/backups/config", response_model=BackupConfigModel)
    def get_config(_: str = Depends(auth_dependency)) -> BackupConfigModel:
        return BackupConfigModel(**service.get_config().to_dict())

    @app.put("/v1/backups/config", response_model=BackupConfigModel)
    def put_config(payload: BackupConfigModel, _: str = Depends(auth_dependency)) -> BackupConfigModel:
        saved = service.set_config(payload.model_dump())
        return BackupConfigModel(**saved.to_dict())

    @app.post("/v1/backups/check", response_model=CheckBackupResponse)
    def check_backup(_: str = Depends(auth_dependency)) -> CheckBackupResponse:
        path = service.check_automatic_backup()
        return CheckBackupResponse(created=path is not None, filename=path.name if path else None)

    @app.post("/v1/backups/import", response_model=SnapshotDocument)
    def import_backup(payload: ImportRequest, _: str = Depends(auth_dependency)) -> SnapshotDocument:
        snapshot = service.import_backup(Path(payload.path))
        if snapshot is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="import cancelled")
        return SnapshotDocument(**snapshot.to_document())

    @app.post("/v1/backups/restore", response_model=RestoreResponse)
    def restore_backup(
        payload: Dict[str, Any] = Body(..., description="Snapshot document to apply."),
        _: str = Depends(auth_dependency),
    ) -> RestoreResponse:
        return _restore_response(service.restore_backup(payload))

    @app.delete("/v1/backups/{filename}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_backup(filename: str, _: str = Depends(auth_dependency)) -> Response:
        service.delete_backup(filename)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/v1/backups/{filename}/export", response_model=ExportResponse)
    def export_backup(filename: str, _: str = Depends(auth_dependency)) -> ExportResponse:
        shared = service.export_backup(filename)
        return ExportResponse(filename=filename, shared_path=str(shared))

    @app.post("/v1/backups/{filename}/restore", response_model=RestoreResponse)
    def restore_stored_backup(filename: str, _: str = Depends(auth_dependency)) -> RestoreResponse:
        return _restore_response(service.restore_from_file(filename))

    return app


__all__ = ["APIServerConfig", "create_app"]
