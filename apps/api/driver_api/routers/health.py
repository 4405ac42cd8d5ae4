from fastapi import APIRouter, Depends, Response, status

from driver_api.config import settings
from driver_api.db.session import SessionLocal
from driver_api.integrations.blob_storage import BlobStorageProtocol, get_blob_storage
from driver_api.schemas.health import (
    HealthResponse,
    ReadinessDependency,
    ReadinessResponse,
    VersionResponse,
)
from driver_api.services.readiness_service import (
    blob_storage_dependency_status,
    database_dependency_status,
    safe_dependency_status,
)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    summary="Readiness check",
    response_model=ReadinessResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadinessResponse}},
)
def readiness(
    response: Response,
    storage: BlobStorageProtocol = Depends(get_blob_storage),
) -> ReadinessResponse:
    dependencies = [
        ReadinessDependency(
            name="database",
            status=safe_dependency_status(
                "database", lambda: database_dependency_status(SessionLocal)
            ),
        ),
        ReadinessDependency(
            name="blob_storage",
            status=safe_dependency_status(
                "blob_storage", lambda: blob_storage_dependency_status(storage)
            ),
        ),
    ]

    readiness_status = "ok" if all(dep.status == "ok" for dep in dependencies) else "degraded"
    if readiness_status != "ok":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status=readiness_status, dependencies=dependencies)


@router.get("/api/version", summary="Service version", response_model=VersionResponse)
def version() -> VersionResponse:
    return VersionResponse(
        name=settings.app_name,
        version=settings.app_version,
        app_mode=settings.app_mode,
    )
