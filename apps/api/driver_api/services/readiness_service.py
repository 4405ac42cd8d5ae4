from collections.abc import Callable
from typing import Literal

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from driver_api.integrations.blob_storage import BlobStorageProtocol
from driver_api.integrations.errors import BlobStorageError
from driver_api.observability import log_event, metrics_store

ReadinessStatus = Literal["ok", "error"]


def safe_dependency_status(
    dependency_name: str,
    checker: Callable[[], ReadinessStatus],
) -> ReadinessStatus:
    metrics_store.increment("readiness_dependency_checked_total")
    try:
        status = checker()
    except Exception as exc:  # readiness must fail closed to degraded
        metrics_store.increment("readiness_dependency_error_total")
        log_event(f"readiness_dependency_check_failed dependency={dependency_name} error={type(exc).__name__}")
        return "error"

    if status != "ok":
        metrics_store.increment("readiness_dependency_error_total")
        return "error"
    return "ok"


def database_dependency_status(
    session_factory: Callable[[], Session],
) -> ReadinessStatus:
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return "error"
    return "ok"


def blob_storage_dependency_status(storage: BlobStorageProtocol) -> ReadinessStatus:
    try:
        storage.ping()
    except BlobStorageError:
        return "error"
    return "ok"
