import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import DisconnectionError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from driver_api.config import allowed_origins, ensure_secure_runtime_settings, settings
from driver_api.db.migration_check import prepare_schema
from driver_api.db.session import engine
from driver_api.errors import DomainError
from driver_api.integrations.errors import BlobStorageError
from driver_api.observability import configure_logging, log_event, metrics_store, set_request_id
from driver_api.routers.admin_drivers import router as admin_drivers_router
from driver_api.routers.admin_orders import router as admin_orders_router
from driver_api.routers.epod import router as epod_router
from driver_api.routers.health import router as health_router
from driver_api.routers.meta import router as meta_router
from driver_api.routers.metrics import router as metrics_router
from driver_api.routers.orders import router as orders_router

logger = logging.getLogger("driver_api")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    ensure_secure_runtime_settings()
    prepare_schema(engine)
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Delivery orders for drivers: status, ePOD, invoicing and archival",
    lifespan=lifespan,
)


def custom_openapi():
    """
    Adds HTTP Bearer (JWT) auth to the OpenAPI schema so Swagger UI shows an
    'Authorize' button and sends the Authorization: Bearer <token> header.
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    openapi_schema["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    metrics_store.increment("http_requests_total")
    metrics_store.increment(f"http_responses_{response.status_code // 100}xx_total")
    metrics_store.observe("http_request_duration_seconds", elapsed)
    order_id = request.path_params.get("order_id")
    log_event(
        f"http_request method={request.method} path={request.url.path} status={response.status_code}",
        order_id=int(order_id) if order_id and str(order_id).isdigit() else None,
    )
    return response


def _message_body(message: str, code: str | None = None) -> dict:
    body = {"message": message}
    if code:
        body["code"] = code
    return body


@app.exception_handler(DomainError)
async def domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    metrics_store.increment(f"domain_error_{exc.http_status}_total")
    return JSONResponse(status_code=exc.http_status, content=_message_body(exc.message, exc.code))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_message_body(message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_message_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(OperationalError)
@app.exception_handler(DisconnectionError)
async def database_unavailable_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.warning("database unavailable: %s", type(exc).__name__)
    metrics_store.increment("database_unavailable_total")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_message_body("Database unavailable", "DATABASE_UNAVAILABLE"),
    )


@app.exception_handler(BlobStorageError)
async def blob_storage_error_handler(_request: Request, exc: BlobStorageError) -> JSONResponse:
    logger.warning("blob storage %s failed: %s", exc.operation, exc.code)
    metrics_store.increment("blob_storage_error_total")
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE if exc.retryable else status.HTTP_502_BAD_GATEWAY
    )
    return JSONResponse(status_code=status_code, content=_message_body(exc.message, exc.code))


@app.exception_handler(Exception)
async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error", exc_info=exc)
    metrics_store.increment("unhandled_error_total")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_message_body("Internal server error"),
    )


app.include_router(health_router)
app.include_router(meta_router)
app.include_router(orders_router)
app.include_router(admin_orders_router)
app.include_router(admin_drivers_router)
app.include_router(epod_router)
app.include_router(metrics_router)
