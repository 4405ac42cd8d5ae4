from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "driver-api-jwt-secret"
ALLOWED_APP_MODES = {"demo", "pilot", "production"}
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    app_name: str = "Driver Orders API"
    app_version: str = "0.1.0"
    app_mode: str = Field(default="pilot", validation_alias="DRIVER_API_APP_MODE")
    auto_create_schema: bool = Field(default=False, validation_alias="DRIVER_API_AUTO_CREATE_SCHEMA")

    database_url: str = Field(
        default="sqlite+pysqlite:///./driver_api.db",
        validation_alias="DRIVER_API_DATABASE_URL",
    )
    db_connect_max_retries: int = Field(default=5, validation_alias="DRIVER_API_DB_CONNECT_MAX_RETRIES")
    db_connect_backoff_s: float = 0.5

    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    jwt_secret: str = DEFAULT_JWT_SECRET
    allowed_roles: str = "Admin,Driver"
    testing: bool = Field(default=False, validation_alias="DRIVER_API_TESTING")

    blob_bucket: str = "epod"
    blob_endpoint_url: str = ""
    blob_region: str = "eu-central-1"
    blob_access_key_id: str = ""
    blob_secret_access_key: str = ""
    blob_timeout_s: float = 5.0
    blob_max_retries: int = 3

    epod_upload_url_ttl_s: int = 10 * 60
    epod_download_url_ttl_s: int = 5 * 60
    epod_content_type: str = "application/pdf"
    max_photo_upload_bytes: int = 50_000_000

    order_number_prefix: str = "Z-"
    order_number_max_attempts: int = 5

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("app_mode")
    @classmethod
    def validate_app_mode(cls, value: str) -> str:
        mode = value.lower().strip()
        if mode not in ALLOWED_APP_MODES:
            allowed = ", ".join(sorted(ALLOWED_APP_MODES))
            raise ValueError(f"DRIVER_API_APP_MODE must be one of: {allowed}")
        return mode


settings = Settings()


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]


def allowed_roles_list() -> list[str]:
    return [value.strip() for value in settings.allowed_roles.split(",") if value.strip()]


def is_production_mode() -> bool:
    return settings.app_mode == "production"


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if not settings.testing and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError(
            "JWT_SECRET must be set to a non-default value when DRIVER_API_TESTING is false"
        )
    if not settings.testing and len(settings.jwt_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            "JWT_SECRET must be at least "
            f"{MIN_SECRET_LENGTH} characters when DRIVER_API_TESTING is false"
        )
    if not settings.testing and _is_sqlite_url(settings.database_url):
        raise RuntimeError(
            "DRIVER_API_DATABASE_URL must use postgres when DRIVER_API_TESTING is false"
        )
    if not settings.testing and not settings.blob_bucket.strip():
        raise RuntimeError("BLOB_BUCKET must be set when DRIVER_API_TESTING is false")


def _is_sqlite_url(database_url: str) -> bool:
    value = database_url.strip().lower()
    return value.startswith("sqlite")
