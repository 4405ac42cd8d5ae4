from __future__ import annotations

from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from driver_api.config import is_production_mode, settings
from driver_api.db.base import Base
from driver_api.observability import log_event

_ALEMBIC_VERSION_TABLE = "alembic_version"


class SchemaOutOfDateError(RuntimeError):
    def __init__(self, current: str | None, head: str) -> None:
        super().__init__(
            f"Database schema at {current or 'no revision'}, expected {head}. "
            "Run: alembic upgrade head"
        )
        self.current = current
        self.head = head


def alembic_config() -> Config:
    # apps/api/alembic.ini
    return Config(str(Path(__file__).resolve().parents[2] / "alembic.ini"))


def get_alembic_head_revision() -> str:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def get_current_db_revision(engine: Engine) -> str | None:
    if not inspect(engine).has_table(_ALEMBIC_VERSION_TABLE):
        return None

    with engine.connect() as connection:
        result = connection.execute(text(f"SELECT version_num FROM {_ALEMBIC_VERSION_TABLE} LIMIT 1"))
        return result.scalar_one_or_none()


def assert_db_is_up_to_date(engine: Engine) -> None:
    current = get_current_db_revision(engine)
    head = get_alembic_head_revision()
    if current != head:
        raise SchemaOutOfDateError(current, head)


def maybe_create_schema(engine: Engine) -> bool:
    """Create tables straight from the models when auto-create is on.

    Returns whether anything was attempted. Never allowed in production, where
    the migration history is the only source of schema changes.
    """
    if not settings.auto_create_schema:
        return False
    if is_production_mode():
        raise RuntimeError(
            "DRIVER_API_AUTO_CREATE_SCHEMA must be disabled in DRIVER_API_APP_MODE=production"
        )

    import driver_api.models  # noqa: F401 (register all SQLAlchemy models)

    Base.metadata.create_all(bind=engine)
    log_event("database_schema_created_from_models")
    return True


def prepare_schema(engine: Engine) -> None:
    if maybe_create_schema(engine):
        return
    if settings.testing:
        return
    assert_db_is_up_to_date(engine)
