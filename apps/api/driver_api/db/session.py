from __future__ import annotations

import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from driver_api.config import settings
from driver_api.observability import log_event

# Detect SQLite usage
is_sqlite = settings.database_url.startswith("sqlite")
is_sqlite_memory = is_sqlite and ":memory:" in settings.database_url

engine_kwargs: dict = {"pool_pre_ping": True}

if is_sqlite:
    engine_kwargs["connect_args"] = {"check_same_thread": False}

    # Required so in-memory SQLite works across sessions in tests
    if is_sqlite_memory:
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(settings.database_url, **engine_kwargs)


def install_connect_retry(target: Engine, max_retries: int, backoff_s: float) -> None:
    """Retry transient DBAPI connect failures before they reach a request."""

    @event.listens_for(target, "do_connect")
    def _connect_with_retry(dialect, _conn_rec, cargs, cparams):
        transient = dialect.loaded_dbapi.OperationalError
        for attempt in range(max_retries + 1):
            try:
                return dialect.connect(*cargs, **cparams)
            except transient:
                if attempt >= max_retries:
                    raise
                log_event(f"database_connect_retry attempt={attempt + 1}")
                time.sleep(backoff_s * (2**attempt))
        return None


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, _conn_rec) -> None:
    if is_sqlite:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


install_connect_retry(engine, settings.db_connect_max_retries, settings.db_connect_backoff_s)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
