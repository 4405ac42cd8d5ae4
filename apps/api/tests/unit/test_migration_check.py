from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect, text

from driver_api.config import settings
from driver_api.db.migration_check import (
    SchemaOutOfDateError,
    assert_db_is_up_to_date,
    get_alembic_head_revision,
    get_current_db_revision,
    maybe_create_schema,
    prepare_schema,
)


@pytest.fixture
def sqlite_engine(tmp_path: Path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'migration-check.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


def _stamp(engine, revision: str) -> None:
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)"))
        connection.execute(
            text("INSERT INTO alembic_version (version_num) VALUES (:rev)"), {"rev": revision}
        )


def test_head_revision_is_core_tables_migration():
    assert get_alembic_head_revision() == "20261018_0001"


def test_unversioned_database_is_out_of_date(sqlite_engine):
    assert get_current_db_revision(sqlite_engine) is None

    with pytest.raises(SchemaOutOfDateError, match="alembic upgrade head") as exc_info:
        assert_db_is_up_to_date(sqlite_engine)

    assert exc_info.value.current is None


def test_database_at_head_passes(sqlite_engine):
    head = get_alembic_head_revision()
    _stamp(sqlite_engine, head)

    assert get_current_db_revision(sqlite_engine) == head
    assert_db_is_up_to_date(sqlite_engine)


def test_stale_revision_is_reported(sqlite_engine):
    _stamp(sqlite_engine, "19990101_0000")

    with pytest.raises(SchemaOutOfDateError) as exc_info:
        assert_db_is_up_to_date(sqlite_engine)

    assert exc_info.value.current == "19990101_0000"


def test_auto_create_builds_tables_outside_production(sqlite_engine, monkeypatch):
    monkeypatch.setattr(settings, "auto_create_schema", True)
    monkeypatch.setattr(settings, "app_mode", "demo")

    assert maybe_create_schema(sqlite_engine) is True

    tables = set(inspect(sqlite_engine).get_table_names())
    assert {"orders", "order_status_logs", "epod_files", "drivers", "users"} <= tables


def test_auto_create_is_refused_in_production(sqlite_engine, monkeypatch):
    monkeypatch.setattr(settings, "auto_create_schema", True)
    monkeypatch.setattr(settings, "app_mode", "production")

    with pytest.raises(RuntimeError, match="AUTO_CREATE_SCHEMA"):
        maybe_create_schema(sqlite_engine)


def test_auto_create_disabled_does_nothing(sqlite_engine, monkeypatch):
    monkeypatch.setattr(settings, "auto_create_schema", False)

    assert maybe_create_schema(sqlite_engine) is False
    assert inspect(sqlite_engine).get_table_names() == []


def test_prepare_schema_fails_fast_outside_tests(sqlite_engine, monkeypatch):
    monkeypatch.setattr(settings, "auto_create_schema", False)
    monkeypatch.setattr(settings, "testing", False)

    with pytest.raises(SchemaOutOfDateError):
        prepare_schema(sqlite_engine)


def test_prepare_schema_skips_revision_check_in_tests(sqlite_engine, monkeypatch):
    monkeypatch.setattr(settings, "auto_create_schema", False)
    monkeypatch.setattr(settings, "testing", True)

    prepare_schema(sqlite_engine)
