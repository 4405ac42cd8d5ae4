import pytest
from sqlalchemy import func, select

from driver_api import errors
from driver_api.auth.passwords import verify_password
from driver_api.models.driver import Driver, User, UserRole
from driver_api.services import drivers_service
from driver_api.services.drivers_service import NewDriver


def _count(db_session, model) -> int:
    return db_session.scalar(select(func.count()).select_from(model))


def test_create_driver_creates_user_driver_and_vehicle(db_session):
    driver = drivers_service.create_driver(
        db_session,
        NewDriver(
            login=" piotr ",
            password="s3cret!",
            full_name=" Piotr Zielinski ",
            phone="+48 500 100 200",
            plate_number="WA 12345",
        ),
    )

    assert driver.full_name == "Piotr Zielinski"
    assert driver.user.login == "piotr"
    assert driver.user.role == UserRole.DRIVER
    assert driver.vehicle.plate_number == "WA 12345"
    assert verify_password("s3cret!", driver.user.password_hash).ok


@pytest.mark.parametrize(
    "payload",
    [
        NewDriver(login="", password="secret1", full_name="X"),
        NewDriver(login="short", password="12345", full_name="X"),
        NewDriver(login="noname", password="secret1", full_name="   "),
    ],
)
def test_create_driver_validates_input(db_session, payload):
    with pytest.raises(errors.InvalidArgument):
        drivers_service.create_driver(db_session, payload)

    assert _count(db_session, User) == 0


def test_duplicate_login_is_rejected(db_session, driver):
    with pytest.raises(errors.InvalidArgument, match="Login already exists"):
        drivers_service.create_driver(
            db_session, NewDriver(login="jan", password="secret1", full_name="Another Jan")
        )


def test_failed_driver_insert_rolls_back_user(db_session, monkeypatch):
    original_flush = db_session.flush
    calls = {"count": 0}

    def failing_second_flush(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 2:
            raise RuntimeError("driver insert failed")
        return original_flush(*args, **kwargs)

    monkeypatch.setattr(db_session, "flush", failing_second_flush)

    with pytest.raises(RuntimeError):
        drivers_service.create_driver(
            db_session, NewDriver(login="tx", password="secret1", full_name="Tx Test")
        )

    monkeypatch.undo()
    assert _count(db_session, User) == 0
    assert _count(db_session, Driver) == 0


def test_list_drivers_sorted_by_name(db_session, driver, other_driver):
    names = [item.full_name for item in drivers_service.list_drivers(db_session)]
    assert names == ["Anna Nowak", "Jan Kowalski"]
