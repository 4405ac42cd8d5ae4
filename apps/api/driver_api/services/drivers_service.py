from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from driver_api import errors
from driver_api.auth.passwords import hash_password
from driver_api.models.driver import Driver, User, UserRole, Vehicle
from driver_api.observability import log_event

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class NewDriver:
    login: str
    password: str
    full_name: str
    phone: str = ""
    plate_number: str | None = None


def list_drivers(db: Session) -> list[Driver]:
    drivers = db.scalars(
        select(Driver)
        .options(selectinload(Driver.user), selectinload(Driver.vehicle))
        .order_by(Driver.full_name.asc(), Driver.id.asc())
    )
    return list(drivers)


def create_driver(db: Session, payload: NewDriver) -> Driver:
    login = payload.login.strip()
    full_name = payload.full_name.strip()
    if not login:
        raise errors.InvalidArgument("login is required.")
    if len(payload.password or "") < MIN_PASSWORD_LENGTH:
        raise errors.InvalidArgument(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        )
    if not full_name:
        raise errors.InvalidArgument("full_name is required.")
    if db.scalar(select(User.id).where(User.login == login)) is not None:
        raise errors.InvalidArgument("Login already exists.")

    # User and Driver land together or not at all.
    try:
        user = User(login=login, password_hash=hash_password(payload.password), role=UserRole.DRIVER)
        db.add(user)
        db.flush()

        driver = Driver(user_id=user.id, full_name=full_name, phone=(payload.phone or "").strip())
        db.add(driver)
        db.flush()

        if payload.plate_number and payload.plate_number.strip():
            db.add(Vehicle(driver_id=driver.id, plate_number=payload.plate_number.strip()))

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise errors.InvalidArgument("Login already exists.") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(driver)
    log_event("driver_created", driver_id=driver.id)
    return driver
