from dataclasses import dataclass

ADMIN_ROLE = "Admin"
DRIVER_ROLE = "Driver"


@dataclass(frozen=True)
class AdminActor:
    user_id: int | None

    @property
    def role(self) -> str:
        return ADMIN_ROLE


@dataclass(frozen=True)
class DriverActor:
    """An authenticated driver. ``driver_id`` is None when no profile is linked."""

    user_id: int | None
    driver_id: int | None

    @property
    def role(self) -> str:
        return DRIVER_ROLE


Actor = AdminActor | DriverActor
