from pydantic import BaseModel, Field

from driver_api.models.driver import Driver
from driver_api.services.drivers_service import NewDriver


class DriverCreate(BaseModel):
    login: str = Field(max_length=100)
    password: str
    full_name: str = Field(max_length=255)
    phone: str = Field(default="", max_length=50)
    plate_number: str | None = Field(default=None, max_length=20)

    def to_new_driver(self) -> NewDriver:
        return NewDriver(
            login=self.login,
            password=self.password,
            full_name=self.full_name,
            phone=self.phone,
            plate_number=self.plate_number,
        )


class DriverResponse(BaseModel):
    id: int
    user_id: int
    login: str | None
    full_name: str
    phone: str
    plate_number: str | None

    @classmethod
    def from_driver(cls, driver: Driver) -> "DriverResponse":
        return cls(
            id=driver.id,
            user_id=driver.user_id,
            login=driver.user.login if driver.user else None,
            full_name=driver.full_name,
            phone=driver.phone,
            plate_number=driver.vehicle.plate_number if driver.vehicle else None,
        )


class DriverListResponse(BaseModel):
    items: list[DriverResponse]
