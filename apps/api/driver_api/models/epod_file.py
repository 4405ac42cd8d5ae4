import enum
from datetime import datetime

from sqlalchemy import Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from driver_api.db.base import Base
from driver_api.db.types import UtcDateTime, utc_now


class EpodStatus(enum.IntEnum):
    PENDING = 0
    CONFIRMED = 1
    FAILED = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


class EpodFile(Base):
    __tablename__ = "epod_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    blob_name: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    created_utc: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False, default=utc_now)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    status: Mapped[EpodStatus] = mapped_column(
        Enum(EpodStatus, name="epod_status"), nullable=False, default=EpodStatus.PENDING
    )
    uploaded_utc: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    confirmed_utc: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)

    order = relationship("Order", back_populates="epod_file")
