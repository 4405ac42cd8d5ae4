import enum
from datetime import date, datetime

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from driver_api.db.base import Base
from driver_api.db.types import UtcDateTime, utc_now


class OrderStatus(enum.IntEnum):
    PLANNED = 0
    TO_PICKUP = 1
    LOADED = 2
    TO_DELIVERY = 3
    DELIVERED = 4
    PROBLEM = 5

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    OrderStatus.PLANNED: "Planned",
    OrderStatus.TO_PICKUP: "ToPickup",
    OrderStatus.LOADED: "Loaded",
    OrderStatus.TO_DELIVERY: "ToDelivery",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.PROBLEM: "Problem",
}


class PipelineStage(str, enum.Enum):
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"
    INVOICED = "INVOICED"
    ARCHIVED = "ARCHIVED"


_STAGE_RANK = {
    PipelineStage.OPEN: 0,
    PipelineStage.COMPLETED: 1,
    PipelineStage.INVOICED: 2,
    PipelineStage.ARCHIVED: 3,
}


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)

    pickup_address: Mapped[str] = mapped_column(String(500), nullable=False)
    delivery_address: Mapped[str] = mapped_column(String(500), nullable=False)
    pickup_time: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    delivery_time: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    cargo_info: Mapped[str] = mapped_column(Text, nullable=False, default="")

    driver_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.PLANNED
    )

    pipeline_stage: Mapped[PipelineStage] = mapped_column(
        Enum(PipelineStage, name="order_pipeline_stage"),
        nullable=False,
        default=PipelineStage.OPEN,
    )
    completed_utc: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    invoiced_utc: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    archived_utc: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paid_utc: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)

    contractor_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # Business calendar date, intentionally not a UTC instant.
    payment_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    invoice_blob_name: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    created_utc: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False, default=utc_now)

    driver = relationship("Driver", back_populates="orders")
    epod_file = relationship(
        "EpodFile",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    status_logs = relationship(
        "OrderStatusLog",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderStatusLog.timestamp_utc.desc()",
    )

    def stage_at_least(self, stage: PipelineStage) -> bool:
        return _STAGE_RANK[self.pipeline_stage] >= _STAGE_RANK[stage]

    @property
    def is_completed_by_admin(self) -> bool:
        return self.stage_at_least(PipelineStage.COMPLETED)

    @property
    def is_invoiced(self) -> bool:
        return self.stage_at_least(PipelineStage.INVOICED)

    @property
    def is_archived(self) -> bool:
        return self.pipeline_stage == PipelineStage.ARCHIVED

    @property
    def has_complete_invoice_data(self) -> bool:
        return (
            bool(self.contractor_name and self.contractor_name.strip())
            and self.payment_due_date is not None
            and bool(self.invoice_blob_name and self.invoice_blob_name.strip())
        )
