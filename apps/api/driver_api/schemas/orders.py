from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from driver_api.models.order import Order
from driver_api.services.orders_service import OrderFields, OrderView


def _as_utc(value: datetime | None) -> datetime | None:
    # Clients that omit an offset mean UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SetStatusRequest(BaseModel):
    status: int
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    note: str | None = Field(default=None, max_length=2000)


class AdminSetStatusRequest(BaseModel):
    status: int


class SetStatusResponse(BaseModel):
    message: str = "Status saved"
    status: str


class OrderBody(BaseModel):
    pickup_address: str = Field(max_length=500)
    delivery_address: str = Field(max_length=500)
    pickup_time: datetime | None = None
    delivery_time: datetime | None = None
    cargo_info: str = ""

    @field_validator("pickup_time", "delivery_time")
    @classmethod
    def normalize_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def to_fields(self) -> OrderFields:
        return OrderFields(
            pickup_address=self.pickup_address,
            delivery_address=self.delivery_address,
            pickup_time=self.pickup_time,
            delivery_time=self.delivery_time,
            cargo_info=self.cargo_info,
        )


class OrderCreate(OrderBody):
    driver_id: int | None = None
    status: int | None = None


class AssignDriverRequest(BaseModel):
    driver_id: int | None = None


class OrderResponse(BaseModel):
    id: int
    order_number: str
    pickup_address: str
    delivery_address: str
    pickup_time: datetime | None
    delivery_time: datetime | None
    cargo_info: str
    driver_id: int | None
    driver_name: str | None
    status: str

    pipeline_stage: str
    is_completed_by_admin: bool
    completed_utc: datetime | None
    is_invoiced: bool
    invoiced_utc: datetime | None
    is_archived: bool
    archived_utc: datetime | None
    is_paid: bool
    paid_utc: datetime | None

    contractor_name: str
    payment_due_date: date | None
    has_invoice: bool

    epod_blob_name: str | None
    epod_status: str | None

    last_problem_note: str | None = None
    last_problem_utc: datetime | None = None
    problem_at_status: str | None = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        epod = order.epod_file
        return cls(
            id=order.id,
            order_number=order.order_number,
            pickup_address=order.pickup_address,
            delivery_address=order.delivery_address,
            pickup_time=order.pickup_time,
            delivery_time=order.delivery_time,
            cargo_info=order.cargo_info,
            driver_id=order.driver_id,
            driver_name=order.driver.full_name if order.driver else None,
            status=order.status.label,
            pipeline_stage=order.pipeline_stage.value,
            is_completed_by_admin=order.is_completed_by_admin,
            completed_utc=order.completed_utc,
            is_invoiced=order.is_invoiced,
            invoiced_utc=order.invoiced_utc,
            is_archived=order.is_archived,
            archived_utc=order.archived_utc,
            is_paid=order.is_paid,
            paid_utc=order.paid_utc,
            contractor_name=order.contractor_name,
            payment_due_date=order.payment_due_date,
            has_invoice=bool(order.invoice_blob_name),
            epod_blob_name=epod.blob_name if epod and epod.blob_name else None,
            epod_status=epod.status.label if epod else None,
        )

    @classmethod
    def from_view(cls, view: OrderView) -> "OrderResponse":
        response = cls.from_order(view.order)
        if view.problem is not None:
            at_status = view.problem.problem_at_status
            response.last_problem_note = view.problem.last_problem_note
            response.last_problem_utc = view.problem.last_problem_utc
            response.problem_at_status = at_status.label if at_status is not None else None
        return response


class OrderListResponse(BaseModel):
    items: list[OrderResponse]


class StatusLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    timestamp_utc: datetime
    lat: float | None
    lng: float | None
    changed_by_role: str
    changed_by_user_id: int | None
    note: str | None

    @field_validator("status", mode="before")
    @classmethod
    def status_label(cls, value):
        return getattr(value, "label", value)


class StatusLogListResponse(BaseModel):
    items: list[StatusLogResponse]
