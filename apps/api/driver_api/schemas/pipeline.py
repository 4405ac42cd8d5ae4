from datetime import date

from pydantic import BaseModel, Field

from driver_api.models.order import Order
from driver_api.schemas.orders import OrderResponse


class InvoiceInfoRequest(BaseModel):
    contractor_name: str | None = Field(default=None, max_length=255)
    payment_due_date: date | None = None


class PipelineActionResponse(OrderResponse):
    """Order state after a pipeline step, with a line the admin UI can toast."""

    message: str

    @classmethod
    def for_action(cls, order: Order, message: str) -> "PipelineActionResponse":
        return cls(message=message, **OrderResponse.from_order(order).model_dump())
