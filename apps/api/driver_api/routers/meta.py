from fastapi import APIRouter

from driver_api.models.order import OrderStatus
from driver_api.schemas.meta import OrderStatusOption

router = APIRouter(prefix="/api/meta", tags=["meta"])


@router.get("/order-statuses", response_model=list[OrderStatusOption], summary="Order status values")
def order_statuses() -> list[OrderStatusOption]:
    return [OrderStatusOption(value=int(value), label=value.label) for value in OrderStatus]
