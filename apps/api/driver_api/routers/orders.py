from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from driver_api.auth.actor import Actor, DriverActor
from driver_api.auth.dependencies import require_any_role, require_driver
from driver_api.db.session import get_db
from driver_api.observability import observe_timing
from driver_api.schemas.orders import (
    OrderListResponse,
    OrderResponse,
    SetStatusRequest,
    SetStatusResponse,
)
from driver_api.services import orders_service, status_service

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _list_response(views: list[orders_service.OrderView]) -> OrderListResponse:
    return OrderListResponse(items=[OrderResponse.from_view(view) for view in views])


@router.get("/my", response_model=OrderListResponse, summary="Driver's open orders")
def my_orders(
    db: Session = Depends(get_db),
    actor: DriverActor = Depends(require_driver),
) -> OrderListResponse:
    return _list_response(orders_service.list_my_orders(db, actor))


@router.get("/today", response_model=OrderListResponse, summary="Orders picked up today")
def today_orders(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_any_role),
) -> OrderListResponse:
    return _list_response(orders_service.list_today_orders(db, actor))


@router.get("/upcoming", response_model=OrderListResponse, summary="Driver's upcoming orders")
def upcoming_orders(
    days: int = Query(default=7),
    db: Session = Depends(get_db),
    actor: DriverActor = Depends(require_driver),
) -> OrderListResponse:
    return _list_response(orders_service.list_upcoming_orders(db, actor, days=days))


@router.post("/{order_id}/status", response_model=SetStatusResponse, summary="Set delivery status")
def set_status(
    order_id: int,
    payload: SetStatusRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_any_role),
) -> SetStatusResponse:
    with observe_timing("order_status_change_seconds"):
        order = status_service.set_status(
            db,
            order_id,
            actor,
            payload.status,
            lat=payload.lat,
            lng=payload.lng,
            note=payload.note,
        )
    return SetStatusResponse(status=order.status.label)
