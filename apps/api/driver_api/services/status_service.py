from sqlalchemy import select
from sqlalchemy.orm import Session

from driver_api import errors
from driver_api.auth.actor import Actor, AdminActor
from driver_api.db.types import utc_now
from driver_api.models.order import Order, OrderStatus
from driver_api.models.order_status_log import OrderStatusLog
from driver_api.observability import log_event, metrics_store
from driver_api.services.guards import can_modify_order, enforce

MIN_PROBLEM_NOTE_LENGTH = 5


def parse_status(value: int) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as exc:
        raise errors.InvalidArgument(f"Invalid status value: {value}") from exc


def _normalized_note(note: str | None) -> str | None:
    if note is None or not note.strip():
        return None
    return note.strip()


def _get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise errors.NotFound("Order not found.")
    return order


def _apply_status(
    db: Session,
    order: Order,
    actor: Actor,
    next_status: OrderStatus,
    lat: float | None = None,
    lng: float | None = None,
    note: str | None = None,
) -> Order:
    # No transition table: any status may follow any other, including itself.
    previous_status = order.status
    order.status = next_status
    db.add(
        OrderStatusLog(
            order_id=order.id,
            status=next_status,
            timestamp_utc=utc_now(),
            lat=lat,
            lng=lng,
            changed_by_role=actor.role,
            changed_by_user_id=actor.user_id,
            note=note,
        )
    )
    db.commit()
    db.refresh(order)

    metrics_store.increment("order_status_changed_total")
    log_event(
        f"order_status_changed from={previous_status.label} to={next_status.label} by={actor.role}",
        order_id=order.id,
        driver_id=order.driver_id,
    )
    return order


def set_status(
    db: Session,
    order_id: int,
    actor: Actor,
    status_value: int,
    lat: float | None = None,
    lng: float | None = None,
    note: str | None = None,
) -> Order:
    next_status = parse_status(status_value)
    order = _get_order(db, order_id)
    enforce(can_modify_order(actor, order))

    normalized = _normalized_note(note)
    if next_status == OrderStatus.PROBLEM and (
        normalized is None or len(normalized) < MIN_PROBLEM_NOTE_LENGTH
    ):
        raise errors.InvalidArgument(
            f"A note of at least {MIN_PROBLEM_NOTE_LENGTH} characters is required for Problem status."
        )

    return _apply_status(db, order, actor, next_status, lat=lat, lng=lng, note=normalized)


def admin_set_status(db: Session, order_id: int, actor: AdminActor, status_value: int) -> Order:
    next_status = parse_status(status_value)
    order = _get_order(db, order_id)
    return _apply_status(db, order, actor, next_status)


def list_status_logs(db: Session, order_id: int) -> list[OrderStatusLog]:
    _get_order(db, order_id)
    logs = db.scalars(
        select(OrderStatusLog)
        .where(OrderStatusLog.order_id == order_id)
        .order_by(OrderStatusLog.timestamp_utc.desc(), OrderStatusLog.id.desc())
    )
    return list(logs)
