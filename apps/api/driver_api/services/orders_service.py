from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from driver_api import errors
from driver_api.auth.actor import Actor, AdminActor, DriverActor
from driver_api.config import settings
from driver_api.models.driver import Driver
from driver_api.models.order import Order, OrderStatus, PipelineStage
from driver_api.models.order_status_log import OrderStatusLog
from driver_api.observability import log_event, metrics_store
from driver_api.services.guards import can_edit_order, enforce
from driver_api.services.status_service import parse_status

MIN_UPCOMING_DAYS = 1
MAX_UPCOMING_DAYS = 60


@dataclass(frozen=True)
class ProblemInfo:
    last_problem_note: str
    last_problem_utc: datetime
    problem_at_status: OrderStatus | None


@dataclass(frozen=True)
class OrderView:
    order: Order
    problem: ProblemInfo | None = None


@dataclass(frozen=True)
class OrderFields:
    pickup_address: str
    delivery_address: str
    pickup_time: datetime | None = None
    delivery_time: datetime | None = None
    cargo_info: str = ""


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise errors.NotFound("Order not found.")
    return order


def next_order_number(db: Session, prefix: str | None = None) -> str:
    """Highest existing number plus one; gaps left by deleted orders are not reused."""
    prefix = prefix if prefix is not None else settings.order_number_prefix
    last = db.scalar(
        select(Order.order_number)
        .where(Order.order_number.startswith(prefix, autoescape=True))
        .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
        .limit(1)
    )

    next_value = 1
    if last:
        try:
            next_value = int(last[len(prefix) :]) + 1
        except ValueError:
            next_value = 1
    return f"{prefix}{next_value:05d}"


def _required_address(value: str | None, field_name: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        raise errors.InvalidArgument(f"{field_name} is required.")
    return trimmed


def _ensure_driver(db: Session, driver_id: int | None) -> None:
    if driver_id is not None and db.get(Driver, driver_id) is None:
        raise errors.InvalidArgument("Invalid driver.")


def create_order(
    db: Session,
    fields: OrderFields,
    driver_id: int | None = None,
    status_value: int | None = None,
) -> Order:
    pickup_address = _required_address(fields.pickup_address, "pickup_address")
    delivery_address = _required_address(fields.delivery_address, "delivery_address")
    _ensure_driver(db, driver_id)
    initial_status = parse_status(status_value) if status_value is not None else OrderStatus.PLANNED

    for attempt in range(1, settings.order_number_max_attempts + 1):
        order = Order(
            order_number=next_order_number(db),
            pickup_address=pickup_address,
            delivery_address=delivery_address,
            pickup_time=fields.pickup_time,
            delivery_time=fields.delivery_time,
            cargo_info=fields.cargo_info or "",
            driver_id=driver_id,
            status=initial_status,
        )
        db.add(order)
        try:
            db.commit()
        except IntegrityError:
            # Another request took the same number between scan and insert.
            db.rollback()
            log_event(f"order_number_collision attempt={attempt}", driver_id=driver_id)
            continue

        db.refresh(order)
        metrics_store.increment("orders_created_total")
        log_event(f"order_created number={order.order_number}", order_id=order.id, driver_id=driver_id)
        return order

    raise errors.Conflict("Could not allocate a unique order number.")


def edit_order(db: Session, order_id: int, fields: OrderFields) -> Order:
    order = get_order(db, order_id)
    enforce(can_edit_order(order))

    order.pickup_address = _required_address(fields.pickup_address, "pickup_address")
    order.delivery_address = _required_address(fields.delivery_address, "delivery_address")
    order.pickup_time = fields.pickup_time
    order.delivery_time = fields.delivery_time
    order.cargo_info = fields.cargo_info or ""
    db.commit()
    db.refresh(order)
    log_event("order_edited", order_id=order.id, driver_id=order.driver_id)
    return order


def delete_order(db: Session, order_id: int) -> None:
    order = get_order(db, order_id)
    enforce(can_edit_order(order))

    db.delete(order)
    db.commit()
    log_event("order_deleted", order_id=order_id)


def assign_driver(db: Session, order_id: int, driver_id: int | None) -> Order:
    order = get_order(db, order_id)
    _ensure_driver(db, driver_id)

    order.driver_id = driver_id
    db.commit()
    db.refresh(order)
    log_event("order_driver_assigned", order_id=order.id, driver_id=driver_id)
    return order


def load_problem_info(db: Session, order_ids: list[int]) -> dict[int, ProblemInfo]:
    if not order_ids:
        return {}

    rows = db.execute(
        select(
            OrderStatusLog.order_id,
            OrderStatusLog.status,
            OrderStatusLog.timestamp_utc,
            OrderStatusLog.note,
        )
        .where(OrderStatusLog.order_id.in_(order_ids))
        .order_by(OrderStatusLog.timestamp_utc.desc(), OrderStatusLog.id.desc())
    ).all()

    by_order: dict[int, list] = defaultdict(list)
    for row in rows:
        by_order[row.order_id].append(row)

    info: dict[int, ProblemInfo] = {}
    for order_id, entries in by_order.items():
        # entries are newest first; the one after the problem is what preceded it
        for index, entry in enumerate(entries):
            if entry.status == OrderStatus.PROBLEM and entry.note and entry.note.strip():
                previous = entries[index + 1].status if index + 1 < len(entries) else None
                info[order_id] = ProblemInfo(
                    last_problem_note=entry.note,
                    last_problem_utc=entry.timestamp_utc,
                    problem_at_status=previous,
                )
                break
    return info


def _schedule_key(order: Order) -> tuple[int, datetime]:
    when = order.pickup_time or order.delivery_time
    if when is None:
        return (1, datetime.max.replace(tzinfo=timezone.utc))
    return (0, when)


def _views(db: Session, orders: list[Order]) -> list[OrderView]:
    ordered = sorted(orders, key=_schedule_key)
    problems = load_problem_info(db, [order.id for order in ordered])
    return [OrderView(order=order, problem=problems.get(order.id)) for order in ordered]


def _base_query():
    return select(Order).options(selectinload(Order.driver), selectinload(Order.epod_file))


def _today_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    current = now or datetime.now(timezone.utc)
    start = datetime.combine(current.date(), time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _require_driver_profile(actor: DriverActor) -> int:
    if actor.driver_id is None:
        raise errors.Forbidden("Driver profile not found.", errors.DRIVER_PROFILE_NOT_FOUND)
    return actor.driver_id


def list_all_orders(db: Session) -> list[OrderView]:
    return _views(db, list(db.scalars(_base_query())))


def list_today_orders(db: Session, actor: Actor, now: datetime | None = None) -> list[OrderView]:
    start, end = _today_window(now)
    query = _base_query().where(Order.pickup_time >= start, Order.pickup_time < end)
    if not isinstance(actor, AdminActor):
        query = query.where(Order.driver_id == _require_driver_profile(actor))
    return _views(db, list(db.scalars(query)))


def list_my_orders(db: Session, actor: DriverActor) -> list[OrderView]:
    driver_id = _require_driver_profile(actor)
    query = _base_query().where(
        Order.driver_id == driver_id,
        Order.pipeline_stage == PipelineStage.OPEN,
    )
    return _views(db, list(db.scalars(query)))


def clamp_upcoming_days(days: int) -> int:
    return max(MIN_UPCOMING_DAYS, min(MAX_UPCOMING_DAYS, days))


def list_upcoming_orders(
    db: Session,
    actor: DriverActor,
    days: int = 7,
    now: datetime | None = None,
) -> list[OrderView]:
    driver_id = _require_driver_profile(actor)
    start, _ = _today_window(now)
    end = start + timedelta(days=clamp_upcoming_days(days) + 1)
    query = _base_query().where(
        Order.driver_id == driver_id,
        or_(
            (Order.pickup_time >= start) & (Order.pickup_time < end),
            (Order.delivery_time >= start) & (Order.delivery_time < end),
        ),
    )
    return _views(db, list(db.scalars(query)))
