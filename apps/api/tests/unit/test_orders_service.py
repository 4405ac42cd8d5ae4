from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from driver_api import errors
from driver_api.auth.actor import DriverActor
from driver_api.models.epod_file import EpodFile
from driver_api.models.order import Order, OrderStatus, PipelineStage
from driver_api.models.order_status_log import OrderStatusLog
from driver_api.services import orders_service, status_service
from driver_api.services.orders_service import OrderFields

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def _fields(**overrides) -> OrderFields:
    values = {"pickup_address": "Gdansk, Portowa 5", "delivery_address": "Poznan, Rynek 1"}
    values.update(overrides)
    return OrderFields(**values)


def test_first_order_number(db_session):
    order = orders_service.create_order(db_session, _fields())
    assert order.order_number == "Z-00001"
    assert order.status == OrderStatus.PLANNED
    assert order.pipeline_stage == PipelineStage.OPEN


def test_order_number_follows_highest_not_first_gap(db_session, make_order):
    make_order(order_number="Z-00001")
    make_order(order_number="Z-00003")

    assert orders_service.next_order_number(db_session) == "Z-00004"


def test_order_number_compares_numerically_past_five_digits(db_session, make_order):
    make_order(order_number="Z-99999")
    make_order(order_number="Z-100000")

    assert orders_service.next_order_number(db_session) == "Z-100001"


def test_create_order_retries_after_number_collision(db_session, make_order, monkeypatch):
    make_order(order_number="Z-00001")
    calls = iter(["Z-00001", "Z-00002"])
    monkeypatch.setattr(orders_service, "next_order_number", lambda db: next(calls))

    order = orders_service.create_order(db_session, _fields())

    assert order.order_number == "Z-00002"


def test_create_order_gives_up_after_max_attempts(db_session, make_order, monkeypatch):
    make_order(order_number="Z-00001")
    monkeypatch.setattr(orders_service, "next_order_number", lambda db: "Z-00001")

    with pytest.raises(errors.Conflict):
        orders_service.create_order(db_session, _fields())


def test_create_order_trims_and_requires_addresses(db_session):
    order = orders_service.create_order(
        db_session, _fields(pickup_address="  A  ", delivery_address=" B ")
    )
    assert (order.pickup_address, order.delivery_address) == ("A", "B")

    with pytest.raises(errors.InvalidArgument):
        orders_service.create_order(db_session, _fields(pickup_address="   "))


def test_create_order_validates_driver_and_status(db_session, driver):
    with pytest.raises(errors.InvalidArgument):
        orders_service.create_order(db_session, _fields(), driver_id=driver.id + 100)
    with pytest.raises(errors.InvalidArgument):
        orders_service.create_order(db_session, _fields(), status_value=9)

    order = orders_service.create_order(
        db_session, _fields(), driver_id=driver.id, status_value=int(OrderStatus.LOADED)
    )
    assert order.driver_id == driver.id
    assert order.status == OrderStatus.LOADED


def test_edit_blocked_once_invoiced(db_session, make_order):
    order = make_order(stage=PipelineStage.INVOICED)

    with pytest.raises(errors.PipelineConflict):
        orders_service.edit_order(db_session, order.id, _fields())


def test_edit_updates_body(db_session, make_order):
    order = make_order()
    pickup = NOW + timedelta(days=1)

    updated = orders_service.edit_order(
        db_session, order.id, _fields(pickup_time=pickup, cargo_info="fragile")
    )

    assert updated.pickup_time == pickup
    assert updated.cargo_info == "fragile"


def test_delete_cascades_to_logs_and_epod(db_session, make_order, make_epod, admin_actor):
    order = make_order(status=OrderStatus.DELIVERED)
    make_epod(order)
    status_service.admin_set_status(db_session, order.id, admin_actor, int(OrderStatus.PROBLEM))
    order_id = order.id

    orders_service.delete_order(db_session, order_id)

    assert db_session.get(Order, order_id) is None
    assert db_session.scalars(select(OrderStatusLog)).all() == []
    assert db_session.scalars(select(EpodFile)).all() == []


@pytest.mark.parametrize("stage", [PipelineStage.INVOICED, PipelineStage.ARCHIVED])
def test_delete_refused_for_financial_stages(db_session, make_order, stage):
    order = make_order(stage=stage)

    with pytest.raises(errors.PipelineConflict):
        orders_service.delete_order(db_session, order.id)


def test_assign_and_unassign_driver(db_session, make_order, driver):
    order = make_order()

    assert orders_service.assign_driver(db_session, order.id, driver.id).driver_id == driver.id
    assert orders_service.assign_driver(db_session, order.id, None).driver_id is None
    with pytest.raises(errors.InvalidArgument):
        orders_service.assign_driver(db_session, order.id, 4242)


def test_deleting_driver_unassigns_orders(db_session, make_order, driver):
    order = make_order(driver=driver)

    db_session.delete(driver)
    db_session.commit()
    db_session.expire_all()

    assert db_session.get(Order, order.id).driver_id is None


def test_problem_info_pairs_problem_with_preceding_status(
    db_session, make_order, driver, driver_actor
):
    order = make_order(driver=driver)
    status_service.set_status(db_session, order.id, driver_actor, int(OrderStatus.LOADED))
    status_service.set_status(
        db_session, order.id, driver_actor, int(OrderStatus.PROBLEM), note="Flat tyre"
    )
    status_service.set_status(db_session, order.id, driver_actor, int(OrderStatus.TO_DELIVERY))

    info = orders_service.load_problem_info(db_session, [order.id])[order.id]

    assert info.last_problem_note == "Flat tyre"
    assert info.problem_at_status == OrderStatus.LOADED
    assert info.last_problem_utc.tzinfo is not None


def test_problem_info_skips_problems_without_note(db_session, make_order, admin_actor):
    order = make_order()
    status_service.admin_set_status(db_session, order.id, admin_actor, int(OrderStatus.PROBLEM))

    assert orders_service.load_problem_info(db_session, [order.id]) == {}


def test_problem_info_first_entry_has_no_preceding_status(
    db_session, make_order, driver, driver_actor
):
    order = make_order(driver=driver)
    status_service.set_status(
        db_session, order.id, driver_actor, int(OrderStatus.PROBLEM), note="No access road"
    )

    info = orders_service.load_problem_info(db_session, [order.id])[order.id]

    assert info.problem_at_status is None


def test_my_orders_lists_only_open_orders_of_driver(
    db_session, make_order, driver, other_driver, driver_actor
):
    mine = make_order(driver=driver)
    make_order(driver=driver, stage=PipelineStage.COMPLETED)
    make_order(driver=other_driver)

    views = orders_service.list_my_orders(db_session, driver_actor)

    assert [view.order.id for view in views] == [mine.id]


def test_today_orders_use_utc_day_window(
    db_session, make_order, driver, other_driver, driver_actor, admin_actor
):
    today = make_order(driver=driver, pickup_time=NOW.replace(hour=23, minute=59))
    make_order(driver=driver, pickup_time=NOW + timedelta(days=1))
    other = make_order(driver=other_driver, pickup_time=NOW.replace(hour=0, minute=0))

    driver_view = orders_service.list_today_orders(db_session, driver_actor, now=NOW)
    admin_view = orders_service.list_today_orders(db_session, admin_actor, now=NOW)

    assert [view.order.id for view in driver_view] == [today.id]
    assert [view.order.id for view in admin_view] == [other.id, today.id]


@pytest.mark.parametrize(("requested", "expected"), [(0, 1), (-5, 1), (7, 7), (61, 60), (500, 60)])
def test_upcoming_days_are_clamped(requested, expected):
    assert orders_service.clamp_upcoming_days(requested) == expected


def test_upcoming_orders_match_pickup_or_delivery(db_session, make_order, driver, driver_actor):
    by_pickup = make_order(driver=driver, pickup_time=NOW + timedelta(days=2))
    by_delivery = make_order(driver=driver, delivery_time=NOW + timedelta(days=1))
    make_order(driver=driver, pickup_time=NOW + timedelta(days=30))
    make_order(driver=driver, pickup_time=NOW - timedelta(days=1))

    views = orders_service.list_upcoming_orders(db_session, driver_actor, days=3, now=NOW)

    assert [view.order.id for view in views] == [by_delivery.id, by_pickup.id]


def test_driver_listing_without_profile_is_forbidden(db_session):
    with pytest.raises(errors.Forbidden):
        orders_service.list_my_orders(db_session, DriverActor(user_id=5, driver_id=None))
