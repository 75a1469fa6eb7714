from __future__ import annotations

import sys
from dataclasses import replace
from datetime import timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from support.fakes import NOW, FakeUnitOfWork, cop

from rpos.application.use_cases.kitchen_queue import (
    InvalidKitchenQueueCursorError,
    InvalidKitchenQueueStatusError,
    KitchenQueue,
)
from rpos.domain.common.ids import OrderId, OrderLineId, ProductId
from rpos.domain.order.entities import (
    Order,
    OrderChannel,
    OrderLine,
    OrderStatus,
    create_pending_order,
)


def _order(index: int, status: OrderStatus) -> Order:
    line = OrderLine(
        line_id=OrderLineId(f"orl_{index:03d}"),
        product_id=ProductId("prd_papas"),
        name="Papas Francesas",
        quantity=1,
        unit_price=cop(8000),
        line_total=cop(8000),
        notes=None,
    )
    order = create_pending_order(
        order_id=OrderId(f"ord_{index:03d}"),
        order_number=f"#{index:03d}",
        channel=OrderChannel.TAKEOUT,
        lines=[line],
        now=NOW + timedelta(minutes=index),
    )
    return replace(order, status=status)


@pytest.fixture()
def uow() -> FakeUnitOfWork:
    unit = FakeUnitOfWork()
    statuses = [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    ]
    for index, status in enumerate(statuses, start=1):
        order = _order(index, status)
        unit.db.orders[order.order_id] = order
    return unit


def test_all_lists_kitchen_statuses_newest_first(uow: FakeUnitOfWork) -> None:
    response = KitchenQueue(uow).execute()

    assert [order.orderNumber for order in response.orders] == ["#004", "#003", "#002", "#001"]
    assert response.nextCursor is None


def test_status_filter_is_case_insensitive(uow: FakeUnitOfWork) -> None:
    response = KitchenQueue(uow).execute(status="preparing")

    assert [order.status for order in response.orders] == ["preparing"]


def test_pagination_returns_cursor(uow: FakeUnitOfWork) -> None:
    queue = KitchenQueue(uow)
    first = queue.execute(limit=3)
    assert len(first.orders) == 3
    assert first.nextCursor is not None

    second = queue.execute(limit=3, cursor=first.nextCursor)
    assert [order.orderNumber for order in second.orders] == ["#001"]


def test_terminal_status_is_not_a_kitchen_filter(uow: FakeUnitOfWork) -> None:
    with pytest.raises(InvalidKitchenQueueStatusError):
        KitchenQueue(uow).execute(status="COMPLETED")
    with pytest.raises(InvalidKitchenQueueStatusError):
        KitchenQueue(uow).execute(limit=0)


def test_bad_cursor_is_a_validation_error(uow: FakeUnitOfWork) -> None:
    with pytest.raises(InvalidKitchenQueueCursorError):
        KitchenQueue(uow).execute(cursor="not-a-cursor")
