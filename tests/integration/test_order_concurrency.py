from __future__ import annotations

import concurrent.futures
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.engine import Engine

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from support.fakes import FakePublisher

from rpos.application.dto.requests import (
    OpenCashSessionRequest,
    PlaceOrderLineRequest,
    PlaceOrderRequest,
)
from rpos.application.ports.repositories import OptimisticConcurrencyError
from rpos.application.use_cases.cash_sessions import CashSessionAlreadyOpenError, OpenCashSession
from rpos.application.use_cases.context import BusinessSettings, TraceContext
from rpos.application.use_cases.place_order import PlaceOrder
from rpos.domain.common.ids import OrderId
from rpos.domain.order.entities import OrderChannel, OrderStatus
from rpos.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork


@pytest.mark.postgres
def test_status_change_bumps_version_once(postgres_engine: Engine) -> None:
    placed = PlaceOrder(SqlAlchemyUnitOfWork(), FakePublisher(), BusinessSettings()).execute(
        PlaceOrderRequest(
            channel=OrderChannel.TAKEOUT,
            lines=[PlaceOrderLineRequest(product_id="prd_coca_cola", quantity=1)],
        ),
        TraceContext(trace_id=None, request_id="req-concurrency"),
    )
    order_id = OrderId(placed.orderId)
    assert placed.version == 1

    def _prepare_once() -> str:
        uow = SqlAlchemyUnitOfWork()
        with uow:
            order = uow.orders.get(order_id)
            assert order is not None
            preparing = order.transition_to(OrderStatus.PREPARING, datetime.now(timezone.utc))
            try:
                updated = uow.orders.update(preparing, expected_version=1)
            except OptimisticConcurrencyError:
                return "CONFLICT"
            uow.commit()
        return updated.status.value

    with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(lambda _: _prepare_once(), [0, 1]))

    assert sorted(results) == ["CONFLICT", "preparing"]

    with SqlAlchemyUnitOfWork() as uow:
        current = uow.orders.get(order_id)
    assert current is not None
    assert current.status == OrderStatus.PREPARING
    assert current.version == 2


@pytest.mark.postgres
def test_concurrent_counters_hand_out_distinct_numbers(postgres_engine: Engine) -> None:
    day = "2099-01-01"
    with postgres_engine.begin() as connection:
        connection.execute(text("DELETE FROM order_counters WHERE day = :day"), {"day": day})
    barrier = threading.Barrier(4)

    def _take_number(_: int) -> int:
        uow = SqlAlchemyUnitOfWork()
        barrier.wait()
        with uow:
            number = uow.order_counters.next_number(day)
            uow.commit()
        return number

    with concurrent.futures.ThreadPoolExecutor(max_workers=4) as executor:
        numbers = list(executor.map(_take_number, range(8)))

    assert sorted(numbers) == list(range(1, 9))


@pytest.mark.postgres
def test_concurrent_opens_leave_one_session(postgres_engine: Engine) -> None:
    with postgres_engine.begin() as connection:
        connection.execute(
            text(
                "UPDATE cash_sessions SET status = 'closed', closed_at = now() "
                "WHERE status = 'open'"
            )
        )
    barrier = threading.Barrier(3)

    def _open(_: int) -> str:
        use_case = OpenCashSession(SqlAlchemyUnitOfWork(), FakePublisher(), BusinessSettings())
        barrier.wait()
        try:
            use_case.execute(
                OpenCashSessionRequest(user_id="usr_cajero", opening_amount_cents=50000),
                TraceContext(trace_id=None, request_id="req-open"),
            )
        except CashSessionAlreadyOpenError:
            return "CONFLICT"
        return "OPENED"

    with concurrent.futures.ThreadPoolExecutor(max_workers=3) as executor:
        results = list(executor.map(_open, range(3)))

    assert sorted(results) == ["CONFLICT", "CONFLICT", "OPENED"]
    with postgres_engine.connect() as connection:
        open_count = connection.execute(
            text("SELECT count(*) FROM cash_sessions WHERE status = 'open'")
        ).scalar_one()
    assert open_count == 1
