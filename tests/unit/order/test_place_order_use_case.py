from __future__ import annotations

import json
import sys
from dataclasses import replace
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from support.fakes import NOW, FakePublisher, FakeUnitOfWork, seed_catalog

from rpos.application.dto.requests import PlaceOrderLineRequest, PlaceOrderRequest
from rpos.application.ports.publisher import EVENTS_CHANNEL
from rpos.application.use_cases.context import BusinessSettings, TraceContext
from rpos.application.use_cases.place_order import (
    CustomerNotFoundError,
    IdempotencyReplayMismatchError,
    InvalidOrderRequestError,
    PlaceOrder,
    TableNotFoundError,
    TableUnavailableError,
)
from rpos.domain.common.ids import CustomerId, OrderId, TableId
from rpos.domain.customer.entities import Customer
from rpos.domain.order.entities import OrderChannel
from rpos.domain.table.entities import TableStatus

TRACE = TraceContext(trace_id="trace-1", request_id="req-1")


@pytest.fixture()
def uow() -> FakeUnitOfWork:
    unit = FakeUnitOfWork()
    seed_catalog(unit)
    return unit


def _dine_in(table_id: str = "tbl_003", **fields: object) -> PlaceOrderRequest:
    return PlaceOrderRequest(
        channel=OrderChannel.DINE_IN,
        table_id=table_id,
        lines=[
            PlaceOrderLineRequest(product_id="prd_hamburguesa", quantity=1, size="Doble"),
            PlaceOrderLineRequest(product_id="prd_hamburguesa", quantity=1),
        ],
        **fields,
    )


def test_place_dine_in_order_occupies_table_and_publishes(uow: FakeUnitOfWork) -> None:
    publisher = FakePublisher()

    response = PlaceOrder(uow, publisher, BusinessSettings()).execute(_dine_in(), TRACE)

    assert response.orderNumber == "#001"
    assert response.status == "pending"
    assert response.tableName == "Mesa 3"
    assert response.total.amountCents == 35000
    assert [line.unitPrice.amountCents for line in response.lines] == [20000, 15000]

    table = uow.db.tables[TableId("tbl_003")]
    assert table.status == TableStatus.OCCUPIED
    assert table.current_order_id == response.orderId

    channel, message = publisher.messages[0]
    envelope = json.loads(message)
    assert channel == EVENTS_CHANNEL
    assert envelope["event_type"] == "order.placed"
    assert envelope["request_id"] == "req-1"
    assert envelope["payload"]["orderNumber"] == "#001"


def test_order_numbers_increase_within_the_day(uow: FakeUnitOfWork) -> None:
    place = PlaceOrder(uow, FakePublisher(), BusinessSettings())
    first = place.execute(_dine_in("tbl_001"), TRACE)
    second = place.execute(_dine_in("tbl_002"), TRACE)

    assert (first.orderNumber, second.orderNumber) == ("#001", "#002")


def test_table_with_an_open_order_is_rejected(uow: FakeUnitOfWork) -> None:
    place = PlaceOrder(uow, FakePublisher(), BusinessSettings())
    place.execute(_dine_in(), TRACE)

    with pytest.raises(TableUnavailableError):
        place.execute(_dine_in(notes="otra"), TRACE)
    assert len(uow.db.orders) == 1


def test_unknown_table_and_customer(uow: FakeUnitOfWork) -> None:
    place = PlaceOrder(uow, FakePublisher(), BusinessSettings())

    with pytest.raises(TableNotFoundError):
        place.execute(_dine_in("tbl_404"), TRACE)
    with pytest.raises(CustomerNotFoundError):
        place.execute(_dine_in(customer_id="cus_404"), TRACE)
    with pytest.raises(InvalidOrderRequestError):
        place.execute(_dine_in(table_id=None), TRACE)


def test_delivery_requires_an_address(uow: FakeUnitOfWork) -> None:
    request = PlaceOrderRequest(
        channel=OrderChannel.DELIVERY,
        lines=[PlaceOrderLineRequest(product_id="prd_coca", quantity=2)],
    )

    with pytest.raises(InvalidOrderRequestError):
        PlaceOrder(uow, FakePublisher(), BusinessSettings()).execute(request, TRACE)
    assert uow.db.orders == {}
    assert uow.db.counters == {}


def test_delivery_uses_customer_details(uow: FakeUnitOfWork) -> None:
    customer = Customer(
        customer_id=CustomerId("cus_001"),
        name="Laura",
        phone="3001234567",
        address="Calle 10 # 4-20",
        created_at=NOW,
    )
    uow.db.customers[customer.customer_id] = customer
    request = PlaceOrderRequest(
        channel=OrderChannel.DELIVERY,
        customer_id="cus_001",
        lines=[PlaceOrderLineRequest(product_id="prd_coca", quantity=2)],
    )

    response = PlaceOrder(uow, FakePublisher(), BusinessSettings()).execute(request, TRACE)

    assert response.customerName == "Laura"
    assert response.customerAddress == "Calle 10 # 4-20"
    assert response.total.amountCents == 10000
    assert uow.db.customers[customer.customer_id].last_order_at is not None


def test_inactive_or_unknown_products_are_rejected(uow: FakeUnitOfWork) -> None:
    place = PlaceOrder(uow, FakePublisher(), BusinessSettings())
    for product_id in ("prd_malteada", "prd_404"):
        request = PlaceOrderRequest(
            channel=OrderChannel.TAKEOUT,
            lines=[PlaceOrderLineRequest(product_id=product_id, quantity=1)],
        )
        with pytest.raises(InvalidOrderRequestError):
            place.execute(request, TRACE)


def test_unknown_modifier_is_a_validation_error(uow: FakeUnitOfWork) -> None:
    request = PlaceOrderRequest(
        channel=OrderChannel.TAKEOUT,
        lines=[
            PlaceOrderLineRequest(product_id="prd_hamburguesa", quantity=1, modifier_ids=["queso"])
        ],
    )
    with pytest.raises(InvalidOrderRequestError):
        PlaceOrder(uow, FakePublisher(), BusinessSettings()).execute(request, TRACE)


def test_tax_and_discount_follow_settings(uow: FakeUnitOfWork) -> None:
    request = PlaceOrderRequest(
        channel=OrderChannel.TAKEOUT,
        discount_cents=3000,
        lines=[PlaceOrderLineRequest(product_id="prd_papas", quantity=2)],
    )

    response = PlaceOrder(uow, FakePublisher(), BusinessSettings(tax_rate_bps=800)).execute(
        request, TRACE
    )

    assert response.subtotal.amountCents == 16000
    assert response.discount.amountCents == 3000
    assert response.tax.amountCents == 1040
    assert response.total.amountCents == 14040


def test_idempotent_replay_returns_original_order(uow: FakeUnitOfWork) -> None:
    publisher = FakePublisher()
    place = PlaceOrder(uow, publisher, BusinessSettings())

    first = place.execute(_dine_in(), TRACE, idempotency_key="key-1")
    replay = place.execute(_dine_in(), TRACE, idempotency_key="key-1")

    assert replay.orderId == first.orderId
    assert len(uow.db.orders) == 1
    assert len(publisher.messages) == 1


def test_idempotency_key_with_different_payload_conflicts(uow: FakeUnitOfWork) -> None:
    place = PlaceOrder(uow, FakePublisher(), BusinessSettings())
    place.execute(_dine_in(), TRACE, idempotency_key="key-1")

    with pytest.raises(IdempotencyReplayMismatchError):
        place.execute(_dine_in(notes="sin cebolla"), TRACE, idempotency_key="key-1")


def test_publish_failure_keeps_the_order(uow: FakeUnitOfWork) -> None:
    response = PlaceOrder(uow, FakePublisher(fail=True), BusinessSettings()).execute(
        _dine_in(), TRACE
    )

    assert OrderId(response.orderId) in uow.db.orders


def test_reserved_table_accepts_an_order(uow: FakeUnitOfWork) -> None:
    table_id = TableId("tbl_005")
    uow.db.tables[table_id] = replace(uow.db.tables[table_id], status=TableStatus.RESERVED)

    response = PlaceOrder(uow, FakePublisher(), BusinessSettings()).execute(
        _dine_in("tbl_005"), TRACE
    )

    assert uow.db.tables[table_id].current_order_id == response.orderId
    assert uow.db.tables[table_id].status == TableStatus.OCCUPIED
