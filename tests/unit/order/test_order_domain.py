from __future__ import annotations

import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from rpos.domain.common.ids import OrderId, OrderLineId, ProductId, TableId
from rpos.domain.common.money import Money
from rpos.domain.order.entities import (
    ALLOWED_TRANSITIONS,
    InsufficientPaymentError,
    LineStatus,
    Order,
    OrderAlreadyPaidError,
    OrderChannel,
    OrderLine,
    OrderStatus,
    OrderTransitionError,
    Payment,
    PaymentMethod,
    PaymentRequiredError,
    PaymentStatus,
    business_day,
    compute_totals,
    create_pending_order,
    format_order_number,
)

NOW = datetime(2026, 10, 19, 18, 30, tzinfo=timezone.utc)


def _line(unit: int = 15000, quantity: int = 1, line_id: str = "orl_001") -> OrderLine:
    return OrderLine(
        line_id=OrderLineId(line_id),
        product_id=ProductId("prd_hamburguesa"),
        name="Hamburguesa",
        quantity=quantity,
        unit_price=Money(amount_cents=unit, currency="COP"),
        line_total=Money(amount_cents=unit * quantity, currency="COP"),
    )


def _order(channel: OrderChannel = OrderChannel.TAKEOUT, **details: object) -> Order:
    return create_pending_order(
        order_id=OrderId("ord_001"),
        order_number="#001",
        channel=channel,
        lines=[_line(20000, line_id="orl_001"), _line(15000, line_id="orl_002")],
        now=NOW,
        **details,
    )


def test_order_line_quantity_must_be_gte_one() -> None:
    with pytest.raises(ValueError):
        _line(quantity=0)


def test_order_line_defaults_to_no_notes_or_extras() -> None:
    line = _line()

    assert line.notes is None
    assert line.size is None
    assert line.modifiers == ()
    assert line.status == LineStatus.PENDING


def test_order_total_must_match_lines() -> None:
    order = _order()
    with pytest.raises(ValueError):
        replace(order, total=Money(amount_cents=1, currency="COP"))


def test_create_pending_order_calculates_totals() -> None:
    order = _order()

    assert order.status == OrderStatus.PENDING
    assert order.payment_status == PaymentStatus.PENDING
    assert order.subtotal.amount_cents == 35000
    assert order.total.amount_cents == 35000
    assert order.version == 1


def test_compute_totals_applies_discount_then_rounded_tax() -> None:
    totals = compute_totals([_line(10001)], discount_cents=1, tax_rate_bps=800)

    assert totals.subtotal.amount_cents == 10001
    assert totals.discount.amount_cents == 1
    assert totals.tax.amount_cents == 800
    assert totals.total.amount_cents == 10800


def test_compute_totals_rejects_discount_above_subtotal() -> None:
    with pytest.raises(ValueError):
        compute_totals([_line(5000)], discount_cents=6000, tax_rate_bps=0)


def test_dine_in_order_requires_table() -> None:
    with pytest.raises(ValueError):
        _order(OrderChannel.DINE_IN)

    order = _order(OrderChannel.DINE_IN, table_id=TableId("tbl_003"))
    assert order.table_id == "tbl_003"


def test_transition_table_matches_allowed_moves() -> None:
    order = _order()
    for target in OrderStatus:
        if target in ALLOWED_TRANSITIONS[OrderStatus.PENDING]:
            continue
        with pytest.raises((OrderTransitionError, PaymentRequiredError)):
            order.transition_to(target, NOW)


def test_confirm_sets_confirmed_at_and_preparing_moves_lines() -> None:
    confirmed = _order().transition_to(OrderStatus.CONFIRMED, NOW)
    assert confirmed.confirmed_at == NOW

    preparing = confirmed.transition_to(OrderStatus.PREPARING, NOW)
    assert {line.status for line in preparing.lines} == {LineStatus.PREPARING}

    ready = preparing.transition_to(OrderStatus.READY, NOW)
    assert ready.ready_at == NOW
    assert {line.status for line in ready.lines} == {LineStatus.READY}


def test_completing_unpaid_order_requires_payment() -> None:
    ready = _order().transition_to(OrderStatus.CONFIRMED, NOW).transition_to(OrderStatus.READY, NOW)

    with pytest.raises(PaymentRequiredError):
        ready.transition_to(OrderStatus.COMPLETED, NOW)


def test_complete_with_cash_computes_change() -> None:
    ready = _order().transition_to(OrderStatus.CONFIRMED, NOW).transition_to(OrderStatus.READY, NOW)

    completed = ready.transition_to(
        OrderStatus.COMPLETED,
        NOW,
        Payment(method=PaymentMethod.CASH, tendered=Money(amount_cents=50000, currency="COP")),
    )

    assert completed.is_terminal
    assert completed.is_paid
    assert completed.paid_amount == Money(amount_cents=50000, currency="COP")
    assert completed.change_given == Money(amount_cents=15000, currency="COP")
    assert completed.completed_at == NOW


def test_cash_payment_below_total_is_rejected() -> None:
    with pytest.raises(InsufficientPaymentError):
        _order().pay(
            Payment(method=PaymentMethod.CASH, tendered=Money(amount_cents=30000, currency="COP")),
            NOW,
        )


def test_non_cash_payment_records_exact_total() -> None:
    paid = _order().pay(Payment(method=PaymentMethod.NEQUI), NOW)

    assert paid.paid_amount == paid.total
    assert paid.change_given == Money(amount_cents=0, currency="COP")
    assert paid.status == OrderStatus.PENDING


def test_paying_twice_is_rejected() -> None:
    paid = _order().pay(Payment(method=PaymentMethod.CARD), NOW)
    with pytest.raises(OrderAlreadyPaidError):
        paid.pay(Payment(method=PaymentMethod.CARD), NOW)


def test_cancelling_paid_order_marks_refund() -> None:
    paid = _order().pay(Payment(method=PaymentMethod.CARD), NOW)

    cancelled = paid.transition_to(OrderStatus.CANCELLED, NOW)

    assert cancelled.cancelled_at == NOW
    assert cancelled.refunded_at == NOW


def test_terminal_orders_do_not_move() -> None:
    cancelled = _order().transition_to(OrderStatus.CANCELLED, NOW)
    with pytest.raises(OrderTransitionError):
        cancelled.transition_to(OrderStatus.CONFIRMED, NOW)


def test_only_delivery_orders_go_on_the_way() -> None:
    ready = _order().transition_to(OrderStatus.CONFIRMED, NOW).transition_to(OrderStatus.READY, NOW)
    with pytest.raises(OrderTransitionError):
        ready.transition_to(OrderStatus.ON_THE_WAY, NOW)

    delivery = _order(OrderChannel.DELIVERY, customer_address="Calle 10 # 4-20")
    on_the_way = (
        delivery.pay(Payment(method=PaymentMethod.NEQUI), NOW)
        .transition_to(OrderStatus.PREPARING, NOW)
        .transition_to(OrderStatus.READY, NOW)
        .transition_to(OrderStatus.ON_THE_WAY, NOW)
    )
    assert on_the_way.transition_to(OrderStatus.DELIVERED, NOW).status == OrderStatus.DELIVERED


def test_order_number_and_business_day() -> None:
    assert format_order_number(1) == "#001"
    assert format_order_number(1234) == "#1234"
    with pytest.raises(ValueError):
        format_order_number(0)

    # 03:00 UTC is still the previous evening in Bogotá
    late = datetime(2026, 10, 20, 3, 0, tzinfo=timezone.utc)
    assert business_day(late, -5) == "2026-10-19"
    assert business_day(late, 0) == "2026-10-20"
