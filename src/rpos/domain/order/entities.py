from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from rpos.domain.common.ids import (
    CustomerId,
    OrderId,
    OrderLineId,
    ProductId,
    TableId,
)
from rpos.domain.common.money import Money, zero


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderChannel(str, Enum):
    DINE_IN = "dine-in"
    TAKEOUT = "takeout"
    DELIVERY = "delivery"


class OrderOrigin(str, Enum):
    POS = "pos"
    TELEGRAM = "telegram"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    NEQUI = "nequi"
    DAVIPLATA = "daviplata"


class LineStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"


TERMINAL_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)
ACTIVE_STATUSES = frozenset(status for status in OrderStatus if status not in TERMINAL_STATUSES)
KITCHEN_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY}
)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.CANCELLED}
    ),
    OrderStatus.CONFIRMED: frozenset(
        {OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED}
    ),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset(
        {OrderStatus.ON_THE_WAY, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
    ),
    OrderStatus.ON_THE_WAY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class SelectedSize:
    name: str
    price_modifier: Money


@dataclass(frozen=True)
class SelectedModifier:
    modifier_id: str
    name: str
    price_modifier: Money


@dataclass(frozen=True)
class OrderLine:
    line_id: OrderLineId
    product_id: ProductId
    name: str
    quantity: int
    unit_price: Money
    line_total: Money
    notes: str | None = None
    size: SelectedSize | None = None
    modifiers: tuple[SelectedModifier, ...] = ()
    status: LineStatus = LineStatus.PENDING

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.line_total.currency:
            raise ValueError("line_total currency must match unit_price currency")
        expected_total = self.unit_price.amount_cents * self.quantity
        if self.line_total.amount_cents != expected_total:
            raise ValueError("line_total must equal unit_price * quantity")


@dataclass(frozen=True)
class Payment:
    method: PaymentMethod
    tendered: Money | None = None


@dataclass(frozen=True)
class Order:
    order_id: OrderId
    order_number: str
    channel: OrderChannel
    status: OrderStatus
    lines: list[OrderLine]
    subtotal: Money
    discount: Money
    tax: Money
    total: Money
    created_at: datetime
    origin: OrderOrigin = OrderOrigin.POS
    table_id: TableId | None = None
    table_name: str | None = None
    customer_id: CustomerId | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    notes: str | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod | None = None
    paid_amount: Money | None = None
    change_given: Money | None = None
    confirmed_at: datetime | None = None
    ready_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None
    version: int = 1
    idempotency_key: str | None = None
    idempotency_hash: str | None = None

    def __post_init__(self) -> None:
        if not self.lines:
            raise ValueError("order must contain at least one line")
        currency = self.lines[0].line_total.currency
        for amount in (self.subtotal, self.discount, self.tax, self.total):
            if amount.currency != currency:
                raise ValueError("order amounts must share the line currency")
        expected_subtotal = sum(line.line_total.amount_cents for line in self.lines)
        if self.subtotal.amount_cents != expected_subtotal:
            raise ValueError("order subtotal must equal sum of line totals")
        if self.discount.amount_cents > self.subtotal.amount_cents:
            raise ValueError("discount cannot exceed subtotal")
        expected_total = (
            self.subtotal.amount_cents - self.discount.amount_cents + self.tax.amount_cents
        )
        if self.total.amount_cents != expected_total:
            raise ValueError("order total must equal subtotal - discount + tax")
        if self.channel == OrderChannel.DINE_IN and self.table_id is None:
            raise ValueError("dine-in orders require a table")
        if self.payment_status == PaymentStatus.PAID and self.payment_method is None:
            raise ValueError("paid orders require a payment method")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    def transition_to(
        self,
        target: OrderStatus,
        now: datetime,
        payment: Payment | None = None,
    ) -> Order:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise OrderTransitionError(
                f"cannot move order from status={self.status.value} to status={target.value}"
            )
        if target == OrderStatus.ON_THE_WAY and self.channel != OrderChannel.DELIVERY:
            raise OrderTransitionError("only delivery orders can go on_the_way")

        changes: dict[str, object] = {"status": target}
        if payment is not None:
            if target == OrderStatus.CANCELLED:
                raise OrderTransitionError("cannot take a payment while cancelling")
            changes.update(self._payment_changes(payment, now))
        elif target in (OrderStatus.COMPLETED, OrderStatus.DELIVERED) and not self.is_paid:
            raise PaymentRequiredError(
                f"order {self.order_id} must be paid before it is {target.value}"
            )

        if target == OrderStatus.CONFIRMED and self.confirmed_at is None:
            changes["confirmed_at"] = now
        elif target == OrderStatus.PREPARING:
            changes["lines"] = [
                replace(line, status=LineStatus.PREPARING)
                if line.status == LineStatus.PENDING
                else line
                for line in self.lines
            ]
        elif target == OrderStatus.READY:
            changes["ready_at"] = now
            changes["lines"] = [replace(line, status=LineStatus.READY) for line in self.lines]
        elif target in (OrderStatus.COMPLETED, OrderStatus.DELIVERED):
            changes["completed_at"] = now
        elif target == OrderStatus.CANCELLED:
            changes["cancelled_at"] = now
            if self.is_paid:
                changes["refunded_at"] = now

        return replace(self, **changes)

    def pay(self, payment: Payment, now: datetime) -> Order:
        return replace(self, **self._payment_changes(payment, now))

    def _payment_changes(self, payment: Payment, now: datetime) -> dict[str, object]:
        if self.is_paid:
            raise OrderAlreadyPaidError(f"order {self.order_id} is already paid")

        paid_amount = self.total
        change = zero(self.total.currency)
        if payment.method == PaymentMethod.CASH and payment.tendered is not None:
            if payment.tendered.currency != self.total.currency:
                raise InsufficientPaymentError("tendered currency does not match order currency")
            if payment.tendered.amount_cents < self.total.amount_cents:
                raise InsufficientPaymentError(
                    f"tendered {payment.tendered.amount_cents} is below total "
                    f"{self.total.amount_cents}"
                )
            paid_amount = payment.tendered
            change = payment.tendered - self.total

        return {
            "payment_status": PaymentStatus.PAID,
            "payment_method": payment.method,
            "paid_amount": paid_amount,
            "change_given": change,
            "confirmed_at": self.confirmed_at or now,
        }


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Money
    discount: Money
    tax: Money
    total: Money


def compute_totals(
    lines: list[OrderLine],
    discount_cents: int,
    tax_rate_bps: int,
) -> OrderTotals:
    if not lines:
        raise ValueError("order must contain at least one line")
    currency = lines[0].line_total.currency
    subtotal_cents = sum(line.line_total.amount_cents for line in lines)
    if discount_cents < 0 or discount_cents > subtotal_cents:
        raise ValueError("discount must be between 0 and the subtotal")
    taxable = subtotal_cents - discount_cents
    tax_cents = (taxable * tax_rate_bps + 5_000) // 10_000
    return OrderTotals(
        subtotal=Money(amount_cents=subtotal_cents, currency=currency),
        discount=Money(amount_cents=discount_cents, currency=currency),
        tax=Money(amount_cents=tax_cents, currency=currency),
        total=Money(amount_cents=taxable + tax_cents, currency=currency),
    )


def create_pending_order(
    order_id: OrderId,
    order_number: str,
    channel: OrderChannel,
    lines: list[OrderLine],
    now: datetime,
    discount_cents: int = 0,
    tax_rate_bps: int = 0,
    **details: object,
) -> Order:
    totals = compute_totals(lines, discount_cents=discount_cents, tax_rate_bps=tax_rate_bps)
    return Order(
        order_id=order_id,
        order_number=order_number,
        channel=channel,
        status=OrderStatus.PENDING,
        lines=lines,
        subtotal=totals.subtotal,
        discount=totals.discount,
        tax=totals.tax,
        total=totals.total,
        created_at=now,
        **details,  # type: ignore[arg-type]
    )


def format_order_number(sequence: int) -> str:
    if sequence < 1:
        raise ValueError("order sequence must be >= 1")
    return f"#{sequence:03d}"


def business_day(now: datetime, utc_offset_hours: int) -> str:
    return (now + timedelta(hours=utc_offset_hours)).date().isoformat()


class OrderTransitionError(Exception):
    pass


class PaymentRequiredError(Exception):
    pass


class OrderAlreadyPaidError(Exception):
    pass


class InsufficientPaymentError(Exception):
    pass
