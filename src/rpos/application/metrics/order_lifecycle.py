from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Gauge, Histogram

from rpos.domain.order.entities import Order, OrderStatus, PaymentMethod

ORDERS_TOTAL = Counter(
    "rpos_orders_total",
    "Total number of orders observed by status.",
    ["channel", "status"],
)

ORDER_TRANSITION_TOTAL = Counter(
    "rpos_order_transition_total",
    "Total number of order lifecycle transitions.",
    ["from", "to"],
)

ORDER_TIME_TO_READY_SECONDS = Histogram(
    "rpos_order_time_to_ready_seconds",
    "Time between order placement and readiness.",
)

ORDER_TIME_TO_COMPLETE_SECONDS = Histogram(
    "rpos_order_time_to_complete_seconds",
    "Time between order placement and completion or delivery.",
)

KITCHEN_QUEUE_SIZE = Gauge(
    "rpos_kitchen_queue_size",
    "Current number of orders returned by queue queries.",
)

SALES_AMOUNT_CENTS_TOTAL = Counter(
    "rpos_sales_amount_cents_total",
    "Sales amount recorded on cash sessions, in minor units.",
    ["method", "kind"],
)

CASH_SESSIONS_OPENED_TOTAL = Counter(
    "rpos_cash_sessions_opened_total",
    "Total number of cash sessions opened.",
)

CASH_SESSIONS_CLOSED_TOTAL = Counter(
    "rpos_cash_sessions_closed_total",
    "Total number of cash sessions closed.",
)

CASH_SESSION_CLOSE_BLOCKED_TOTAL = Counter(
    "rpos_cash_session_close_blocked_total",
    "Total number of blocked cash session close attempts.",
    ["reason"],
)

NOTIFICATION_FAILURES_TOTAL = Counter(
    "rpos_notification_failures_total",
    "Total number of customer notifications that could not be delivered.",
    ["channel"],
)


def record_order_status(order: Order) -> None:
    ORDERS_TOTAL.labels(channel=order.channel.value, status=order.status.value).inc()


def record_transition(from_status: OrderStatus, to_status: OrderStatus) -> None:
    ORDER_TRANSITION_TOTAL.labels(**{"from": from_status.value, "to": to_status.value}).inc()


def record_time_to_ready(order: Order, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    ORDER_TIME_TO_READY_SECONDS.observe(max((current - order.created_at).total_seconds(), 0.0))


def record_time_to_complete(order: Order, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    ORDER_TIME_TO_COMPLETE_SECONDS.observe(
        max((current - order.created_at).total_seconds(), 0.0)
    )


def record_kitchen_queue_size(size: int) -> None:
    KITCHEN_QUEUE_SIZE.set(size)


def record_sale(method: PaymentMethod, amount_cents: int) -> None:
    SALES_AMOUNT_CENTS_TOTAL.labels(method=method.value, kind="sale").inc(amount_cents)


def record_sale_reversal(method: PaymentMethod, amount_cents: int) -> None:
    SALES_AMOUNT_CENTS_TOTAL.labels(method=method.value, kind="reversal").inc(amount_cents)


def record_cash_session_opened() -> None:
    CASH_SESSIONS_OPENED_TOTAL.inc()


def record_cash_session_closed() -> None:
    CASH_SESSIONS_CLOSED_TOTAL.inc()


def record_cash_session_close_blocked(reason: str) -> None:
    CASH_SESSION_CLOSE_BLOCKED_TOTAL.labels(reason=reason).inc()


def record_notification_failure(channel: str) -> None:
    NOTIFICATION_FAILURES_TOTAL.labels(channel=channel).inc()
