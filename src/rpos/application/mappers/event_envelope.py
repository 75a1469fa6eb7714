from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from rpos.domain.cash.entities import CashSession
from rpos.domain.order.entities import Order
from rpos.domain.order.events import OrderPlaced, OrderStatusChanged


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    payload: dict[str, Any],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def _order_payload(order: Order) -> dict[str, Any]:
    return {
        "orderId": str(order.order_id),
        "orderNumber": order.order_number,
        "channel": order.channel.value,
        "origin": order.origin.value,
        "tableId": str(order.table_id) if order.table_id else None,
        "status": order.status.value,
        "paymentStatus": order.payment_status.value,
        "paymentMethod": order.payment_method.value if order.payment_method else None,
        "totalMoney": {
            "amountCents": order.total.amount_cents,
            "currency": order.total.currency,
        },
        "createdAt": order.created_at.isoformat(),
        "lines": [
            {
                "lineId": str(line.line_id),
                "productId": str(line.product_id),
                "name": line.name,
                "quantity": line.quantity,
                "status": line.status.value,
            }
            for line in order.lines
        ],
    }


def serialize_order_placed_event(
    *,
    event: OrderPlaced,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type="order.placed",
        occurred_at=event.created_at,
        payload=_order_payload(order),
        trace_id=trace_id,
        request_id=request_id,
    )


def serialize_order_status_event(
    *,
    event: OrderStatusChanged,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    payload = _order_payload(order)
    payload["fromStatus"] = event.from_status.value
    payload["status"] = event.to_status.value
    return _serialize_event(
        event_type="order.status_changed",
        occurred_at=event.occurred_at,
        payload=payload,
        trace_id=trace_id,
        request_id=request_id,
    )


def serialize_cash_session_event(
    *,
    event_type: str,
    session: CashSession,
    occurred_at: datetime,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "sessionId": str(session.session_id),
            "status": session.status.value,
            "userId": str(session.user_id),
            "openingAmountCents": session.opening_amount_cents,
            "totalSalesCents": session.total_sales_cents,
            "expectedAmountCents": session.expected_amount_cents,
            "actualAmountCents": session.actual_amount_cents,
            "differenceCents": session.difference_cents,
        },
    )
