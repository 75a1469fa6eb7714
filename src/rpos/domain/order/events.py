from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from rpos.domain.common.ids import OrderId
from rpos.domain.common.money import Money
from rpos.domain.order.entities import OrderStatus


@dataclass(frozen=True)
class OrderPlaced:
    order_id: OrderId
    order_number: str
    total: Money
    created_at: datetime


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: OrderId
    order_number: str
    from_status: OrderStatus
    to_status: OrderStatus
    occurred_at: datetime
