from __future__ import annotations

from typing import Protocol

from rpos.domain.order.entities import Order


class CustomerNotifier(Protocol):
    def notify_order_status(self, chat_id: str, order: Order) -> None: ...


class NullCustomerNotifier(CustomerNotifier):
    def notify_order_status(self, chat_id: str, order: Order) -> None:
        return None
