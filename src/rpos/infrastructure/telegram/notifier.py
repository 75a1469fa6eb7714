from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from rpos.application.metrics.order_lifecycle import record_notification_failure
from rpos.application.ports.notifier import CustomerNotifier
from rpos.domain.order.entities import Order, OrderStatus
from rpos.infrastructure.telegram.client import TelegramApiError, TelegramClient

logger = logging.getLogger(__name__)

STATUS_MESSAGES: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "Tu pedido {number} fue confirmado.",
    OrderStatus.PREPARING: "Estamos preparando tu pedido {number}.",
    OrderStatus.READY: "Tu pedido {number} está listo.",
    OrderStatus.ON_THE_WAY: "Tu pedido {number} va en camino.",
    OrderStatus.DELIVERED: "Tu pedido {number} fue entregado. ¡Buen provecho!",
    OrderStatus.COMPLETED: "Tu pedido {number} fue completado. ¡Gracias por tu compra!",
    OrderStatus.CANCELLED: "Tu pedido {number} fue cancelado.",
}


def status_message(order: Order) -> str | None:
    template = STATUS_MESSAGES.get(order.status)
    if template is None:
        return None
    return template.format(number=order.order_number)


class TelegramCustomerNotifier(CustomerNotifier):
    def __init__(self, client: TelegramClient, max_workers: int = 2) -> None:
        self._client = client
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="telegram-notify"
        )

    def notify_order_status(self, chat_id: str, order: Order) -> None:
        text = status_message(order)
        if text is None:
            return
        self._executor.submit(self._send, chat_id, order, text)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def _send(self, chat_id: str, order: Order, text: str) -> None:
        try:
            self._client.send_message(chat_id, text)
        except TelegramApiError:
            record_notification_failure("telegram")
            logger.warning(
                "customer notification failed",
                extra={
                    "chat_id": chat_id,
                    "order_id": order.order_id,
                    "status": order.status.value,
                },
                exc_info=True,
            )
