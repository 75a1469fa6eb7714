from __future__ import annotations

import json
import sys
from dataclasses import replace
from pathlib import Path

import httpx
import pytest
from prometheus_client import REGISTRY

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from support.fakes import NOW, cop

from rpos.domain.common.ids import OrderId, OrderLineId, ProductId
from rpos.domain.order.entities import (
    Order,
    OrderChannel,
    OrderLine,
    OrderStatus,
    create_pending_order,
)
from rpos.infrastructure.telegram.client import TelegramApiError, TelegramClient
from rpos.infrastructure.telegram.notifier import TelegramCustomerNotifier, status_message


class RecordingTransport:
    def __init__(self, status_code: int = 200, body: dict | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self._status_code = status_code
        self._body = body if body is not None else {"ok": True, "result": {"message_id": 9}}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self._status_code, json=self._body)

    def payload(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _client(recorder: RecordingTransport) -> TelegramClient:
    return TelegramClient("123:abc", transport=httpx.MockTransport(recorder))


def _order(status: OrderStatus) -> Order:
    line = OrderLine(
        line_id=OrderLineId("orl_001"),
        product_id=ProductId("prd_coca"),
        name="Coca-Cola",
        quantity=1,
        unit_price=cop(5000),
        line_total=cop(5000),
    )
    order = create_pending_order(
        order_id=OrderId("ord_001"),
        order_number="#012",
        channel=OrderChannel.DELIVERY,
        lines=[line],
        now=NOW,
    )
    return replace(order, status=status)


def test_send_message_posts_to_bot_endpoint() -> None:
    recorder = RecordingTransport()
    client = _client(recorder)

    result = client.send_message("555", "Hola", {"inline_keyboard": []})

    assert result == {"message_id": 9}
    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/bot123:abc/sendMessage"
    assert recorder.payload() == {
        "chat_id": "555",
        "text": "Hola",
        "reply_markup": {"inline_keyboard": []},
    }


def test_get_updates_passes_offset_and_long_poll() -> None:
    recorder = RecordingTransport(body={"ok": True, "result": [{"update_id": 7}]})
    client = _client(recorder)

    updates = client.get_updates(offset=7, poll_timeout=5)

    assert updates == [{"update_id": 7}]
    payload = recorder.payload()
    assert payload["offset"] == 7
    assert payload["timeout"] == 5
    assert payload["allowed_updates"] == ["message", "callback_query"]


def test_answer_and_edit_omit_empty_fields() -> None:
    recorder = RecordingTransport(body={"ok": True, "result": True})
    client = _client(recorder)

    client.answer_callback_query("cb-1")
    client.edit_message_text("555", 42, "Elige un producto:")

    assert recorder.payload(0) == {"callback_query_id": "cb-1"}
    assert recorder.payload(1) == {
        "chat_id": "555",
        "message_id": 42,
        "text": "Elige un producto:",
    }
    assert recorder.requests[1].url.path.endswith("/editMessageText")


def test_api_errors_raise() -> None:
    rejected = _client(RecordingTransport(body={"ok": False, "description": "chat not found"}))
    with pytest.raises(TelegramApiError, match="chat not found"):
        rejected.send_message("1", "Hola")

    broken = _client(RecordingTransport(status_code=502, body={"ok": False}))
    with pytest.raises(TelegramApiError):
        broken.send_message("1", "Hola")


def test_status_messages() -> None:
    assert status_message(_order(OrderStatus.READY)) == "Tu pedido #012 está listo."
    assert status_message(_order(OrderStatus.ON_THE_WAY)) == "Tu pedido #012 va en camino."
    assert status_message(_order(OrderStatus.PENDING)) is None


def test_notifier_sends_in_background() -> None:
    recorder = RecordingTransport()
    notifier = TelegramCustomerNotifier(_client(recorder))

    notifier.notify_order_status("555", _order(OrderStatus.PREPARING))
    notifier.notify_order_status("555", _order(OrderStatus.PENDING))
    notifier.shutdown()

    assert len(recorder.requests) == 1
    assert recorder.payload()["text"] == "Estamos preparando tu pedido #012."


def test_notifier_counts_failures() -> None:
    labels = {"channel": "telegram"}
    before = REGISTRY.get_sample_value("rpos_notification_failures_total", labels) or 0.0
    notifier = TelegramCustomerNotifier(_client(RecordingTransport(status_code=500, body={})))

    notifier.notify_order_status("555", _order(OrderStatus.CANCELLED))
    notifier.shutdown()

    after = REGISTRY.get_sample_value("rpos_notification_failures_total", labels)
    assert after == before + 1


def _html_client() -> TelegramClient:
    def _proxy_page(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>Bad gateway</html>")

    return TelegramClient("123:abc", transport=httpx.MockTransport(_proxy_page))


def test_non_json_reply_raises_api_error() -> None:
    with pytest.raises(TelegramApiError, match="non-JSON"):
        _html_client().send_message("1", "Hola")


def test_notifier_counts_non_json_replies_as_failures() -> None:
    labels = {"channel": "telegram"}
    before = REGISTRY.get_sample_value("rpos_notification_failures_total", labels) or 0.0
    notifier = TelegramCustomerNotifier(_html_client())

    notifier.notify_order_status("555", _order(OrderStatus.READY))
    notifier.shutdown()

    after = REGISTRY.get_sample_value("rpos_notification_failures_total", labels)
    assert after == before + 1
