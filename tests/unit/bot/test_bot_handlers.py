from __future__ import annotations

import sys
from dataclasses import replace
from itertools import count
from pathlib import Path
from typing import Any

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from support.fakes import (
    FakeCache,
    FakeDatabase,
    FakeMessenger,
    FakeNotifier,
    FakePublisher,
    FakeUnitOfWork,
    seed_catalog,
)

from rpos.application.use_cases.context import BusinessSettings
from rpos.bot.conversation import ConversationState, ConversationStore
from rpos.bot.handlers import BotDependencies, TelegramOrderBot
from rpos.bot.keyboards import CART_BUTTON, CHECKOUT_BUTTON, CLEAR_BUTTON, MENU_BUTTON
from rpos.domain.order.entities import OrderChannel, OrderOrigin, OrderStatus, PaymentMethod

CHAT = 555
_update_ids = count(1)


class BotHarness:
    def __init__(self) -> None:
        unit = FakeUnitOfWork()
        seed_catalog(unit)
        self.db: FakeDatabase = unit.db
        self.messenger = FakeMessenger()
        self.publisher = FakePublisher()
        self.notifier = FakeNotifier()
        self.cache = FakeCache()
        self.store = ConversationStore(self.cache)
        self.bot = TelegramOrderBot(
            self.messenger,
            BotDependencies(
                uow_factory=lambda: FakeUnitOfWork(self.db),
                publisher=self.publisher,
                notifier=self.notifier,
                settings=BusinessSettings(name="Malulos"),
                store=self.store,
            ),
        )

    def text(self, text: str, chat_id: int = CHAT) -> None:
        self.bot.handle_update(
            {
                "update_id": next(_update_ids),
                "message": {
                    "message_id": 1,
                    "chat": {"id": chat_id},
                    "from": {"id": chat_id, "first_name": "Laura"},
                    "text": text,
                },
            }
        )

    def tap(self, data: str, callback_id: str = "cb", chat_id: int = CHAT) -> str | None:
        self.bot.handle_update(
            {
                "update_id": next(_update_ids),
                "callback_query": {
                    "id": callback_id,
                    "from": {"id": chat_id},
                    "message": {"message_id": 42, "chat": {"id": chat_id}},
                    "data": data,
                },
            }
        )
        answered_id, toast = self.messenger.answers[-1]
        assert answered_id == callback_id
        return toast

    def register(self, chat_id: int = CHAT, phone: str = "300 123 4567") -> None:
        self.text("/start", chat_id)
        self.text("Laura", chat_id)
        self.text(phone, chat_id)
        self.text("Calle 10 #5-20", chat_id)

    def order_burger(self, chat_id: int = CHAT, callback_id: str = "cb-pay") -> None:
        self.tap("prod:prd_hamburguesa", chat_id=chat_id)
        self.tap("note:skip", chat_id=chat_id)
        self.text(CHECKOUT_BUTTON, chat_id)
        self.tap("pay:nequi", callback_id=callback_id, chat_id=chat_id)

    def state(self, chat_id: int = CHAT) -> ConversationState:
        return self.store.load(str(chat_id)).state


@pytest.fixture()
def harness() -> BotHarness:
    return BotHarness()


def _callback_data(markup: dict[str, Any]) -> list[str]:
    return [button["callback_data"] for row in markup["inline_keyboard"] for button in row]


def test_registration_flow(harness: BotHarness) -> None:
    harness.text("/start")
    assert harness.state() == ConversationState.REGISTER_NAME
    assert harness.messenger.last_text.startswith("¡Hola Laura! Bienvenido a Malulos.")

    harness.text("Laura")
    assert harness.messenger.last_text == "¿Cuál es tu número de teléfono?"
    harness.text("12")
    assert harness.state() == ConversationState.REGISTER_PHONE
    harness.text("300 123 4567")
    assert harness.messenger.last_text == "¿A qué dirección enviamos tus pedidos?"
    harness.text("Calle 10 #5-20")

    assert harness.messenger.last_text == "¡Listo Laura! Ya puedes hacer tu pedido."
    assert harness.state() == ConversationState.IDLE
    customer = next(iter(harness.db.customers.values()))
    assert (customer.phone, customer.telegram_chat_id) == ("3001234567", "555")
    assert customer.address == "Calle 10 #5-20"


def test_unregistered_text_starts_registration(harness: BotHarness) -> None:
    harness.text(MENU_BUTTON)

    assert harness.state() == ConversationState.REGISTER_NAME
    assert harness.messenger.last_text.endswith("¿Cuál es tu nombre?")


def test_registered_start_greets_with_keyboard(harness: BotHarness) -> None:
    harness.register()

    harness.text("/start")

    greeting = harness.messenger.sent[-1]
    assert greeting["text"].startswith("¡Hola Laura! Bienvenido a Malulos")
    assert "keyboard" in greeting["reply_markup"]


def test_menu_browsing(harness: BotHarness) -> None:
    harness.register()

    harness.text(MENU_BUTTON)
    categories = harness.messenger.sent[-1]["reply_markup"]
    assert _callback_data(categories)[0] == "cat:cat_hamburguesas"

    assert harness.tap("cat:cat_bebidas") is None
    products = harness.messenger.edited[-1]
    assert products["message_id"] == 42
    # inactive products stay hidden
    assert _callback_data(products["reply_markup"]) == ["prod:prd_coca", "back:cats"]
    assert "Coca-Cola - $5.000" in products["reply_markup"]["inline_keyboard"][0][0]["text"]

    assert harness.tap("cat:cat_postres") == "No hay productos en esta categoría."
    harness.tap("back:cats")
    assert harness.messenger.edited[-1]["text"] == "Selecciona una categoría:"
    assert harness.tap("prod:prd_malteada") == "Ese producto ya no está disponible."
    assert harness.tap("bogus") == "Opción no disponible."


def test_cart_notes_and_clearing(harness: BotHarness) -> None:
    harness.register()

    toast = harness.tap("prod:prd_hamburguesa")
    assert toast == "✅ Hamburguesa Clásica añadido."
    harness.tap("note:add")
    assert harness.state() == ConversationState.AWAITING_NOTE
    harness.text("sin cebolla")
    assert harness.messenger.last_text == "📝 Nota agregada. ¿Quieres algo más?"
    harness.tap("prod:prd_papas")
    assert harness.tap("note:skip") == "Listo. ¿Quieres algo más?"

    harness.text(CART_BUTTON)
    summary = harness.messenger.last_text
    assert "1. Hamburguesa Clásica - $15.000" in summary
    assert "   Nota: sin cebolla" in summary
    assert "TOTAL: $23.000" in summary

    harness.text(CLEAR_BUTTON)
    assert harness.store.load(str(CHAT)).cart == []
    harness.text(CHECKOUT_BUTTON)
    assert harness.messenger.last_text == "No tienes productos para pedir. 🧐"


def test_telegram_checkout_places_delivery_order(harness: BotHarness) -> None:
    harness.register()

    harness.tap("prod:prd_hamburguesa")
    harness.tap("note:skip")
    harness.text(CHECKOUT_BUTTON)
    assert harness.state() == ConversationState.AWAITING_PAYMENT_METHOD
    assert _callback_data(harness.messenger.sent[-1]["reply_markup"])[0] == "pay:nequi"
    assert harness.tap("pay:nequi", callback_id="cb-pay") is None

    confirmation = harness.messenger.sent[-1]
    assert "Tu número de orden es #001" in confirmation["text"]
    assert "Total: $15.000" in confirmation["text"]
    assert "Confirmaremos tu pago" in confirmation["text"]
    order = next(iter(harness.db.orders.values()))
    assert _callback_data(confirmation["reply_markup"]) == [f"cancel:{order.order_id}"]
    assert order.channel == OrderChannel.DELIVERY
    assert order.origin == OrderOrigin.TELEGRAM
    assert order.payment_method == PaymentMethod.NEQUI
    assert order.customer_address == "Calle 10 #5-20"
    assert order.idempotency_key == "telegram:555:cb-pay"
    assert harness.publisher.messages
    assert harness.state() == ConversationState.IDLE

    assert harness.tap("pay:nequi", callback_id="cb-pay") == "Tu carrito está vacío."
    assert len(harness.db.orders) == 1


def test_payment_needs_checkout_first(harness: BotHarness) -> None:
    harness.register()
    harness.tap("prod:prd_papas")

    assert harness.tap("pay:nequi") == "Tu carrito está vacío."
    harness.text(CHECKOUT_BUTTON)
    assert harness.tap("pay:bitcoin") == "Método de pago no disponible."
    assert harness.db.orders == {}


def test_customer_cancels_pending_order(harness: BotHarness) -> None:
    harness.register()
    harness.order_burger()
    order = next(iter(harness.db.orders.values()))

    assert harness.tap(f"cancel:{order.order_id}") == "Pedido cancelado."

    cancelled = harness.db.orders[order.order_id]
    assert cancelled.status == OrderStatus.CANCELLED
    assert harness.notifier.sent[-1] == ("555", str(order.order_id), "cancelled")


def test_cancel_is_limited_to_own_pending_orders(harness: BotHarness) -> None:
    harness.register()
    harness.order_burger()
    order = next(iter(harness.db.orders.values()))
    harness.register(chat_id=777, phone="3109876543")

    assert harness.tap(f"cancel:{order.order_id}", chat_id=777) == "No encontramos ese pedido."
    assert harness.tap("cancel:ord_404") == "No encontramos ese pedido."

    harness.db.orders[order.order_id] = replace(order, status=OrderStatus.PREPARING)
    assert harness.tap(f"cancel:{order.order_id}") == (
        "Tu pedido ya está en preparación y no se puede cancelar."
    )
    assert harness.db.orders[order.order_id].status == OrderStatus.PREPARING
