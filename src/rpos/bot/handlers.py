from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from opentelemetry import trace

from rpos.application.dto.requests import PlaceOrderLineRequest, PlaceOrderRequest
from rpos.application.dto.responses import CustomerResponse, ProductResponse
from rpos.application.errors import ApplicationError
from rpos.application.mappers.ticket_mapper import format_money
from rpos.application.ports.notifier import CustomerNotifier
from rpos.application.ports.publisher import EventPublisher
from rpos.application.ports.repositories import UnitOfWork
from rpos.application.use_cases.catalog import GetProduct, ListCategories, ListProducts
from rpos.application.use_cases.context import BusinessSettings, TraceContext
from rpos.application.use_cases.customers import FindTelegramCustomer, RegisterTelegramCustomer
from rpos.application.use_cases.get_order import GetOrder
from rpos.application.use_cases.order_lifecycle import ChangeOrderStatus
from rpos.application.use_cases.place_order import PlaceOrder
from rpos.bot.conversation import CartItem, Conversation, ConversationState, ConversationStore
from rpos.bot.keyboards import (
    CART_BUTTON,
    CHECKOUT_BUTTON,
    CLEAR_BUTTON,
    MENU_BUTTON,
    PAYMENT_OPTIONS,
    cancel_keyboard,
    categories_keyboard,
    main_keyboard,
    note_keyboard,
    payment_keyboard,
    products_keyboard,
)
from rpos.domain.common.ids import CategoryId, OrderId, ProductId
from rpos.domain.order.entities import OrderChannel, OrderOrigin, OrderStatus, PaymentMethod

logger = logging.getLogger(__name__)
_tracer = trace.get_tracer(__name__)

_PHONE_PATTERN = re.compile(r"^\d{7,15}$")
_PAYMENT_METHODS = {method.value: method for method, _ in PAYMENT_OPTIONS}


class BotMessenger(Protocol):
    def send_message(
        self,
        chat_id: str,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> Any: ...

    def edit_message_text(
        self,
        chat_id: str,
        message_id: int,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> Any: ...

    def answer_callback_query(self, callback_query_id: str, text: str | None = None) -> None: ...


@dataclass(frozen=True)
class BotDependencies:
    uow_factory: Callable[[], UnitOfWork]
    publisher: EventPublisher
    notifier: CustomerNotifier
    settings: BusinessSettings
    store: ConversationStore


class TelegramOrderBot:
    def __init__(self, messenger: BotMessenger, deps: BotDependencies) -> None:
        self._messenger = messenger
        self._deps = deps

    def handle_update(self, update: dict[str, Any]) -> None:
        with _tracer.start_as_current_span("telegram.update") as span:
            span_context = span.get_span_context()
            trace_ctx = TraceContext(
                trace_id=format(span_context.trace_id, "032x") if span_context.is_valid else None,
                request_id=f"tg-{update.get('update_id')}",
            )
            if "callback_query" in update:
                span.set_attribute("telegram.kind", "callback_query")
                self._handle_callback(update["callback_query"], trace_ctx)
            elif "message" in update:
                span.set_attribute("telegram.kind", "message")
                self._handle_message(update["message"])

    def _handle_message(self, message: dict[str, Any]) -> None:
        chat_id = str(message["chat"]["id"])
        text = (message.get("text") or "").strip()
        if not text:
            return
        conversation = self._deps.store.load(chat_id)
        try:
            self._dispatch_text(conversation, text, message)
        finally:
            self._deps.store.save(conversation)

    def _dispatch_text(
        self,
        conversation: Conversation,
        text: str,
        message: dict[str, Any],
    ) -> None:
        chat_id = conversation.chat_id
        if text.startswith("/start"):
            conversation.state = ConversationState.IDLE
            self._greet(conversation, message)
            return

        state = conversation.state
        if state == ConversationState.REGISTER_NAME:
            conversation.draft_name = text
            conversation.state = ConversationState.REGISTER_PHONE
            self._send(chat_id, "¿Cuál es tu número de teléfono?")
            return
        if state == ConversationState.REGISTER_PHONE:
            digits = re.sub(r"\D", "", text)
            if not _PHONE_PATTERN.match(digits):
                self._send(
                    chat_id, "El teléfono debe tener entre 7 y 15 dígitos. Intenta de nuevo."
                )
                return
            conversation.draft_phone = digits
            conversation.state = ConversationState.REGISTER_ADDRESS
            self._send(chat_id, "¿A qué dirección enviamos tus pedidos?")
            return
        if state == ConversationState.REGISTER_ADDRESS:
            self._finish_registration(conversation, text)
            return
        if state == ConversationState.AWAITING_NOTE:
            self._save_note(conversation, text)
            return

        if self._customer(chat_id) is None:
            self._start_registration(conversation)
            return
        if text in (MENU_BUTTON, "/menu"):
            self._send(chat_id, "Selecciona una categoría:", self._categories_markup())
        elif text == CART_BUTTON:
            self._send(chat_id, _cart_summary(conversation))
        elif text == CLEAR_BUTTON:
            conversation.reset_cart()
            self._send(chat_id, "Carrito vaciado. 🗑️")
        elif text == CHECKOUT_BUTTON:
            if not conversation.cart:
                self._send(chat_id, "No tienes productos para pedir. 🧐")
                return
            conversation.state = ConversationState.AWAITING_PAYMENT_METHOD
            self._send(
                chat_id,
                f"{_cart_summary(conversation)}\n\n¿Cómo vas a pagar?",
                payment_keyboard(),
            )
        else:
            self._send(chat_id, "Usa los botones de abajo para hacer tu pedido.", main_keyboard())

    def _greet(self, conversation: Conversation, message: dict[str, Any]) -> None:
        customer = self._customer(conversation.chat_id)
        if customer is None:
            self._start_registration(conversation, message.get("from", {}).get("first_name"))
            return
        self._send(
            conversation.chat_id,
            f"¡Hola {customer.name}! Bienvenido a {self._deps.settings.name} 🍔🥤\n\n"
            "Usa los botones de abajo para hacer tu pedido.",
            main_keyboard(),
        )

    def _start_registration(
        self,
        conversation: Conversation,
        first_name: str | None = None,
    ) -> None:
        conversation.state = ConversationState.REGISTER_NAME
        conversation.draft_name = None
        conversation.draft_phone = None
        greeting = f"¡Hola {first_name}! " if first_name else ""
        self._send(
            conversation.chat_id,
            f"{greeting}Bienvenido a {self._deps.settings.name}. "
            "Antes de tu primer pedido necesitamos unos datos.\n\n¿Cuál es tu nombre?",
        )

    def _finish_registration(self, conversation: Conversation, address: str) -> None:
        chat_id = conversation.chat_id
        try:
            customer = RegisterTelegramCustomer(self._deps.uow_factory()).execute(
                chat_id=chat_id,
                name=conversation.draft_name or "",
                phone=conversation.draft_phone or "",
                address=address,
            )
        except ApplicationError as exc:
            logger.warning("telegram registration failed", extra={"chat_id": chat_id})
            conversation.state = ConversationState.REGISTER_NAME
            self._send(chat_id, f"No pudimos registrarte: {exc}. ¿Cuál es tu nombre?")
            return
        conversation.state = ConversationState.IDLE
        conversation.draft_name = None
        conversation.draft_phone = None
        self._send(
            chat_id,
            f"¡Listo {customer.name}! Ya puedes hacer tu pedido.",
            main_keyboard(),
        )

    def _save_note(self, conversation: Conversation, text: str) -> None:
        index = conversation.note_index
        conversation.state = ConversationState.IDLE
        conversation.note_index = None
        if index is None or index >= len(conversation.cart):
            self._send(conversation.chat_id, "No encontramos el producto para la nota.")
            return
        conversation.cart[index].notes = text
        self._send(conversation.chat_id, "📝 Nota agregada. ¿Quieres algo más?")

    def _handle_callback(self, callback: dict[str, Any], trace_ctx: TraceContext) -> None:
        message = callback.get("message") or {}
        chat_id = str(message.get("chat", {}).get("id") or callback["from"]["id"])
        message_id = message.get("message_id")
        data = callback.get("data") or ""
        action, _, argument = data.partition(":")
        conversation = self._deps.store.load(chat_id)
        toast: str | None = None
        try:
            if action == "cat":
                toast = self._show_products(chat_id, message_id, argument)
            elif action == "back" and argument == "cats":
                self._edit(
                    chat_id, message_id, "Selecciona una categoría:", self._categories_markup()
                )
            elif action == "prod":
                toast = self._add_to_cart(conversation, argument)
            elif action == "note":
                toast = self._note_choice(conversation, argument)
            elif action == "pay":
                toast = self._checkout(conversation, argument, callback["id"], trace_ctx)
            elif action == "cancel":
                toast = self._cancel(chat_id, argument, trace_ctx)
            else:
                toast = "Opción no disponible."
        finally:
            self._deps.store.save(conversation)
            self._messenger.answer_callback_query(callback["id"], toast)

    def _show_products(self, chat_id: str, message_id: int | None, category_id: str) -> str | None:
        products = ListProducts(self._deps.uow_factory()).execute(
            category_id=CategoryId(category_id)
        )
        if not products.products:
            return "No hay productos en esta categoría."
        self._edit(chat_id, message_id, "Elige un producto:", products_keyboard(products.products))
        return None

    def _add_to_cart(self, conversation: Conversation, product_id: str) -> str:
        try:
            product = GetProduct(self._deps.uow_factory()).execute(ProductId(product_id))
        except ApplicationError:
            return "Ese producto ya no está disponible."
        if not product.isActive:
            return "Ese producto ya no está disponible."
        modifier_ids, unit_price_cents = _default_selection(product)
        conversation.cart.append(
            CartItem(
                product_id=product.productId,
                name=product.name,
                unit_price_cents=unit_price_cents,
                modifier_ids=modifier_ids,
            )
        )
        conversation.note_index = len(conversation.cart) - 1
        self._send(
            conversation.chat_id,
            f"Añadiste {product.name} al carrito. ¿Quieres agregar una nota?",
            note_keyboard(),
        )
        return f"✅ {product.name} añadido."

    def _note_choice(self, conversation: Conversation, choice: str) -> str | None:
        if choice == "add" and conversation.note_index is not None:
            conversation.state = ConversationState.AWAITING_NOTE
            item = conversation.cart[conversation.note_index]
            self._send(conversation.chat_id, f"Escribe la nota para {item.name}:")
            return None
        conversation.note_index = None
        return "Listo. ¿Quieres algo más?"

    def _checkout(
        self,
        conversation: Conversation,
        method_value: str,
        callback_id: str,
        trace_ctx: TraceContext,
    ) -> str | None:
        chat_id = conversation.chat_id
        if conversation.state != ConversationState.AWAITING_PAYMENT_METHOD or not conversation.cart:
            return "Tu carrito está vacío."
        method = _PAYMENT_METHODS.get(method_value)
        if method is None:
            return "Método de pago no disponible."
        customer = self._customer(chat_id)
        if customer is None:
            self._start_registration(conversation)
            return None

        request_dto = _order_request(conversation, customer, method)
        try:
            order = PlaceOrder(
                self._deps.uow_factory(), self._deps.publisher, self._deps.settings
            ).execute(request_dto, trace_ctx, idempotency_key=f"telegram:{chat_id}:{callback_id}")
        except ApplicationError as exc:
            logger.warning(
                "telegram order rejected",
                extra={"chat_id": chat_id, "status": exc.code},
            )
            self._send(chat_id, f"Lo sentimos, no pudimos procesar tu pedido: {exc}")
            return None

        conversation.reset_cart()
        logger.info(
            "telegram order placed",
            extra={
                "chat_id": chat_id,
                "order_id": order.orderId,
                "order_number": order.orderNumber,
            },
        )
        instructions = ""
        if method != PaymentMethod.CASH:
            instructions = "\nConfirmaremos tu pago antes de preparar el pedido."
        self._send(
            chat_id,
            f"¡Pedido recibido con éxito! 🎉\n\nTu número de orden es {order.orderNumber}.\n"
            f"Total: {format_money(order.total.amountCents)}{instructions}",
            cancel_keyboard(order.orderId),
        )
        return None

    def _cancel(self, chat_id: str, order_id: str, trace_ctx: TraceContext) -> str:
        customer = self._customer(chat_id)
        try:
            order = GetOrder(self._deps.uow_factory()).execute(OrderId(order_id))
        except ApplicationError:
            return "No encontramos ese pedido."
        if customer is None or order.customerId != customer.customerId:
            return "No encontramos ese pedido."
        if order.status != OrderStatus.PENDING.value:
            return "Tu pedido ya está en preparación y no se puede cancelar."
        try:
            ChangeOrderStatus(
                self._deps.uow_factory(), self._deps.publisher, self._deps.notifier
            ).execute(OrderId(order_id), OrderStatus.CANCELLED, trace_ctx)
        except ApplicationError:
            logger.warning(
                "telegram cancel failed", extra={"chat_id": chat_id, "order_id": order_id}
            )
            return "No pudimos cancelar el pedido."
        return "Pedido cancelado."

    def _customer(self, chat_id: str) -> CustomerResponse | None:
        return FindTelegramCustomer(self._deps.uow_factory()).execute(chat_id)

    def _categories_markup(self) -> dict[str, Any]:
        categories = ListCategories(self._deps.uow_factory()).execute()
        return categories_keyboard(categories.categories)

    def _send(self, chat_id: str, text: str, markup: dict[str, Any] | None = None) -> None:
        self._messenger.send_message(chat_id, text, markup)

    def _edit(
        self,
        chat_id: str,
        message_id: int | None,
        text: str,
        markup: dict[str, Any],
    ) -> None:
        if message_id is None:
            self._send(chat_id, text, markup)
            return
        self._messenger.edit_message_text(chat_id, message_id, text, markup)


def _default_selection(product: ProductResponse) -> tuple[list[str], int]:
    chosen: list[str] = []
    price = product.basePrice.amountCents
    for group in product.modifierGroups:
        picked = [modifier for modifier in group.modifiers if modifier.isDefault][: group.maxSelect]
        for modifier in group.modifiers:
            if len(picked) >= group.minSelect:
                break
            if modifier not in picked:
                picked.append(modifier)
        for modifier in picked:
            chosen.append(modifier.modifierId)
            price += modifier.priceModifier.amountCents
    return chosen, price


def _cart_summary(conversation: Conversation) -> str:
    if not conversation.cart:
        return "Tu carrito está vacío. 🛒"
    rows = ["Tu pedido:", ""]
    for position, item in enumerate(conversation.cart, start=1):
        rows.append(f"{position}. {item.name} - {format_money(item.unit_price_cents)}")
        if item.notes:
            rows.append(f"   Nota: {item.notes}")
    rows.append("")
    rows.append(f"TOTAL: {format_money(conversation.cart_total_cents)}")
    return "\n".join(rows)


def _order_request(
    conversation: Conversation,
    customer: CustomerResponse,
    method: PaymentMethod,
) -> PlaceOrderRequest:
    return PlaceOrderRequest(
        channel=OrderChannel.DELIVERY,
        origin=OrderOrigin.TELEGRAM,
        customer_id=customer.customerId,
        payment_method=method,
        lines=[
            PlaceOrderLineRequest(
                product_id=item.product_id,
                quantity=item.quantity,
                modifier_ids=item.modifier_ids,
                notes=item.notes,
            )
            for item in conversation.cart
        ],
    )
