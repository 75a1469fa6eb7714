from __future__ import annotations

from typing import Any

from rpos.application.dto.responses import CategoryResponse, ProductResponse
from rpos.application.mappers.ticket_mapper import format_money
from rpos.domain.order.entities import PaymentMethod

MENU_BUTTON = "📖 Ver Menú"
CART_BUTTON = "🛒 Mi Carrito"
CHECKOUT_BUTTON = "✅ Finalizar Pedido"
CLEAR_BUTTON = "❌ Vaciar Carrito"

PAYMENT_OPTIONS: tuple[tuple[PaymentMethod, str], ...] = (
    (PaymentMethod.NEQUI, "Nequi"),
    (PaymentMethod.DAVIPLATA, "Daviplata"),
    (PaymentMethod.TRANSFER, "Transferencia"),
    (PaymentMethod.CASH, "Efectivo contra entrega"),
)


def _button(text: str, data: str) -> dict[str, str]:
    return {"text": text, "callback_data": data}


def main_keyboard() -> dict[str, Any]:
    return {
        "keyboard": [
            [{"text": MENU_BUTTON}, {"text": CART_BUTTON}],
            [{"text": CHECKOUT_BUTTON}, {"text": CLEAR_BUTTON}],
        ],
        "resize_keyboard": True,
    }


def categories_keyboard(categories: list[CategoryResponse]) -> dict[str, Any]:
    rows = [
        [_button(f"{category.icon} {category.name}".strip(), f"cat:{category.categoryId}")]
        for category in categories
    ]
    return {"inline_keyboard": rows}


def products_keyboard(products: list[ProductResponse]) -> dict[str, Any]:
    rows = [
        [
            _button(
                f"{product.name} - {format_money(product.basePrice.amountCents)}",
                f"prod:{product.productId}",
            )
        ]
        for product in products
    ]
    rows.append([_button("⬅️ Volver a categorías", "back:cats")])
    return {"inline_keyboard": rows}


def note_keyboard() -> dict[str, Any]:
    return {
        "inline_keyboard": [
            [_button("📝 Agregar nota", "note:add"), _button("Seguir", "note:skip")],
        ]
    }


def payment_keyboard() -> dict[str, Any]:
    return {
        "inline_keyboard": [
            [_button(label, f"pay:{method.value}")] for method, label in PAYMENT_OPTIONS
        ]
    }


def cancel_keyboard(order_id: str) -> dict[str, Any]:
    return {"inline_keyboard": [[_button("Cancelar pedido", f"cancel:{order_id}")]]}
