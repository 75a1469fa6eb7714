from __future__ import annotations

from datetime import timedelta

from rpos.domain.common.money import Money
from rpos.domain.order.entities import Order, OrderChannel, PaymentMethod

TICKET_WIDTH = 48

_CHANNEL_LABELS = {
    OrderChannel.DINE_IN: "MESA",
    OrderChannel.TAKEOUT: "PARA LLEVAR",
    OrderChannel.DELIVERY: "DOMICILIO",
}

_METHOD_LABELS = {
    PaymentMethod.CASH: "Efectivo",
    PaymentMethod.CARD: "Tarjeta",
    PaymentMethod.TRANSFER: "Transferencia",
    PaymentMethod.NEQUI: "Nequi",
    PaymentMethod.DAVIPLATA: "Daviplata",
}


def format_money(amount_cents: int) -> str:
    sign = "-" if amount_cents < 0 else ""
    return f"{sign}${abs(amount_cents):,}".replace(",", ".")


def _center(text: str) -> str:
    return text[:TICKET_WIDTH].center(TICKET_WIDTH).rstrip()


def _rule(char: str = "-") -> str:
    return char * TICKET_WIDTH


def _columns(left: str, right: str) -> str:
    room = TICKET_WIDTH - len(right) - 1
    return f"{left[:room]:<{room}} {right}"


def _destination(order: Order) -> str:
    if order.channel == OrderChannel.DINE_IN:
        return f"MESA: {order.table_name or order.table_id}"
    return _CHANNEL_LABELS[order.channel]


def to_sale_ticket_text(
    order: Order,
    business_name: str,
    utc_offset_hours: int,
    tendered: Money | None = None,
) -> str:
    stamp = (order.completed_at or order.created_at) + timedelta(hours=utc_offset_hours)
    lines = [
        _center(business_name),
        _center("TICKET DE VENTA"),
        _center(f"Orden: {order.order_number}"),
        _center(f"Fecha: {stamp:%Y-%m-%d %H:%M}"),
        _center(_destination(order)),
    ]
    if order.customer_name:
        lines.append(_center(f"Cliente: {order.customer_name}"))
    if order.channel == OrderChannel.DELIVERY and order.customer_address:
        lines.append(_center(f"Dir: {order.customer_address}"))
    lines.append(_rule())

    for line in order.lines:
        lines.append(
            _columns(f"{line.quantity}x {line.name}", format_money(line.line_total.amount_cents))
        )
        if line.size is not None:
            lines.append(f"   ({line.size.name})")
        for modifier in line.modifiers:
            lines.append(f"   + {modifier.name}")
        if line.notes:
            lines.append(f"   Nota: {line.notes}")

    lines.append(_rule())
    lines.append(_columns("Subtotal:", format_money(order.subtotal.amount_cents)))
    if order.discount.amount_cents:
        lines.append(_columns("Descuento:", format_money(-order.discount.amount_cents)))
    if order.tax.amount_cents:
        lines.append(_columns("Impuesto:", format_money(order.tax.amount_cents)))
    lines.append(_columns("TOTAL:", format_money(order.total.amount_cents)))

    if order.payment_method is not None:
        lines.append(_columns("Pago:", _METHOD_LABELS[order.payment_method]))
    received = tendered or (
        order.paid_amount if order.payment_method == PaymentMethod.CASH else None
    )
    if received is not None:
        lines.append(_columns("Recibido:", format_money(received.amount_cents)))
        lines.append(
            _columns("Cambio:", format_money(received.amount_cents - order.total.amount_cents))
        )

    lines.append("")
    lines.append(_center("¡Gracias por tu compra!"))
    return "\n".join(lines) + "\n"


def to_kitchen_ticket_text(order: Order, utc_offset_hours: int) -> str:
    stamp = order.created_at + timedelta(hours=utc_offset_hours)
    lines = [
        _center("COMANDA - COCINA"),
        _center(f"ORDEN: {order.order_number}"),
        _center(_destination(order)),
        _center(f"Hora: {stamp:%H:%M}"),
        _rule(),
    ]
    for line in order.lines:
        size = f" ({line.size.name})" if line.size is not None else ""
        lines.append(f"{line.quantity}x {line.name}{size}")
        for modifier in line.modifiers:
            lines.append(f"   + {modifier.name}")
        if line.notes:
            lines.append(f"   *NOTA: {line.notes}*")
    if order.notes:
        lines.append(_rule())
        lines.append(f"NOTA: {order.notes}")
    return "\n".join(lines) + "\n"
