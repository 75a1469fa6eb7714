from __future__ import annotations

from rpos.application.dto.responses import (
    MoneyResponse,
    OrderLineResponse,
    OrderResponse,
    SelectedModifierResponse,
    SelectedSizeResponse,
)
from rpos.domain.common.money import Money
from rpos.domain.order.entities import Order, OrderLine


def to_money_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=money.amount_cents, currency=money.currency)


def _to_line_response(line: OrderLine) -> OrderLineResponse:
    return OrderLineResponse(
        lineId=str(line.line_id),
        productId=str(line.product_id),
        name=line.name,
        quantity=line.quantity,
        unitPrice=to_money_response(line.unit_price),
        lineTotal=to_money_response(line.line_total),
        notes=line.notes,
        size=(
            SelectedSizeResponse(
                name=line.size.name,
                priceModifier=to_money_response(line.size.price_modifier),
            )
            if line.size is not None
            else None
        ),
        modifiers=[
            SelectedModifierResponse(
                modifierId=modifier.modifier_id,
                name=modifier.name,
                priceModifier=to_money_response(modifier.price_modifier),
            )
            for modifier in line.modifiers
        ],
        status=line.status.value,
    )


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        orderId=str(order.order_id),
        orderNumber=order.order_number,
        channel=order.channel.value,
        origin=order.origin.value,
        status=order.status.value,
        tableId=str(order.table_id) if order.table_id is not None else None,
        tableName=order.table_name,
        customerId=str(order.customer_id) if order.customer_id is not None else None,
        customerName=order.customer_name,
        customerPhone=order.customer_phone,
        customerAddress=order.customer_address,
        notes=order.notes,
        lines=[_to_line_response(line) for line in order.lines],
        subtotal=to_money_response(order.subtotal),
        discount=to_money_response(order.discount),
        tax=to_money_response(order.tax),
        total=to_money_response(order.total),
        paymentStatus=order.payment_status.value,
        paymentMethod=order.payment_method.value if order.payment_method else None,
        paidAmount=to_money_response(order.paid_amount) if order.paid_amount else None,
        changeGiven=to_money_response(order.change_given) if order.change_given else None,
        version=order.version,
        createdAt=order.created_at,
        confirmedAt=order.confirmed_at,
        readyAt=order.ready_at,
        completedAt=order.completed_at,
        cancelledAt=order.cancelled_at,
    )
