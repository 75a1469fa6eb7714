from __future__ import annotations

from rpos.application.dto.responses import CustomerResponse
from rpos.domain.customer.entities import Customer


def to_customer_response(customer: Customer) -> CustomerResponse:
    return CustomerResponse(
        customerId=str(customer.customer_id),
        name=customer.name,
        phone=customer.phone,
        address=customer.address,
        telegramChatId=customer.telegram_chat_id,
        notes=customer.notes,
        createdAt=customer.created_at,
        lastOrderAt=customer.last_order_at,
    )
