from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Header, Query, status
from fastapi.responses import PlainTextResponse

from rpos.api.dependencies import (
    business_settings,
    current_trace_context,
    customer_notifier,
    event_publisher,
    unit_of_work,
)
from rpos.application.dto.requests import (
    ChangeOrderStatusRequest,
    ConfirmPaymentRequest,
    PaymentRequest,
    PlaceOrderRequest,
)
from rpos.application.dto.responses import OrderListResponse, OrderResponse
from rpos.application.use_cases.get_order import GetOrder, ListOrders, RenderTicket
from rpos.application.use_cases.order_lifecycle import ChangeOrderStatus, ConfirmPayment
from rpos.application.use_cases.place_order import PlaceOrder
from rpos.domain.common.ids import OrderId

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _place_order_use_case() -> PlaceOrder:
    return PlaceOrder(
        uow=unit_of_work(),
        publisher=event_publisher(),
        settings=business_settings(),
    )


def _change_status_use_case() -> ChangeOrderStatus:
    return ChangeOrderStatus(
        uow=unit_of_work(),
        publisher=event_publisher(),
        notifier=customer_notifier(),
    )


def _confirm_payment_use_case() -> ConfirmPayment:
    return ConfirmPayment(
        uow=unit_of_work(),
        publisher=event_publisher(),
        notifier=customer_notifier(),
    )


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    request_dto: PlaceOrderRequest,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> OrderResponse:
    return _place_order_use_case().execute(
        request_dto=request_dto,
        trace_ctx=current_trace_context(),
        idempotency_key=idempotency_key,
    )


@router.get("", response_model=OrderListResponse)
def list_orders(
    active: bool = False,
    status_filter: list[str] | None = Query(default=None, alias="status"),
    table_id: str | None = Query(default=None, alias="tableId"),
    origin: str | None = None,
    completed_from: datetime | None = Query(default=None, alias="from"),
    completed_to: datetime | None = Query(default=None, alias="to"),
    limit: int = 100,
) -> OrderListResponse:
    return ListOrders(unit_of_work()).execute(
        active=active,
        statuses=status_filter,
        table_id=table_id,
        origin=origin,
        completed_from=completed_from,
        completed_to=completed_to,
        limit=limit,
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return GetOrder(unit_of_work()).execute(order_id=OrderId(order_id))


@router.post("/{order_id}/status", response_model=OrderResponse)
def change_order_status(order_id: str, request_dto: ChangeOrderStatusRequest) -> OrderResponse:
    return _change_status_use_case().execute(
        order_id=OrderId(order_id),
        target=request_dto.status,
        trace_ctx=current_trace_context(),
        payment=request_dto.payment,
    )


@router.post("/{order_id}/confirm-payment", response_model=OrderResponse)
def confirm_payment(
    order_id: str,
    request_dto: ConfirmPaymentRequest | None = None,
) -> OrderResponse:
    payment = None
    if request_dto is not None and request_dto.method is not None:
        payment = PaymentRequest(
            method=request_dto.method, tendered_cents=request_dto.tendered_cents
        )
    return _confirm_payment_use_case().execute(
        order_id=OrderId(order_id),
        trace_ctx=current_trace_context(),
        payment=payment,
    )


@router.get("/{order_id}/ticket", response_class=PlainTextResponse)
def order_ticket(
    order_id: str,
    tendered: int | None = Query(default=None, ge=0),
    kind: str = Query(default="sale", pattern="^(sale|kitchen)$"),
) -> PlainTextResponse:
    text = RenderTicket(unit_of_work(), business_settings()).execute(
        order_id=OrderId(order_id),
        tendered_cents=tendered,
        kitchen=kind == "kitchen",
    )
    return PlainTextResponse(text)
