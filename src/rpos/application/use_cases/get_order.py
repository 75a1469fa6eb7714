from __future__ import annotations

from datetime import datetime

from rpos.application.dto.responses import OrderListResponse, OrderResponse
from rpos.application.errors import ValidationError
from rpos.application.mappers.order_mapper import to_order_response
from rpos.application.mappers.ticket_mapper import to_kitchen_ticket_text, to_sale_ticket_text
from rpos.application.ports.repositories import OrderListFilter, UnitOfWork
from rpos.application.use_cases.context import BusinessSettings
from rpos.application.use_cases.order_lifecycle import OrderNotFoundError
from rpos.domain.common.ids import OrderId, TableId
from rpos.domain.common.money import Money
from rpos.domain.order.entities import ACTIVE_STATUSES, OrderOrigin, OrderStatus


class InvalidOrderQueryError(ValidationError):
    code = "INVALID_ORDER_QUERY"


class GetOrder:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, order_id: OrderId) -> OrderResponse:
        with self._uow as uow:
            order = uow.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return to_order_response(order)


class ListOrders:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(
        self,
        active: bool = False,
        statuses: list[str] | None = None,
        table_id: str | None = None,
        origin: str | None = None,
        completed_from: datetime | None = None,
        completed_to: datetime | None = None,
        limit: int = 100,
    ) -> OrderListResponse:
        if limit < 1 or limit > 500:
            raise InvalidOrderQueryError("limit must be between 1 and 500")
        try:
            wanted = frozenset(OrderStatus(value) for value in statuses or [])
            origin_filter = OrderOrigin(origin) if origin else None
        except ValueError as exc:
            raise InvalidOrderQueryError(str(exc)) from exc
        if active:
            wanted = wanted & ACTIVE_STATUSES if wanted else ACTIVE_STATUSES
            if not wanted:
                return OrderListResponse(orders=[])

        filters = OrderListFilter(
            statuses=wanted,
            table_id=TableId(table_id) if table_id else None,
            origin=origin_filter,
            completed_from=completed_from,
            completed_to=completed_to,
        )
        with self._uow as uow:
            orders = uow.orders.list(filters, limit=limit)
        return OrderListResponse(orders=[to_order_response(order) for order in orders])


class RenderTicket:
    def __init__(self, uow: UnitOfWork, settings: BusinessSettings) -> None:
        self._uow = uow
        self._settings = settings

    def execute(
        self,
        order_id: OrderId,
        tendered_cents: int | None = None,
        kitchen: bool = False,
    ) -> str:
        with self._uow as uow:
            order = uow.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        if kitchen:
            return to_kitchen_ticket_text(order, self._settings.utc_offset_hours)

        tendered = None
        if tendered_cents is not None:
            if tendered_cents < order.total.amount_cents:
                raise InvalidOrderQueryError(
                    "tendered amount is below the order total",
                    details={"totalCents": order.total.amount_cents},
                )
            tendered = Money(amount_cents=tendered_cents, currency=order.total.currency)
        return to_sale_ticket_text(
            order,
            business_name=self._settings.name,
            utc_offset_hours=self._settings.utc_offset_hours,
            tendered=tendered,
        )
