from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

from rpos.application.dto.requests import PlaceOrderLineRequest, PlaceOrderRequest
from rpos.application.dto.responses import OrderResponse
from rpos.application.errors import ConflictError, NotFoundError, ValidationError
from rpos.application.mappers.event_envelope import serialize_order_placed_event
from rpos.application.mappers.order_mapper import to_order_response
from rpos.application.metrics.order_lifecycle import record_order_status
from rpos.application.ports.publisher import EVENTS_CHANNEL, EventPublisher
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.application.use_cases.context import BusinessSettings, TraceContext
from rpos.domain.common.ids import CustomerId, OrderId, OrderLineId, ProductId, TableId
from rpos.domain.common.money import Money
from rpos.domain.customer.entities import Customer
from rpos.domain.menu.entities import PricingError
from rpos.domain.order.entities import (
    Order,
    OrderChannel,
    OrderLine,
    business_day,
    create_pending_order,
    format_order_number,
)
from rpos.domain.order.events import OrderPlaced
from rpos.domain.table.entities import TableOccupiedError, TableStateError

logger = logging.getLogger(__name__)


class InvalidOrderRequestError(ValidationError):
    code = "INVALID_ORDER"


class TableNotFoundError(NotFoundError):
    code = "TABLE_NOT_FOUND"


class TableUnavailableError(ConflictError):
    code = "TABLE_UNAVAILABLE"


class CustomerNotFoundError(NotFoundError):
    code = "CUSTOMER_NOT_FOUND"


class IdempotencyReplayMismatchError(ConflictError):
    code = "IDEMPOTENCY_KEY_REUSED"


class PlaceOrder:
    def __init__(
        self,
        uow: UnitOfWork,
        publisher: EventPublisher,
        settings: BusinessSettings,
    ) -> None:
        self._uow = uow
        self._publisher = publisher
        self._settings = settings

    def execute(
        self,
        request_dto: PlaceOrderRequest,
        trace_ctx: TraceContext,
        idempotency_key: str | None = None,
    ) -> OrderResponse:
        payload_hash = _request_hash(request_dto)
        try:
            order, created = self._place(request_dto, idempotency_key, payload_hash)
        except DuplicateEntryError:
            if not idempotency_key:
                raise
            # a concurrent request with the same key committed first
            order, created = self._replay(idempotency_key, payload_hash), False

        if created:
            logger.info(
                "order placed",
                extra={"order_id": str(order.order_id), "order_number": order.order_number},
            )
            record_order_status(order)
            event = OrderPlaced(
                order_id=order.order_id,
                order_number=order.order_number,
                total=order.total,
                created_at=order.created_at,
            )
            message = serialize_order_placed_event(
                event=event,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            )
            try:
                self._publisher.publish(channel=EVENTS_CHANNEL, message=message)
            except Exception:
                logger.warning(
                    "order event publish failed", extra={"order_id": str(order.order_id)}
                )

        return to_order_response(order)

    def _place(
        self,
        request_dto: PlaceOrderRequest,
        idempotency_key: str | None,
        payload_hash: str,
    ) -> tuple[Order, bool]:
        now = datetime.now(timezone.utc)
        with self._uow as uow:
            if idempotency_key:
                existing = uow.orders.get_by_idempotency_key(idempotency_key)
                if existing is not None:
                    _ensure_same_payload(existing, payload_hash)
                    return existing, False

            details: dict[str, object] = {
                "origin": request_dto.origin,
                "notes": request_dto.notes,
                "payment_method": request_dto.payment_method,
                "idempotency_key": idempotency_key,
                "idempotency_hash": payload_hash if idempotency_key else None,
            }

            table = None
            if request_dto.channel == OrderChannel.DINE_IN:
                if not request_dto.table_id:
                    raise InvalidOrderRequestError("dine-in orders require a table")
                table = uow.tables.get_for_update(TableId(request_dto.table_id))
                if table is None:
                    raise TableNotFoundError(f"table {request_dto.table_id} not found")
                if table.current_order_id is not None:
                    raise TableUnavailableError(
                        f"table {table.number} already holds order {table.current_order_id}",
                        details={"tableId": str(table.table_id)},
                    )
                details["table_id"] = table.table_id
                details["table_name"] = table.name

            customer = self._resolve_customer(uow, request_dto)
            address = request_dto.customer_address or (customer.address if customer else None)
            if request_dto.channel == OrderChannel.DELIVERY and not (address or "").strip():
                raise InvalidOrderRequestError("delivery orders require an address")
            if customer is not None:
                details["customer_id"] = customer.customer_id
            details["customer_name"] = request_dto.customer_name or (
                customer.name if customer else None
            )
            details["customer_phone"] = request_dto.customer_phone or (
                customer.phone if customer else None
            )
            details["customer_address"] = address

            lines = self._price_lines(uow, request_dto.lines)
            order_id = OrderId(f"ord_{uuid4().hex[:12]}")
            sequence = uow.order_counters.next_number(
                business_day(now, self._settings.utc_offset_hours)
            )
            try:
                order = create_pending_order(
                    order_id=order_id,
                    order_number=format_order_number(sequence),
                    channel=request_dto.channel,
                    lines=lines,
                    now=now,
                    discount_cents=request_dto.discount_cents,
                    tax_rate_bps=self._settings.tax_rate_bps,
                    **details,
                )
            except ValueError as exc:
                raise InvalidOrderRequestError(str(exc)) from exc
            uow.orders.add(order)

            if table is not None:
                try:
                    uow.tables.update(table.assign_order(order_id))
                except (TableOccupiedError, TableStateError) as exc:
                    raise TableUnavailableError(
                        str(exc), details={"tableId": str(table.table_id)}
                    ) from exc
            if customer is not None:
                uow.customers.update(replace(customer, last_order_at=now))

            uow.commit()
        return order, True

    def _replay(self, idempotency_key: str, payload_hash: str) -> Order:
        with self._uow as uow:
            existing = uow.orders.get_by_idempotency_key(idempotency_key)
        if existing is None:
            raise IdempotencyReplayMismatchError(
                f"idempotency key {idempotency_key} could not be replayed"
            )
        _ensure_same_payload(existing, payload_hash)
        return existing

    def _resolve_customer(
        self,
        uow: UnitOfWork,
        request_dto: PlaceOrderRequest,
    ) -> Customer | None:
        if not request_dto.customer_id:
            return None
        customer = uow.customers.get(CustomerId(request_dto.customer_id))
        if customer is None:
            raise CustomerNotFoundError(f"customer {request_dto.customer_id} not found")
        return customer

    def _price_lines(
        self,
        uow: UnitOfWork,
        request_lines: list[PlaceOrderLineRequest],
    ) -> list[OrderLine]:
        products = uow.products.get_many(
            list(dict.fromkeys(ProductId(line.product_id) for line in request_lines))
        )
        lines: list[OrderLine] = []
        for request_line in request_lines:
            product = products.get(ProductId(request_line.product_id))
            if product is None:
                raise InvalidOrderRequestError(
                    f"product {request_line.product_id} does not exist"
                )
            if not product.is_active:
                raise InvalidOrderRequestError(f"product {product.name} is not available")
            if product.base_price.currency != self._settings.currency:
                raise InvalidOrderRequestError(
                    f"product {product.name} is priced in {product.base_price.currency}"
                )
            try:
                priced = product.price_for(request_line.size, request_line.modifier_ids)
            except PricingError as exc:
                raise InvalidOrderRequestError(str(exc)) from exc
            lines.append(
                OrderLine(
                    line_id=OrderLineId(f"orl_{uuid4().hex[:12]}"),
                    product_id=product.product_id,
                    name=product.name,
                    quantity=request_line.quantity,
                    unit_price=priced.unit_price,
                    line_total=Money(
                        amount_cents=priced.unit_price.amount_cents * request_line.quantity,
                        currency=priced.unit_price.currency,
                    ),
                    notes=request_line.notes,
                    size=priced.size,
                    modifiers=priced.modifiers,
                )
            )
        return lines


def _ensure_same_payload(order: Order, payload_hash: str) -> None:
    if order.idempotency_hash != payload_hash:
        raise IdempotencyReplayMismatchError(
            "idempotency key was already used with a different payload",
            details={"orderId": str(order.order_id)},
        )


def _request_hash(request_dto: PlaceOrderRequest) -> str:
    normalized_payload = request_dto.model_dump(mode="json", by_alias=True, exclude_none=False)
    canonical = json.dumps(normalized_payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
