from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from rpos.application.dto.requests import PaymentRequest
from rpos.application.dto.responses import OrderResponse
from rpos.application.errors import ConflictError, NotFoundError, ValidationError
from rpos.application.mappers.event_envelope import serialize_order_status_event
from rpos.application.mappers.order_mapper import to_order_response
from rpos.application.metrics.order_lifecycle import (
    record_order_status,
    record_sale,
    record_sale_reversal,
    record_time_to_complete,
    record_time_to_ready,
    record_transition,
)
from rpos.application.ports.notifier import CustomerNotifier
from rpos.application.ports.publisher import EVENTS_CHANNEL, EventPublisher
from rpos.application.ports.repositories import OptimisticConcurrencyError, UnitOfWork
from rpos.application.use_cases.cash_ledger import record_sale as ledger_record_sale
from rpos.application.use_cases.cash_ledger import reverse_sale as ledger_reverse_sale
from rpos.application.use_cases.context import TraceContext
from rpos.domain.cash.entities import SaleEntry
from rpos.domain.common.ids import OrderId
from rpos.domain.common.money import Money
from rpos.domain.order.entities import (
    InsufficientPaymentError,
    Order,
    OrderAlreadyPaidError,
    OrderOrigin,
    OrderStatus,
    OrderTransitionError,
    Payment,
    PaymentRequiredError,
)
from rpos.domain.order.events import OrderStatusChanged

logger = logging.getLogger(__name__)


class OrderNotFoundError(NotFoundError):
    code = "ORDER_NOT_FOUND"


class InvalidOrderTransitionError(ConflictError):
    code = "INVALID_ORDER_TRANSITION"


class PaymentMissingError(ValidationError):
    code = "PAYMENT_REQUIRED"


class InvalidPaymentError(ValidationError):
    code = "INVALID_PAYMENT"


class OrderAlreadyPaidConflictError(ConflictError):
    code = "ORDER_ALREADY_PAID"


class OrderVersionConflictError(ConflictError):
    code = "ORDER_VERSION_CONFLICT"


@dataclass(frozen=True)
class _Outcome:
    before: Order
    after: Order
    sale: SaleEntry | None
    reversal: SaleEntry | None
    chat_id: str | None
    occurred_at: datetime


class _OrderLifecycle:
    """Applies one order change and its side effects in a single unit of work.

    Table release and cash ledger entries commit together with the order row.
    Events, metrics and customer notifications run only after the commit and
    never undo it.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        publisher: EventPublisher,
        notifier: CustomerNotifier,
    ) -> None:
        self._uow = uow
        self._publisher = publisher
        self._notifier = notifier

    def _apply(self, order_id: OrderId, change: _Change) -> _Outcome:
        now = datetime.now(timezone.utc)
        with self._uow as uow:
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise OrderNotFoundError(f"order {order_id} not found")

            try:
                updated = change(order, now)
            except OrderTransitionError as exc:
                raise InvalidOrderTransitionError(
                    str(exc),
                    details={"orderId": str(order_id), "status": order.status.value},
                ) from exc
            except PaymentRequiredError as exc:
                raise PaymentMissingError(str(exc), details={"orderId": str(order_id)}) from exc
            except OrderAlreadyPaidError as exc:
                raise OrderAlreadyPaidConflictError(
                    str(exc), details={"orderId": str(order_id)}
                ) from exc
            except InsufficientPaymentError as exc:
                raise InvalidPaymentError(str(exc), details={"orderId": str(order_id)}) from exc

            sale = None
            reversal = None
            if updated.is_paid and not order.is_paid:
                sale = ledger_record_sale(uow, updated, now)
            if updated.status == OrderStatus.CANCELLED and order.is_paid:
                reversal = ledger_reverse_sale(uow, order, now)

            try:
                persisted = uow.orders.update(updated, expected_version=order.version)
            except OptimisticConcurrencyError as exc:
                raise OrderVersionConflictError(
                    f"order {order_id} was modified concurrently",
                    details={"orderId": str(order_id)},
                ) from exc

            if persisted.is_terminal and persisted.table_id is not None:
                table = uow.tables.get_for_update(persisted.table_id)
                if table is not None and table.current_order_id == persisted.order_id:
                    uow.tables.update(table.release(persisted.order_id))

            chat_id = None
            if persisted.origin == OrderOrigin.TELEGRAM and persisted.customer_id is not None:
                customer = uow.customers.get(persisted.customer_id)
                chat_id = customer.telegram_chat_id if customer else None

            uow.commit()

        return _Outcome(
            before=order,
            after=persisted,
            sale=sale,
            reversal=reversal,
            chat_id=chat_id,
            occurred_at=now,
        )

    def _after_commit(self, outcome: _Outcome, trace_ctx: TraceContext) -> None:
        before, after = outcome.before, outcome.after
        logger.info(
            "order updated",
            extra={
                "order_id": str(after.order_id),
                "from_status": before.status.value,
                "to_status": after.status.value,
                "payment_status": after.payment_status.value,
            },
        )
        if outcome.sale is not None:
            record_sale(outcome.sale.method, outcome.sale.amount_cents)
        if outcome.reversal is not None:
            record_sale_reversal(outcome.reversal.method, outcome.reversal.amount_cents)

        if before.status == after.status:
            return

        record_transition(before.status, after.status)
        record_order_status(after)
        if after.status == OrderStatus.READY:
            record_time_to_ready(after, outcome.occurred_at)
        elif after.status in (OrderStatus.COMPLETED, OrderStatus.DELIVERED):
            record_time_to_complete(after, outcome.occurred_at)

        event = OrderStatusChanged(
            order_id=after.order_id,
            order_number=after.order_number,
            from_status=before.status,
            to_status=after.status,
            occurred_at=outcome.occurred_at,
        )
        message = serialize_order_status_event(
            event=event,
            order=after,
            trace_id=trace_ctx.trace_id,
            request_id=trace_ctx.request_id,
        )
        try:
            self._publisher.publish(channel=EVENTS_CHANNEL, message=message)
        except Exception:
            logger.warning("order event publish failed", extra={"order_id": str(after.order_id)})

        if outcome.chat_id:
            try:
                self._notifier.notify_order_status(outcome.chat_id, after)
            except Exception:
                logger.warning(
                    "customer notification failed",
                    extra={"order_id": str(after.order_id), "chat_id": outcome.chat_id},
                )


class _Change:
    def __call__(self, order: Order, now: datetime) -> Order:
        raise NotImplementedError


class _Transition(_Change):
    def __init__(self, target: OrderStatus, payment: PaymentRequest | None) -> None:
        self._target = target
        self._payment = payment

    def __call__(self, order: Order, now: datetime) -> Order:
        payment = _to_payment(self._payment, order)
        if (
            payment is None
            and self._target in (OrderStatus.COMPLETED, OrderStatus.DELIVERED)
            and not order.is_paid
            and order.payment_method is not None
        ):
            # settle with the method chosen at checkout
            payment = Payment(method=order.payment_method)
        return order.transition_to(self._target, now, payment)


class _ConfirmPayment(_Change):
    def __init__(self, payment: PaymentRequest | None) -> None:
        self._payment = payment

    def __call__(self, order: Order, now: datetime) -> Order:
        payment = _to_payment(self._payment, order)
        if payment is None:
            if order.payment_method is None:
                raise PaymentRequiredError(f"order {order.order_id} has no payment method")
            payment = Payment(method=order.payment_method)
        if order.status in (OrderStatus.PENDING, OrderStatus.CONFIRMED):
            return order.transition_to(OrderStatus.PREPARING, now, payment)
        if order.is_terminal:
            raise OrderTransitionError(
                f"cannot take a payment on a {order.status.value} order"
            )
        return order.pay(payment, now)


def _to_payment(request: PaymentRequest | None, order: Order) -> Payment | None:
    if request is None:
        return None
    tendered = None
    if request.tendered_cents is not None:
        tendered = Money(amount_cents=request.tendered_cents, currency=order.total.currency)
    return Payment(method=request.method, tendered=tendered)


class ChangeOrderStatus(_OrderLifecycle):
    def execute(
        self,
        order_id: OrderId,
        target: OrderStatus,
        trace_ctx: TraceContext,
        payment: PaymentRequest | None = None,
    ) -> OrderResponse:
        outcome = self._apply(order_id, _Transition(target, payment))
        self._after_commit(outcome, trace_ctx)
        return to_order_response(outcome.after)


class ConfirmPayment(_OrderLifecycle):
    """Marks an order paid and, when it has not reached the kitchen yet, sends it there."""

    def execute(
        self,
        order_id: OrderId,
        trace_ctx: TraceContext,
        payment: PaymentRequest | None = None,
    ) -> OrderResponse:
        outcome = self._apply(order_id, _ConfirmPayment(payment))
        self._after_commit(outcome, trace_ctx)
        return to_order_response(outcome.after)
