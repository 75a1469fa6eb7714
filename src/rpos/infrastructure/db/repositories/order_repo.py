from __future__ import annotations

import base64
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import and_, not_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from rpos.application.ports.repositories import (
    InvalidCursorError,
    OptimisticConcurrencyError,
    OrderCounterRepository,
    OrderListFilter,
    OrderRepository,
)
from rpos.domain.common.ids import CustomerId, OrderId, OrderLineId, ProductId, TableId
from rpos.domain.common.money import Money
from rpos.domain.order.entities import (
    ACTIVE_STATUSES,
    LineStatus,
    Order,
    OrderChannel,
    OrderLine,
    OrderOrigin,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    SelectedModifier,
    SelectedSize,
    business_day,
)
from rpos.infrastructure.db.models.order import OrderCounterModel, OrderLineModel, OrderModel
from rpos.infrastructure.db.repositories.common import aware, aware_or_none, insert_row, utc


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: Session, utc_offset_hours: int = -5) -> None:
        self._session = session
        self._utc_offset_hours = utc_offset_hours

    def add(self, order: Order) -> None:
        insert_row(self._session, self._to_model(order))

    def get(self, order_id: OrderId) -> Order | None:
        statement = (
            select(OrderModel)
            .options(selectinload(OrderModel.lines))
            .where(OrderModel.id == str(order_id))
            .execution_options(populate_existing=True)
        )
        model = self._session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def get_for_update(self, order_id: OrderId) -> Order | None:
        statement = (
            select(OrderModel)
            .options(selectinload(OrderModel.lines))
            .where(OrderModel.id == str(order_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = self._session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def update(self, order: Order, expected_version: int) -> Order:
        statement = (
            update(OrderModel)
            .where(
                OrderModel.id == str(order.order_id),
                OrderModel.version == expected_version,
            )
            .values(
                status=order.status.value,
                payment_status=order.payment_status.value,
                payment_method=order.payment_method.value if order.payment_method else None,
                paid_amount_cents=order.paid_amount.amount_cents if order.paid_amount else None,
                change_cents=order.change_given.amount_cents if order.change_given else None,
                notes=order.notes,
                confirmed_at=order.confirmed_at,
                ready_at=order.ready_at,
                completed_at=order.completed_at,
                cancelled_at=order.cancelled_at,
                refunded_at=order.refunded_at,
                version=OrderModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(statement)
        if result.rowcount != 1:
            raise OptimisticConcurrencyError(f"order {order.order_id} version conflict")

        for line in order.lines:
            self._session.execute(
                update(OrderLineModel)
                .where(OrderLineModel.id == str(line.line_id))
                .values(status=line.status.value)
                .execution_options(synchronize_session=False)
            )
        return replace(order, version=expected_version + 1)

    def get_by_idempotency_key(self, key: str) -> Order | None:
        statement = (
            select(OrderModel)
            .options(selectinload(OrderModel.lines))
            .where(OrderModel.idempotency_key == key)
        )
        model = self._session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def list(self, filters: OrderListFilter, limit: int | None = None) -> list[Order]:
        statement = select(OrderModel).options(selectinload(OrderModel.lines))
        if filters.statuses:
            statement = statement.where(
                OrderModel.status.in_([status.value for status in filters.statuses])
            )
        if filters.table_id is not None:
            statement = statement.where(OrderModel.table_id == str(filters.table_id))
        if filters.origin is not None:
            statement = statement.where(OrderModel.origin == filters.origin.value)
        if filters.completed_from is not None:
            statement = statement.where(OrderModel.completed_at >= utc(filters.completed_from))
        if filters.completed_to is not None:
            statement = statement.where(OrderModel.completed_at < utc(filters.completed_to))
        statement = statement.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        if limit is not None:
            statement = statement.limit(limit)
        return [self._to_domain(model) for model in self._session.execute(statement).scalars()]

    def list_for_kitchen(
        self,
        statuses: frozenset[OrderStatus],
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        statement = (
            select(OrderModel)
            .options(selectinload(OrderModel.lines))
            .where(OrderModel.status.in_([status.value for status in statuses]))
        )

        cursor_parts = _decode_cursor(cursor) if cursor else None
        if cursor_parts is not None:
            cursor_created_at, cursor_order_id = cursor_parts
            statement = statement.where(
                or_(
                    OrderModel.created_at < cursor_created_at,
                    and_(
                        OrderModel.created_at == cursor_created_at,
                        OrderModel.id < cursor_order_id,
                    ),
                )
            )

        statement = statement.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).limit(
            limit + 1
        )
        models = list(self._session.execute(statement).scalars().all())

        has_more = len(models) > limit
        page_models = models[:limit]
        orders = [self._to_domain(model) for model in page_models]
        next_cursor: str | None = None
        if has_more and page_models:
            last = page_models[-1]
            next_cursor = _encode_cursor(aware(last.created_at), last.id)
        return orders, next_cursor

    def list_unsettled(self) -> list[Order]:
        statement = (
            select(OrderModel)
            .options(selectinload(OrderModel.lines))
            .where(
                or_(
                    OrderModel.status.in_([status.value for status in ACTIVE_STATUSES]),
                    and_(
                        OrderModel.status != OrderStatus.CANCELLED.value,
                        not_(OrderModel.payment_status == PaymentStatus.PAID.value),
                    ),
                )
            )
            .order_by(OrderModel.created_at)
        )
        return [self._to_domain(model) for model in self._session.execute(statement).scalars()]

    def _to_model(self, order: Order) -> OrderModel:
        order_model = OrderModel(
            id=str(order.order_id),
            order_number=order.order_number,
            business_day=business_day(order.created_at, self._utc_offset_hours),
            channel=order.channel.value,
            origin=order.origin.value,
            status=order.status.value,
            table_id=str(order.table_id) if order.table_id else None,
            table_name=order.table_name,
            customer_id=str(order.customer_id) if order.customer_id else None,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_address=order.customer_address,
            notes=order.notes,
            currency=order.total.currency,
            subtotal_cents=order.subtotal.amount_cents,
            discount_cents=order.discount.amount_cents,
            tax_cents=order.tax.amount_cents,
            total_cents=order.total.amount_cents,
            payment_status=order.payment_status.value,
            payment_method=order.payment_method.value if order.payment_method else None,
            paid_amount_cents=order.paid_amount.amount_cents if order.paid_amount else None,
            change_cents=order.change_given.amount_cents if order.change_given else None,
            version=order.version,
            idempotency_key=order.idempotency_key,
            idempotency_hash=order.idempotency_hash,
            created_at=order.created_at,
            confirmed_at=order.confirmed_at,
            ready_at=order.ready_at,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
            refunded_at=order.refunded_at,
        )
        order_model.lines = [
            OrderLineModel(
                id=str(line.line_id),
                order_id=str(order.order_id),
                position=position,
                product_id=str(line.product_id),
                name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price.amount_cents,
                currency=line.unit_price.currency,
                line_total_cents=line.line_total.amount_cents,
                notes=line.notes,
                size=(
                    {"name": line.size.name, "price_cents": line.size.price_modifier.amount_cents}
                    if line.size is not None
                    else None
                ),
                modifiers=[
                    {
                        "id": modifier.modifier_id,
                        "name": modifier.name,
                        "price_cents": modifier.price_modifier.amount_cents,
                    }
                    for modifier in line.modifiers
                ],
                status=line.status.value,
            )
            for position, line in enumerate(order.lines)
        ]
        return order_model

    def _to_domain(self, model: OrderModel) -> Order:
        currency = model.currency
        lines = [
            OrderLine(
                line_id=OrderLineId(line.id),
                product_id=ProductId(line.product_id),
                name=line.name,
                quantity=line.quantity,
                unit_price=Money(amount_cents=line.unit_price_cents, currency=line.currency),
                line_total=Money(amount_cents=line.line_total_cents, currency=line.currency),
                notes=line.notes,
                size=_size_from_json(line.size, line.currency),
                modifiers=tuple(
                    SelectedModifier(
                        modifier_id=item["id"],
                        name=item["name"],
                        price_modifier=Money(
                            amount_cents=item["price_cents"], currency=line.currency
                        ),
                    )
                    for item in line.modifiers or []
                ),
                status=LineStatus(line.status),
            )
            for line in model.lines
        ]
        return Order(
            order_id=OrderId(model.id),
            order_number=model.order_number,
            channel=OrderChannel(model.channel),
            status=OrderStatus(model.status),
            lines=lines,
            subtotal=Money(amount_cents=model.subtotal_cents, currency=currency),
            discount=Money(amount_cents=model.discount_cents, currency=currency),
            tax=Money(amount_cents=model.tax_cents, currency=currency),
            total=Money(amount_cents=model.total_cents, currency=currency),
            created_at=aware(model.created_at),
            origin=OrderOrigin(model.origin),
            table_id=TableId(model.table_id) if model.table_id else None,
            table_name=model.table_name,
            customer_id=CustomerId(model.customer_id) if model.customer_id else None,
            customer_name=model.customer_name,
            customer_phone=model.customer_phone,
            customer_address=model.customer_address,
            notes=model.notes,
            payment_status=PaymentStatus(model.payment_status),
            payment_method=PaymentMethod(model.payment_method) if model.payment_method else None,
            paid_amount=(
                Money(amount_cents=model.paid_amount_cents, currency=currency)
                if model.paid_amount_cents is not None
                else None
            ),
            change_given=(
                Money(amount_cents=model.change_cents, currency=currency)
                if model.change_cents is not None
                else None
            ),
            confirmed_at=aware_or_none(model.confirmed_at),
            ready_at=aware_or_none(model.ready_at),
            completed_at=aware_or_none(model.completed_at),
            cancelled_at=aware_or_none(model.cancelled_at),
            refunded_at=aware_or_none(model.refunded_at),
            version=model.version,
            idempotency_key=model.idempotency_key,
            idempotency_hash=model.idempotency_hash,
        )


class SqlAlchemyOrderCounterRepository(OrderCounterRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def next_number(self, day: str) -> int:
        # the UPDATE takes the row lock, so concurrent writers queue on it
        if self._increment(day):
            return self._current(day)
        try:
            with self._session.begin_nested():
                self._session.add(OrderCounterModel(day=day, last_number=1))
                self._session.flush()
            return 1
        except IntegrityError:
            # another transaction created today's row first
            if not self._increment(day):
                raise
            return self._current(day)

    def _increment(self, day: str) -> bool:
        result = self._session.execute(
            update(OrderCounterModel)
            .where(OrderCounterModel.day == day)
            .values(last_number=OrderCounterModel.last_number + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _current(self, day: str) -> int:
        return int(
            self._session.execute(
                select(OrderCounterModel.last_number).where(OrderCounterModel.day == day)
            ).scalar_one()
        )


def _size_from_json(raw: dict[str, Any] | None, currency: str) -> SelectedSize | None:
    if raw is None:
        return None
    return SelectedSize(
        name=raw["name"],
        price_modifier=Money(amount_cents=raw["price_cents"], currency=currency),
    )


def _encode_cursor(created_at: datetime, order_id: str) -> str:
    payload = f"{created_at.isoformat()}|{order_id}"
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def _decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        created_at_raw, order_id = raw.split("|", 1)
        created_at = datetime.fromisoformat(created_at_raw)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return created_at, order_id
    except Exception as exc:
        raise InvalidCursorError("invalid cursor") from exc
