from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from rpos.application.ports.repositories import (
    CashMovementRepository,
    CashSessionRepository,
    SaleLedgerRepository,
)
from rpos.domain.cash.entities import (
    SALES_BUCKETS,
    CashMovement,
    CashSession,
    CashSessionStatus,
    MovementType,
    SaleEntry,
    SaleEntryKind,
)
from rpos.domain.common.ids import (
    CashMovementId,
    CashSessionId,
    OrderId,
    SaleEntryId,
    UserId,
)
from rpos.domain.order.entities import PaymentMethod
from rpos.infrastructure.db.models.cash import CashMovementModel, CashSessionModel, SaleEntryModel
from rpos.infrastructure.db.repositories.common import aware, aware_or_none, insert_row

_MOVEMENT_COLUMNS = {
    MovementType.IN: "cash_in_cents",
    MovementType.OUT: "cash_out_cents",
}


class SqlAlchemyCashSessionRepository(CashSessionRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, cash_session: CashSession) -> None:
        insert_row(
            self._session,
            CashSessionModel(
                id=str(cash_session.session_id),
                user_id=str(cash_session.user_id),
                user_name=cash_session.user_name,
                status=cash_session.status.value,
                currency=cash_session.currency,
                opening_amount_cents=cash_session.opening_amount_cents,
                cash_sales_cents=cash_session.cash_sales_cents,
                card_sales_cents=cash_session.card_sales_cents,
                transfer_sales_cents=cash_session.transfer_sales_cents,
                nequi_sales_cents=cash_session.nequi_sales_cents,
                daviplata_sales_cents=cash_session.daviplata_sales_cents,
                total_sales_cents=cash_session.total_sales_cents,
                orders_count=cash_session.orders_count,
                cash_in_cents=cash_session.cash_in_cents,
                cash_out_cents=cash_session.cash_out_cents,
                opened_at=cash_session.opened_at,
            ),
        )

    def get(self, session_id: CashSessionId) -> CashSession | None:
        model = self._session.get(CashSessionModel, str(session_id), populate_existing=True)
        return _session_to_domain(model) if model is not None else None

    def get_for_update(self, session_id: CashSessionId) -> CashSession | None:
        model = self._session.get(
            CashSessionModel,
            str(session_id),
            with_for_update=True,
            populate_existing=True,
        )
        return _session_to_domain(model) if model is not None else None

    def get_open(self) -> CashSession | None:
        return self._open(lock=False)

    def get_open_for_update(self) -> CashSession | None:
        return self._open(lock=True)

    def list(self, limit: int) -> list[CashSession]:
        statement = (
            select(CashSessionModel)
            .order_by(CashSessionModel.opened_at.desc(), CashSessionModel.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [_session_to_domain(model) for model in self._session.execute(statement).scalars()]

    def save_closed(self, cash_session: CashSession) -> None:
        self._session.execute(
            update(CashSessionModel)
            .where(
                CashSessionModel.id == str(cash_session.session_id),
                CashSessionModel.status == CashSessionStatus.OPEN.value,
            )
            .values(
                status=cash_session.status.value,
                closed_at=cash_session.closed_at,
                closed_by_user_id=(
                    str(cash_session.closed_by_user_id)
                    if cash_session.closed_by_user_id
                    else None
                ),
                actual_amount_cents=cash_session.actual_amount_cents,
                expected_amount_cents=cash_session.expected_amount_cents,
                difference_cents=cash_session.difference_cents,
                notes=cash_session.notes,
            )
            .execution_options(synchronize_session=False)
        )

    def increment_sales(
        self,
        session_id: CashSessionId,
        method: PaymentMethod,
        amount_cents: int,
        orders_delta: int,
    ) -> None:
        bucket = SALES_BUCKETS[method]
        self._session.execute(
            update(CashSessionModel)
            .where(CashSessionModel.id == str(session_id))
            .values(
                {
                    bucket: getattr(CashSessionModel, bucket) + amount_cents,
                    "total_sales_cents": CashSessionModel.total_sales_cents + amount_cents,
                    "orders_count": CashSessionModel.orders_count + orders_delta,
                }
            )
            .execution_options(synchronize_session=False)
        )

    def increment_movements(
        self,
        session_id: CashSessionId,
        movement_type: MovementType,
        amount_cents: int,
    ) -> None:
        column = _MOVEMENT_COLUMNS[movement_type]
        self._session.execute(
            update(CashSessionModel)
            .where(CashSessionModel.id == str(session_id))
            .values({column: getattr(CashSessionModel, column) + amount_cents})
            .execution_options(synchronize_session=False)
        )

    def _open(self, lock: bool) -> CashSession | None:
        statement = (
            select(CashSessionModel)
            .where(CashSessionModel.status == CashSessionStatus.OPEN.value)
            .execution_options(populate_existing=True)
        )
        if lock:
            statement = statement.with_for_update()
        model = self._session.execute(statement).scalar_one_or_none()
        return _session_to_domain(model) if model is not None else None


class SqlAlchemyCashMovementRepository(CashMovementRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, movement: CashMovement) -> None:
        insert_row(
            self._session,
            CashMovementModel(
                id=str(movement.movement_id),
                session_id=str(movement.session_id),
                movement_type=movement.movement_type.value,
                amount_cents=movement.amount_cents,
                reason=movement.reason,
                user_id=str(movement.user_id),
                user_name=movement.user_name,
                created_at=movement.created_at,
            ),
        )

    def list_for_session(self, session_id: CashSessionId) -> list[CashMovement]:
        statement = (
            select(CashMovementModel)
            .where(CashMovementModel.session_id == str(session_id))
            .order_by(CashMovementModel.created_at, CashMovementModel.id)
        )
        return [
            CashMovement(
                movement_id=CashMovementId(model.id),
                session_id=CashSessionId(model.session_id),
                movement_type=MovementType(model.movement_type),
                amount_cents=model.amount_cents,
                reason=model.reason,
                user_id=UserId(model.user_id),
                user_name=model.user_name,
                created_at=aware(model.created_at),
            )
            for model in self._session.execute(statement).scalars()
        ]


class SqlAlchemySaleLedgerRepository(SaleLedgerRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, entry: SaleEntry) -> None:
        insert_row(
            self._session,
            SaleEntryModel(
                id=str(entry.entry_id),
                session_id=str(entry.session_id),
                order_id=str(entry.order_id),
                kind=entry.kind.value,
                method=entry.method.value,
                amount_cents=entry.amount_cents,
                created_at=entry.created_at,
            ),
        )

    def get_sale(self, order_id: OrderId) -> SaleEntry | None:
        return self._get(order_id, SaleEntryKind.SALE)

    def get_reversal(self, order_id: OrderId) -> SaleEntry | None:
        return self._get(order_id, SaleEntryKind.REVERSAL)

    def list_for_session(self, session_id: CashSessionId) -> list[SaleEntry]:
        statement = (
            select(SaleEntryModel)
            .where(SaleEntryModel.session_id == str(session_id))
            .order_by(SaleEntryModel.created_at, SaleEntryModel.id)
        )
        return [_entry_to_domain(model) for model in self._session.execute(statement).scalars()]

    def _get(self, order_id: OrderId, kind: SaleEntryKind) -> SaleEntry | None:
        model = self._session.execute(
            select(SaleEntryModel).where(
                SaleEntryModel.order_id == str(order_id),
                SaleEntryModel.kind == kind.value,
            )
        ).scalar_one_or_none()
        return _entry_to_domain(model) if model is not None else None


def _entry_to_domain(model: SaleEntryModel) -> SaleEntry:
    return SaleEntry(
        entry_id=SaleEntryId(model.id),
        session_id=CashSessionId(model.session_id),
        order_id=OrderId(model.order_id),
        kind=SaleEntryKind(model.kind),
        method=PaymentMethod(model.method),
        amount_cents=model.amount_cents,
        created_at=aware(model.created_at),
    )


def _session_to_domain(model: CashSessionModel) -> CashSession:
    return CashSession(
        session_id=CashSessionId(model.id),
        user_id=UserId(model.user_id),
        user_name=model.user_name,
        opening_amount_cents=model.opening_amount_cents,
        currency=model.currency,
        opened_at=aware(model.opened_at),
        status=CashSessionStatus(model.status),
        cash_sales_cents=model.cash_sales_cents,
        card_sales_cents=model.card_sales_cents,
        transfer_sales_cents=model.transfer_sales_cents,
        nequi_sales_cents=model.nequi_sales_cents,
        daviplata_sales_cents=model.daviplata_sales_cents,
        total_sales_cents=model.total_sales_cents,
        orders_count=model.orders_count,
        cash_in_cents=model.cash_in_cents,
        cash_out_cents=model.cash_out_cents,
        closed_at=aware_or_none(model.closed_at),
        closed_by_user_id=UserId(model.closed_by_user_id) if model.closed_by_user_id else None,
        actual_amount_cents=model.actual_amount_cents,
        expected_amount_cents=model.expected_amount_cents,
        difference_cents=model.difference_cents,
        notes=model.notes,
    )
