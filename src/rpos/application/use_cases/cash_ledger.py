from __future__ import annotations

import logging
from datetime import datetime
from uuid import uuid4

from rpos.application.errors import ConflictError
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.domain.cash.entities import SaleEntry, SaleEntryKind
from rpos.domain.common.ids import SaleEntryId
from rpos.domain.order.entities import Order

logger = logging.getLogger(__name__)


class NoOpenCashSessionError(ConflictError):
    code = "NO_OPEN_CASH_SESSION"


class SaleAlreadyRecordedError(ConflictError):
    code = "SALE_ALREADY_RECORDED"


def record_sale(uow: UnitOfWork, order: Order, now: datetime) -> SaleEntry:
    if order.payment_method is None:
        raise ValueError(f"order {order.order_id} has no payment method")
    session = uow.cash_sessions.get_open_for_update()
    if session is None:
        raise NoOpenCashSessionError("a cash session must be open to take payments")

    entry = SaleEntry(
        entry_id=SaleEntryId(f"sle_{uuid4().hex[:12]}"),
        session_id=session.session_id,
        order_id=order.order_id,
        kind=SaleEntryKind.SALE,
        method=order.payment_method,
        amount_cents=order.total.amount_cents,
        created_at=now,
    )
    try:
        uow.sale_ledger.add(entry)
    except DuplicateEntryError as exc:
        raise SaleAlreadyRecordedError(f"order {order.order_id} was already charged") from exc
    uow.cash_sessions.increment_sales(
        session_id=session.session_id,
        method=entry.method,
        amount_cents=entry.amount_cents,
        orders_delta=1,
    )
    logger.info(
        "sale recorded",
        extra={"order_id": str(order.order_id), "session_id": str(session.session_id)},
    )
    return entry


def reverse_sale(uow: UnitOfWork, order: Order, now: datetime) -> SaleEntry | None:
    sale = uow.sale_ledger.get_sale(order.order_id)
    if sale is None:
        logger.warning("no sale to reverse", extra={"order_id": str(order.order_id)})
        return None
    if uow.sale_ledger.get_reversal(order.order_id) is not None:
        raise SaleAlreadyRecordedError(f"sale for order {order.order_id} was already reversed")
    session = uow.cash_sessions.get_open_for_update()
    if session is None:
        raise NoOpenCashSessionError("a cash session must be open to refund a paid order")

    entry = SaleEntry(
        entry_id=SaleEntryId(f"sle_{uuid4().hex[:12]}"),
        session_id=session.session_id,
        order_id=order.order_id,
        kind=SaleEntryKind.REVERSAL,
        method=sale.method,
        amount_cents=sale.amount_cents,
        created_at=now,
    )
    try:
        uow.sale_ledger.add(entry)
    except DuplicateEntryError as exc:
        raise SaleAlreadyRecordedError(
            f"sale for order {order.order_id} was already reversed"
        ) from exc
    uow.cash_sessions.increment_sales(
        session_id=session.session_id,
        method=entry.method,
        amount_cents=-entry.amount_cents,
        orders_delta=-1,
    )
    logger.info(
        "sale reversed",
        extra={"order_id": str(order.order_id), "session_id": str(session.session_id)},
    )
    return entry
