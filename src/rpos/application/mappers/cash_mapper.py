from __future__ import annotations

from rpos.application.dto.responses import CashMovementResponse, CashSessionResponse
from rpos.domain.cash.entities import CashMovement, CashSession


def to_cash_session_response(session: CashSession) -> CashSessionResponse:
    return CashSessionResponse(
        sessionId=str(session.session_id),
        userId=str(session.user_id),
        userName=session.user_name,
        status=session.status.value,
        currency=session.currency,
        openingAmountCents=session.opening_amount_cents,
        cashSalesCents=session.cash_sales_cents,
        cardSalesCents=session.card_sales_cents,
        transferSalesCents=session.transfer_sales_cents,
        nequiSalesCents=session.nequi_sales_cents,
        daviplataSalesCents=session.daviplata_sales_cents,
        totalSalesCents=session.total_sales_cents,
        ordersCount=session.orders_count,
        cashInCents=session.cash_in_cents,
        cashOutCents=session.cash_out_cents,
        expectedCashCents=session.expected_cash_cents,
        openedAt=session.opened_at,
        closedAt=session.closed_at,
        closedByUserId=str(session.closed_by_user_id) if session.closed_by_user_id else None,
        actualAmountCents=session.actual_amount_cents,
        expectedAmountCents=session.expected_amount_cents,
        differenceCents=session.difference_cents,
        notes=session.notes,
    )


def to_cash_movement_response(movement: CashMovement) -> CashMovementResponse:
    return CashMovementResponse(
        movementId=str(movement.movement_id),
        sessionId=str(movement.session_id),
        type=movement.movement_type.value,
        amountCents=movement.amount_cents,
        reason=movement.reason,
        userId=str(movement.user_id),
        userName=movement.user_name,
        createdAt=movement.created_at,
    )
