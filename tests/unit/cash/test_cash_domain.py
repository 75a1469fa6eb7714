from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from rpos.domain.cash.entities import (
    CashMovement,
    CashSession,
    CashSessionClosedError,
    CashSessionStatus,
    MovementType,
    SaleEntry,
    SaleEntryKind,
)
from rpos.domain.common.ids import CashMovementId, CashSessionId, OrderId, SaleEntryId, UserId
from rpos.domain.order.entities import PaymentMethod
from rpos.domain.user.entities import Permission, User, UserRole

NOW = datetime(2026, 10, 19, 22, 0, tzinfo=timezone.utc)


def _session(**fields: object) -> CashSession:
    return CashSession(
        session_id=CashSessionId("cs_001"),
        user_id=UserId("usr_cajero"),
        user_name="Cajero",
        opening_amount_cents=100000,
        currency="COP",
        opened_at=NOW,
        **fields,  # type: ignore[arg-type]
    )


def test_expected_cash_counts_only_cash_and_movements() -> None:
    session = _session(
        cash_sales_cents=35000,
        nequi_sales_cents=22000,
        total_sales_cents=57000,
        cash_in_cents=10000,
        cash_out_cents=5000,
    )

    assert session.expected_cash_cents == 140000
    assert session.sales_for(PaymentMethod.NEQUI) == 22000


def test_close_records_difference() -> None:
    session = _session(cash_sales_cents=35000)

    closed = session.close(
        actual_amount_cents=134000,
        now=NOW,
        closed_by_user_id=UserId("usr_admin"),
        notes="faltante",
    )

    assert closed.status == CashSessionStatus.CLOSED
    assert closed.expected_amount_cents == 135000
    assert closed.difference_cents == -1000
    assert closed.closed_by_user_id == "usr_admin"


def test_closed_session_cannot_close_again() -> None:
    closed = _session().close(100000, NOW, UserId("usr_admin"))
    with pytest.raises(CashSessionClosedError):
        closed.close(100000, NOW, UserId("usr_admin"))


def test_movement_requires_positive_amount_and_reason() -> None:
    fields = {
        "movement_id": CashMovementId("mov_001"),
        "session_id": CashSessionId("cs_001"),
        "movement_type": MovementType.OUT,
        "user_id": UserId("usr_cajero"),
        "user_name": "Cajero",
        "created_at": NOW,
    }
    with pytest.raises(ValueError):
        CashMovement(amount_cents=0, reason="hielo", **fields)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        CashMovement(amount_cents=5000, reason=" ", **fields)  # type: ignore[arg-type]


def test_reversal_entries_are_negative() -> None:
    entry = SaleEntry(
        entry_id=SaleEntryId("sle_001"),
        session_id=CashSessionId("cs_001"),
        order_id=OrderId("ord_001"),
        kind=SaleEntryKind.REVERSAL,
        method=PaymentMethod.CASH,
        amount_cents=35000,
        created_at=NOW,
    )
    assert entry.signed_amount_cents == -35000


def test_role_permissions() -> None:
    cashier = User(UserId("usr_1"), "Cajero", "2222", UserRole.CASHIER, True, NOW)
    waiter = User(UserId("usr_2"), "Mesero", "3333", UserRole.WAITER, True, NOW)
    inactive = User(UserId("usr_3"), "Admin", "1234", UserRole.ADMIN, False, NOW)

    assert cashier.can(Permission.MANAGE_CASH)
    assert not waiter.can(Permission.MANAGE_CASH)
    assert not inactive.can(Permission.MANAGE_USERS)

    with pytest.raises(ValueError):
        User(UserId("usr_4"), "Nuevo", "12a4", UserRole.WAITER, True, NOW)
