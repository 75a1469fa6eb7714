from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from rpos.domain.common.ids import (
    CashMovementId,
    CashSessionId,
    OrderId,
    SaleEntryId,
    UserId,
)
from rpos.domain.order.entities import PaymentMethod


class CashSessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"


class SaleEntryKind(str, Enum):
    SALE = "sale"
    REVERSAL = "reversal"


SALES_BUCKETS: dict[PaymentMethod, str] = {
    PaymentMethod.CASH: "cash_sales_cents",
    PaymentMethod.CARD: "card_sales_cents",
    PaymentMethod.TRANSFER: "transfer_sales_cents",
    PaymentMethod.NEQUI: "nequi_sales_cents",
    PaymentMethod.DAVIPLATA: "daviplata_sales_cents",
}


@dataclass(frozen=True)
class CashSession:
    session_id: CashSessionId
    user_id: UserId
    user_name: str
    opening_amount_cents: int
    currency: str
    opened_at: datetime
    status: CashSessionStatus = CashSessionStatus.OPEN
    cash_sales_cents: int = 0
    card_sales_cents: int = 0
    transfer_sales_cents: int = 0
    nequi_sales_cents: int = 0
    daviplata_sales_cents: int = 0
    total_sales_cents: int = 0
    orders_count: int = 0
    cash_in_cents: int = 0
    cash_out_cents: int = 0
    closed_at: datetime | None = None
    closed_by_user_id: UserId | None = None
    actual_amount_cents: int | None = None
    expected_amount_cents: int | None = None
    difference_cents: int | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.opening_amount_cents < 0:
            raise ValueError("opening amount must be >= 0")
        if self.status == CashSessionStatus.CLOSED and self.closed_at is None:
            raise ValueError("closed_at must be set when the session is closed")

    @property
    def is_open(self) -> bool:
        return self.status == CashSessionStatus.OPEN

    @property
    def expected_cash_cents(self) -> int:
        return (
            self.opening_amount_cents
            + self.cash_sales_cents
            + self.cash_in_cents
            - self.cash_out_cents
        )

    def sales_for(self, method: PaymentMethod) -> int:
        return int(getattr(self, SALES_BUCKETS[method]))

    def close(
        self,
        actual_amount_cents: int,
        now: datetime,
        closed_by_user_id: UserId,
        notes: str | None = None,
    ) -> CashSession:
        if not self.is_open:
            raise CashSessionClosedError(f"cash session {self.session_id} is already closed")
        if actual_amount_cents < 0:
            raise ValueError("actual amount must be >= 0")
        expected = self.expected_cash_cents
        return replace(
            self,
            status=CashSessionStatus.CLOSED,
            closed_at=now,
            closed_by_user_id=closed_by_user_id,
            actual_amount_cents=actual_amount_cents,
            expected_amount_cents=expected,
            difference_cents=actual_amount_cents - expected,
            notes=notes,
        )


@dataclass(frozen=True)
class CashMovement:
    movement_id: CashMovementId
    session_id: CashSessionId
    movement_type: MovementType
    amount_cents: int
    reason: str
    user_id: UserId
    user_name: str
    created_at: datetime

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("movement amount must be > 0")
        if not self.reason.strip():
            raise ValueError("movement reason must be non-empty")


@dataclass(frozen=True)
class SaleEntry:
    entry_id: SaleEntryId
    session_id: CashSessionId
    order_id: OrderId
    kind: SaleEntryKind
    method: PaymentMethod
    amount_cents: int
    created_at: datetime

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise ValueError("ledger amount must be >= 0")

    @property
    def signed_amount_cents(self) -> int:
        if self.kind == SaleEntryKind.REVERSAL:
            return -self.amount_cents
        return self.amount_cents


class CashSessionClosedError(Exception):
    pass
