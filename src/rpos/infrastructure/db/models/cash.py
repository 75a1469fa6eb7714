from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from rpos.domain.cash.entities import CashSessionStatus, MovementType, SaleEntryKind
from rpos.domain.order.entities import PaymentMethod
from rpos.infrastructure.db.models.base import Base, enum_check


class CashSessionModel(Base):
    __tablename__ = "cash_sessions"
    __table_args__ = (
        enum_check("status", CashSessionStatus, name="ck_cash_sessions_status"),
        CheckConstraint("opening_amount_cents >= 0", name="ck_cash_sessions_opening"),
        # at most one open session at any time
        Index(
            "uq_cash_sessions_single_open",
            "status",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
        Index("ix_cash_sessions_opened_at", "opened_at"),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    user_name: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    opening_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    cash_sales_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    card_sales_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    transfer_sales_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nequi_sales_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    daviplata_sales_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_sales_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    orders_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cash_in_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cash_out_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by_user_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    actual_amount_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expected_amount_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    difference_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class CashMovementModel(Base):
    __tablename__ = "cash_movements"
    __table_args__ = (
        enum_check("movement_type", MovementType, name="ck_cash_movements_type"),
        CheckConstraint("amount_cents > 0", name="ck_cash_movements_amount"),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    session_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("cash_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    movement_type: Mapped[str] = mapped_column(String(10), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    user_name: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class SaleEntryModel(Base):
    __tablename__ = "sale_entries"
    __table_args__ = (
        UniqueConstraint("order_id", "kind", name="uq_sale_entries_order_kind"),
        enum_check("kind", SaleEntryKind, name="ck_sale_entries_kind"),
        enum_check("method", PaymentMethod, name="ck_sale_entries_method"),
        CheckConstraint("amount_cents >= 0", name="ck_sale_entries_amount"),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    session_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("cash_sessions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
