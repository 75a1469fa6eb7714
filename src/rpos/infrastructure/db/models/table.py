from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rpos.domain.table.entities import TableStatus
from rpos.infrastructure.db.models.base import Base, enum_check


class TableModel(Base):
    __tablename__ = "restaurant_tables"
    __table_args__ = (
        enum_check("status", TableStatus, name="ck_restaurant_tables_status"),
        CheckConstraint("capacity >= 1", name="ck_restaurant_tables_capacity"),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    guests: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    current_order_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    position_x: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position_y: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
