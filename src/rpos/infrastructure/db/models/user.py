from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from rpos.domain.user.entities import UserRole
from rpos.infrastructure.db.models.base import Base, enum_check


class UserModel(Base):
    __tablename__ = "users"
    __table_args__ = (enum_check("role", UserRole, name="ck_users_role"),)

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    pin: Mapped[str] = mapped_column(String(4), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
