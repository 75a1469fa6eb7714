from __future__ import annotations

from enum import Enum

from sqlalchemy import CheckConstraint
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def enum_check(
    column: str,
    enum_cls: type[Enum],
    name: str,
    nullable: bool = False,
) -> CheckConstraint:
    allowed = ", ".join(f"'{member.value}'" for member in enum_cls)
    clause = f"{column} IN ({allowed})"
    if nullable:
        clause = f"{column} IS NULL OR {clause}"
    return CheckConstraint(clause, name=name)
