from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.expression import Executable
from sqlalchemy.orm import Session

from rpos.application.ports.repositories import DuplicateEntryError
from rpos.infrastructure.db.models.base import Base


def aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc(value: datetime) -> datetime:
    return aware(value).astimezone(timezone.utc)


def aware_or_none(value: datetime | None) -> datetime | None:
    return aware(value) if value is not None else None


def insert_row(session: Session, model: Base) -> None:
    try:
        with session.begin_nested():
            session.add(model)
            session.flush()
    except IntegrityError as exc:
        raise DuplicateEntryError(str(exc.orig)) from exc


def execute_checked(session: Session, statement: Executable) -> None:
    try:
        with session.begin_nested():
            session.execute(statement)
    except IntegrityError as exc:
        raise DuplicateEntryError(str(exc.orig)) from exc
