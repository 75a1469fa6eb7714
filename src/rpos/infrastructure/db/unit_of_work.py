from __future__ import annotations

import logging
from types import TracebackType

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from rpos.application.errors import TransientError
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.infrastructure.db.repositories.cash_repo import (
    SqlAlchemyCashMovementRepository,
    SqlAlchemyCashSessionRepository,
    SqlAlchemySaleLedgerRepository,
)
from rpos.infrastructure.db.repositories.customer_repo import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyUserRepository,
)
from rpos.infrastructure.db.repositories.menu_repo import (
    SqlAlchemyCategoryRepository,
    SqlAlchemyProductRepository,
)
from rpos.infrastructure.db.repositories.order_repo import (
    SqlAlchemyOrderCounterRepository,
    SqlAlchemyOrderRepository,
)
from rpos.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository
from rpos.infrastructure.db.session import get_session_factory

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (OperationalError, InterfaceError)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """One session and one transaction per `with` block.

    Leaving the block without `commit()` rolls everything back.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        utc_offset_hours: int = -5,
    ) -> None:
        self._session_factory = session_factory
        self._utc_offset_hours = utc_offset_hours
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        factory = self._session_factory or get_session_factory()
        session = factory()
        self._session = session
        self.orders = SqlAlchemyOrderRepository(session, self._utc_offset_hours)
        self.order_counters = SqlAlchemyOrderCounterRepository(session)
        self.tables = SqlAlchemyTableRepository(session)
        self.cash_sessions = SqlAlchemyCashSessionRepository(session)
        self.cash_movements = SqlAlchemyCashMovementRepository(session)
        self.sale_ledger = SqlAlchemySaleLedgerRepository(session)
        self.customers = SqlAlchemyCustomerRepository(session)
        self.categories = SqlAlchemyCategoryRepository(session)
        self.products = SqlAlchemyProductRepository(session)
        self.users = SqlAlchemyUserRepository(session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self._session
        self._session = None
        if session is not None:
            try:
                session.rollback()
            except _TRANSIENT_ERRORS:
                logger.warning("rollback failed on a broken connection")
            finally:
                session.close()
        if isinstance(exc, _TRANSIENT_ERRORS):
            raise TransientError("database is unavailable") from exc

    def commit(self) -> None:
        if self._session is None:
            raise RuntimeError("unit of work is not active")
        try:
            self._session.commit()
        except IntegrityError as exc:
            raise DuplicateEntryError(str(exc.orig)) from exc

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()
