from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from rpos.application.dto.requests import (
    CashMovementRequest,
    CloseCashSessionRequest,
    OpenCashSessionRequest,
)
from rpos.application.dto.responses import (
    ActiveCashSessionResponse,
    CashMovementListResponse,
    CashMovementResponse,
    CashSessionListResponse,
    CashSessionResponse,
)
from rpos.application.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from rpos.application.mappers.cash_mapper import (
    to_cash_movement_response,
    to_cash_session_response,
)
from rpos.application.mappers.event_envelope import serialize_cash_session_event
from rpos.application.metrics.order_lifecycle import (
    record_cash_session_close_blocked,
    record_cash_session_closed,
    record_cash_session_opened,
)
from rpos.application.ports.publisher import EVENTS_CHANNEL, EventPublisher
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.application.use_cases.cash_ledger import NoOpenCashSessionError
from rpos.application.use_cases.context import BusinessSettings, TraceContext
from rpos.domain.cash.entities import CashMovement, CashSession, CashSessionClosedError
from rpos.domain.common.ids import CashMovementId, CashSessionId, UserId
from rpos.domain.table.entities import TableStatus
from rpos.domain.user.entities import Permission, User

logger = logging.getLogger(__name__)

TABLES_NOT_AVAILABLE = "TABLES_NOT_AVAILABLE"
ORDERS_NOT_SETTLED = "ORDERS_NOT_SETTLED"


class CashSessionNotFoundError(NotFoundError):
    code = "CASH_SESSION_NOT_FOUND"


class CashSessionAlreadyOpenError(ConflictError):
    code = "CASH_SESSION_ALREADY_OPEN"


class CashSessionNotOpenError(ConflictError):
    code = "CASH_SESSION_NOT_OPEN"


class CashSessionCloseBlockedError(ConflictError):
    code = "CASH_SESSION_CLOSE_BLOCKED"


class CashierNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"


class InvalidCashQueryError(ValidationError):
    code = "INVALID_CASH_QUERY"


def _cash_user(uow: UnitOfWork, user_id: str) -> User:
    user = uow.users.get(UserId(user_id))
    if user is None:
        raise CashierNotFoundError(f"user {user_id} not found")
    if not user.can(Permission.MANAGE_CASH):
        raise PermissionDeniedError(
            f"user {user.name} cannot manage the cash register",
            details={"userId": user_id, "role": user.role.value},
        )
    return user


def _publish(
    publisher: EventPublisher,
    event_type: str,
    session: CashSession,
    occurred_at: datetime,
    trace_ctx: TraceContext,
) -> None:
    message = serialize_cash_session_event(
        event_type=event_type,
        session=session,
        occurred_at=occurred_at,
        trace_id=trace_ctx.trace_id,
        request_id=trace_ctx.request_id,
    )
    try:
        publisher.publish(channel=EVENTS_CHANNEL, message=message)
    except Exception:
        logger.warning(
            "cash session event publish failed",
            extra={"session_id": str(session.session_id)},
        )


class OpenCashSession:
    def __init__(
        self,
        uow: UnitOfWork,
        publisher: EventPublisher,
        settings: BusinessSettings,
    ) -> None:
        self._uow = uow
        self._publisher = publisher
        self._settings = settings

    def execute(
        self,
        request_dto: OpenCashSessionRequest,
        trace_ctx: TraceContext,
    ) -> CashSessionResponse:
        now = datetime.now(timezone.utc)
        try:
            with self._uow as uow:
                user = _cash_user(uow, request_dto.user_id)
                current = uow.cash_sessions.get_open_for_update()
                if current is not None:
                    raise CashSessionAlreadyOpenError(
                        "a cash session is already open",
                        details={"sessionId": str(current.session_id)},
                    )
                session = CashSession(
                    session_id=CashSessionId(f"cs_{uuid4().hex[:12]}"),
                    user_id=user.user_id,
                    user_name=user.name,
                    opening_amount_cents=request_dto.opening_amount_cents,
                    currency=self._settings.currency,
                    opened_at=now,
                )
                uow.cash_sessions.add(session)
                uow.commit()
        except DuplicateEntryError as exc:
            # lost the race against another open on the partial unique index
            raise CashSessionAlreadyOpenError("a cash session is already open") from exc

        logger.info(
            "cash session opened",
            extra={"session_id": str(session.session_id), "user_id": str(user.user_id)},
        )
        record_cash_session_opened()
        _publish(self._publisher, "cash_session.opened", session, now, trace_ctx)
        return to_cash_session_response(session)


class CloseCashSession:
    def __init__(self, uow: UnitOfWork, publisher: EventPublisher) -> None:
        self._uow = uow
        self._publisher = publisher

    def execute(
        self,
        session_id: CashSessionId,
        request_dto: CloseCashSessionRequest,
        trace_ctx: TraceContext,
    ) -> CashSessionResponse:
        now = datetime.now(timezone.utc)
        with self._uow as uow:
            session = uow.cash_sessions.get_for_update(session_id)
            if session is None:
                raise CashSessionNotFoundError(f"cash session {session_id} not found")
            if not session.is_open:
                raise CashSessionNotOpenError(f"cash session {session_id} is already closed")
            user = _cash_user(uow, request_dto.user_id)

            busy_tables = [
                table for table in uow.tables.list() if table.status != TableStatus.AVAILABLE
            ]
            unsettled = uow.orders.list_unsettled()
            reasons: list[str] = []
            details: dict[str, object] = {}
            if busy_tables:
                reasons.append(TABLES_NOT_AVAILABLE)
                details["tableIds"] = [str(table.table_id) for table in busy_tables]
            if unsettled:
                reasons.append(ORDERS_NOT_SETTLED)
                details["orderIds"] = [str(order.order_id) for order in unsettled]
            if reasons:
                for reason in reasons:
                    record_cash_session_close_blocked(reason)
                details["reasons"] = reasons
                logger.info(
                    "cash session close blocked",
                    extra={"session_id": str(session_id), "reasons": reasons},
                )
                raise CashSessionCloseBlockedError(
                    "cash session cannot be closed yet", details=details
                )

            try:
                closed = session.close(
                    actual_amount_cents=request_dto.actual_amount_cents,
                    now=now,
                    closed_by_user_id=user.user_id,
                    notes=request_dto.notes,
                )
            except CashSessionClosedError as exc:
                raise CashSessionNotOpenError(str(exc)) from exc
            uow.cash_sessions.save_closed(closed)
            uow.commit()

        logger.info(
            "cash session closed",
            extra={
                "session_id": str(closed.session_id),
                "difference_cents": closed.difference_cents,
            },
        )
        record_cash_session_closed()
        _publish(self._publisher, "cash_session.closed", closed, now, trace_ctx)
        return to_cash_session_response(closed)


class GetActiveCashSession:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self) -> ActiveCashSessionResponse:
        with self._uow as uow:
            session = uow.cash_sessions.get_open()
        if session is None:
            return ActiveCashSessionResponse(session=None)
        return ActiveCashSessionResponse(session=to_cash_session_response(session))


class GetCashSession:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, session_id: CashSessionId) -> CashSessionResponse:
        with self._uow as uow:
            session = uow.cash_sessions.get(session_id)
        if session is None:
            raise CashSessionNotFoundError(f"cash session {session_id} not found")
        return to_cash_session_response(session)


class ListCashSessions:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, limit: int = 30) -> CashSessionListResponse:
        if limit < 1 or limit > 200:
            raise InvalidCashQueryError("limit must be between 1 and 200")
        with self._uow as uow:
            sessions = uow.cash_sessions.list(limit)
        return CashSessionListResponse(
            sessions=[to_cash_session_response(session) for session in sessions]
        )


class AddCashMovement:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(
        self,
        request_dto: CashMovementRequest,
        session_id: CashSessionId | None = None,
    ) -> CashMovementResponse:
        now = datetime.now(timezone.utc)
        with self._uow as uow:
            session = uow.cash_sessions.get_open_for_update()
            if session is None:
                raise NoOpenCashSessionError("a cash session must be open to move cash")
            if session_id is not None and session.session_id != session_id:
                raise CashSessionNotOpenError(
                    f"cash session {session_id} is not the open session",
                    details={"openSessionId": str(session.session_id)},
                )
            user = _cash_user(uow, request_dto.user_id)
            movement = CashMovement(
                movement_id=CashMovementId(f"mov_{uuid4().hex[:12]}"),
                session_id=session.session_id,
                movement_type=request_dto.type,
                amount_cents=request_dto.amount_cents,
                reason=request_dto.reason,
                user_id=user.user_id,
                user_name=user.name,
                created_at=now,
            )
            uow.cash_movements.add(movement)
            uow.cash_sessions.increment_movements(
                session_id=session.session_id,
                movement_type=movement.movement_type,
                amount_cents=movement.amount_cents,
            )
            uow.commit()

        logger.info(
            "cash movement recorded",
            extra={
                "session_id": str(movement.session_id),
                "movement_type": movement.movement_type.value,
                "amount_cents": movement.amount_cents,
            },
        )
        return to_cash_movement_response(movement)


class ListCashMovements:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, session_id: CashSessionId) -> CashMovementListResponse:
        with self._uow as uow:
            if uow.cash_sessions.get(session_id) is None:
                raise CashSessionNotFoundError(f"cash session {session_id} not found")
            movements = uow.cash_movements.list_for_session(session_id)
        return CashMovementListResponse(
            movements=[to_cash_movement_response(movement) for movement in movements]
        )
