from __future__ import annotations

from fastapi import APIRouter, status

from rpos.api.dependencies import (
    business_settings,
    current_trace_context,
    event_publisher,
    unit_of_work,
)
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
from rpos.application.use_cases.cash_sessions import (
    AddCashMovement,
    CloseCashSession,
    GetActiveCashSession,
    GetCashSession,
    ListCashMovements,
    ListCashSessions,
    OpenCashSession,
)
from rpos.domain.common.ids import CashSessionId

router = APIRouter(prefix="/api", tags=["cash"])


@router.get("/cash-sessions", response_model=CashSessionListResponse)
def list_cash_sessions(limit: int = 30) -> CashSessionListResponse:
    return ListCashSessions(unit_of_work()).execute(limit=limit)


@router.get("/cash-sessions/active", response_model=ActiveCashSessionResponse)
def active_cash_session() -> ActiveCashSessionResponse:
    return GetActiveCashSession(unit_of_work()).execute()


@router.post(
    "/cash-sessions",
    response_model=CashSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def open_cash_session(request_dto: OpenCashSessionRequest) -> CashSessionResponse:
    return OpenCashSession(unit_of_work(), event_publisher(), business_settings()).execute(
        request_dto, current_trace_context()
    )


@router.get("/cash-sessions/{session_id}", response_model=CashSessionResponse)
def get_cash_session(session_id: str) -> CashSessionResponse:
    return GetCashSession(unit_of_work()).execute(CashSessionId(session_id))


@router.post("/cash-sessions/{session_id}/close", response_model=CashSessionResponse)
def close_cash_session(
    session_id: str,
    request_dto: CloseCashSessionRequest,
) -> CashSessionResponse:
    return CloseCashSession(unit_of_work(), event_publisher()).execute(
        CashSessionId(session_id), request_dto, current_trace_context()
    )


@router.get("/cash-sessions/{session_id}/movements", response_model=CashMovementListResponse)
def list_cash_movements(session_id: str) -> CashMovementListResponse:
    return ListCashMovements(unit_of_work()).execute(CashSessionId(session_id))


@router.post(
    "/cash-sessions/{session_id}/movements",
    response_model=CashMovementResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_session_movement(session_id: str, request_dto: CashMovementRequest) -> CashMovementResponse:
    return AddCashMovement(unit_of_work()).execute(request_dto, CashSessionId(session_id))


@router.post(
    "/cash-movements",
    response_model=CashMovementResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_cash_movement(request_dto: CashMovementRequest) -> CashMovementResponse:
    return AddCashMovement(unit_of_work()).execute(request_dto)
