from __future__ import annotations

from fastapi import APIRouter, Query, status

from rpos.api.dependencies import unit_of_work
from rpos.application.dto.requests import (
    SeatTableRequest,
    TableRequest,
    TableUpdateRequest,
)
from rpos.application.dto.responses import TableListResponse, TableResponse
from rpos.application.use_cases.tables import (
    CreateTable,
    FreeTable,
    GetTable,
    ListTables,
    RequestBill,
    ReserveTable,
    SeatTable,
    UpdateTable,
)
from rpos.domain.common.ids import TableId
from rpos.domain.table.entities import TableStatus

router = APIRouter(prefix="/api/tables", tags=["tables"])


@router.get("", response_model=TableListResponse)
def list_tables(
    table_status: TableStatus | None = Query(default=None, alias="status"),
) -> TableListResponse:
    return ListTables(unit_of_work()).execute(status=table_status)


@router.post("", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
def create_table(request_dto: TableRequest) -> TableResponse:
    return CreateTable(unit_of_work()).execute(request_dto)


@router.get("/{table_id}", response_model=TableResponse)
def get_table(table_id: str) -> TableResponse:
    return GetTable(unit_of_work()).execute(TableId(table_id))


@router.put("/{table_id}", response_model=TableResponse)
def update_table(table_id: str, request_dto: TableUpdateRequest) -> TableResponse:
    return UpdateTable(unit_of_work()).execute(TableId(table_id), request_dto)


@router.post("/{table_id}/seat", response_model=TableResponse)
def seat_table(table_id: str, request_dto: SeatTableRequest) -> TableResponse:
    return SeatTable(unit_of_work()).execute(TableId(table_id), request_dto.guests)


@router.post("/{table_id}/request-bill", response_model=TableResponse)
def request_bill(table_id: str) -> TableResponse:
    return RequestBill(unit_of_work()).execute(TableId(table_id))


@router.post("/{table_id}/reserve", response_model=TableResponse)
def reserve_table(table_id: str) -> TableResponse:
    return ReserveTable(unit_of_work()).execute(TableId(table_id))


@router.post("/{table_id}/free", response_model=TableResponse)
def free_table(table_id: str) -> TableResponse:
    return FreeTable(unit_of_work()).execute(TableId(table_id))
