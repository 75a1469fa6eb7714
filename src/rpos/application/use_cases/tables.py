from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable
from uuid import uuid4

from rpos.application.dto.requests import TableRequest, TableUpdateRequest
from rpos.application.dto.responses import TableListResponse, TableResponse
from rpos.application.errors import ConflictError, NotFoundError, ValidationError
from rpos.application.mappers.table_mapper import to_table_response
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.application.use_cases.place_order import TableNotFoundError
from rpos.domain.common.ids import TableId
from rpos.domain.table.entities import (
    RestaurantTable,
    TableOccupiedError,
    TableStateError,
    TableStatus,
)

logger = logging.getLogger(__name__)


class TableNumberTakenError(ConflictError):
    code = "TABLE_NUMBER_TAKEN"


class TableTransitionError(ConflictError):
    code = "INVALID_TABLE_TRANSITION"


class InvalidTableRequestError(ValidationError):
    code = "INVALID_TABLE"


class ListTables:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, status: TableStatus | None = None) -> TableListResponse:
        with self._uow as uow:
            tables = uow.tables.list()
        if status is not None:
            tables = [table for table in tables if table.status == status]
        return TableListResponse(tables=[to_table_response(table) for table in tables])


class GetTable:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, table_id: TableId) -> TableResponse:
        with self._uow as uow:
            table = uow.tables.get(table_id)
        if table is None:
            raise TableNotFoundError(f"table {table_id} not found")
        return to_table_response(table)


class CreateTable:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, request_dto: TableRequest) -> TableResponse:
        table = RestaurantTable(
            table_id=TableId(f"tbl_{uuid4().hex[:12]}"),
            number=request_dto.number,
            name=request_dto.name,
            capacity=request_dto.capacity,
            status=TableStatus.AVAILABLE,
            position_x=request_dto.position_x,
            position_y=request_dto.position_y,
        )
        try:
            with self._uow as uow:
                uow.tables.add(table)
                uow.commit()
        except DuplicateEntryError as exc:
            raise TableNumberTakenError(
                f"table number {request_dto.number} already exists"
            ) from exc
        return to_table_response(table)


class UpdateTable:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, table_id: TableId, request_dto: TableUpdateRequest) -> TableResponse:
        changes = request_dto.model_dump(exclude_none=True)
        with self._uow as uow:
            table = uow.tables.get_for_update(table_id)
            if table is None:
                raise TableNotFoundError(f"table {table_id} not found")
            if table.guests is not None and changes.get("capacity", table.capacity) < table.guests:
                raise InvalidTableRequestError(
                    f"table {table.number} is seating {table.guests} guests"
                )
            try:
                updated = replace(table, **changes)
            except ValueError as exc:
                raise InvalidTableRequestError(str(exc)) from exc
            uow.tables.update(updated)
            uow.commit()
        return to_table_response(updated)


class _TableTransition:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def _run(
        self,
        table_id: TableId,
        action: str,
        apply: Callable[[RestaurantTable], RestaurantTable],
    ) -> TableResponse:
        with self._uow as uow:
            table = uow.tables.get_for_update(table_id)
            if table is None:
                raise TableNotFoundError(f"table {table_id} not found")
            try:
                updated = apply(table)
            except (TableStateError, TableOccupiedError) as exc:
                raise TableTransitionError(
                    str(exc),
                    details={"tableId": str(table_id), "status": table.status.value},
                ) from exc
            uow.tables.update(updated)
            uow.commit()
        logger.info(
            "table updated",
            extra={"table_id": str(table_id), "action": action, "status": updated.status.value},
        )
        return to_table_response(updated)


class SeatTable(_TableTransition):
    def execute(self, table_id: TableId, guests: int) -> TableResponse:
        return self._run(table_id, "seat", lambda table: table.seat(guests))


class RequestBill(_TableTransition):
    def execute(self, table_id: TableId) -> TableResponse:
        return self._run(table_id, "request_bill", lambda table: table.request_bill())


class ReserveTable(_TableTransition):
    def execute(self, table_id: TableId) -> TableResponse:
        return self._run(table_id, "reserve", lambda table: table.reserve())


class FreeTable(_TableTransition):
    def execute(self, table_id: TableId) -> TableResponse:
        return self._run(table_id, "free", lambda table: table.free())
