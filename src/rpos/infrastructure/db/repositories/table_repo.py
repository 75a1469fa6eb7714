from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from rpos.application.ports.repositories import TableRepository
from rpos.domain.common.ids import OrderId, TableId
from rpos.domain.table.entities import RestaurantTable, TableStatus
from rpos.infrastructure.db.models.table import TableModel
from rpos.infrastructure.db.repositories.common import insert_row


class SqlAlchemyTableRepository(TableRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, table: RestaurantTable) -> None:
        insert_row(self._session, TableModel(id=str(table.table_id), **_columns(table)))

    def get(self, table_id: TableId) -> RestaurantTable | None:
        model = self._session.get(TableModel, str(table_id), populate_existing=True)
        return _to_domain(model) if model is not None else None

    def get_for_update(self, table_id: TableId) -> RestaurantTable | None:
        model = self._session.get(
            TableModel,
            str(table_id),
            with_for_update=True,
            populate_existing=True,
        )
        return _to_domain(model) if model is not None else None

    def get_by_number(self, number: int) -> RestaurantTable | None:
        model = self._session.execute(
            select(TableModel).where(TableModel.number == number)
        ).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    def list(self) -> list[RestaurantTable]:
        statement = select(TableModel).order_by(TableModel.number)
        return [_to_domain(model) for model in self._session.execute(statement).scalars()]

    def update(self, table: RestaurantTable) -> None:
        self._session.execute(
            update(TableModel)
            .where(TableModel.id == str(table.table_id))
            .values(**_columns(table))
            .execution_options(synchronize_session=False)
        )


def _columns(table: RestaurantTable) -> dict[str, object]:
    return {
        "number": table.number,
        "name": table.name,
        "capacity": table.capacity,
        "guests": table.guests,
        "status": table.status.value,
        "current_order_id": str(table.current_order_id) if table.current_order_id else None,
        "position_x": table.position_x,
        "position_y": table.position_y,
    }


def _to_domain(model: TableModel) -> RestaurantTable:
    return RestaurantTable(
        table_id=TableId(model.id),
        number=model.number,
        name=model.name,
        capacity=model.capacity,
        status=TableStatus(model.status),
        position_x=model.position_x,
        position_y=model.position_y,
        current_order_id=OrderId(model.current_order_id) if model.current_order_id else None,
        guests=model.guests,
    )
