from __future__ import annotations

from rpos.application.dto.responses import TableResponse
from rpos.domain.table.entities import RestaurantTable


def to_table_response(table: RestaurantTable) -> TableResponse:
    return TableResponse(
        tableId=str(table.table_id),
        number=table.number,
        name=table.name,
        capacity=table.capacity,
        status=table.status.value,
        guests=table.guests,
        currentOrderId=str(table.current_order_id) if table.current_order_id else None,
        positionX=table.position_x,
        positionY=table.position_y,
    )
