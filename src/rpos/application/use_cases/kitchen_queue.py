from __future__ import annotations

from rpos.application.dto.responses import KitchenQueueResponse
from rpos.application.errors import ValidationError
from rpos.application.mappers.order_mapper import to_order_response
from rpos.application.metrics.order_lifecycle import record_kitchen_queue_size
from rpos.application.ports.repositories import InvalidCursorError, UnitOfWork
from rpos.domain.order.entities import KITCHEN_STATUSES, OrderStatus

_STATUS_MAP: dict[str, frozenset[OrderStatus]] = {
    "ALL": KITCHEN_STATUSES,
    **{status.value.upper(): frozenset({status}) for status in KITCHEN_STATUSES},
}


class InvalidKitchenQueueStatusError(ValidationError):
    code = "INVALID_KITCHEN_QUERY"


class InvalidKitchenQueueCursorError(ValidationError):
    code = "INVALID_CURSOR"


class KitchenQueue:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(
        self,
        status: str = "ALL",
        limit: int = 50,
        cursor: str | None = None,
    ) -> KitchenQueueResponse:
        normalized_status = status.upper()
        if normalized_status not in _STATUS_MAP:
            raise InvalidKitchenQueueStatusError(f"invalid kitchen queue status: {status}")
        if limit < 1 or limit > 200:
            raise InvalidKitchenQueueStatusError("limit must be between 1 and 200")

        try:
            with self._uow as uow:
                orders, next_cursor = uow.orders.list_for_kitchen(
                    statuses=_STATUS_MAP[normalized_status],
                    limit=limit,
                    cursor=cursor,
                )
        except InvalidCursorError as exc:
            raise InvalidKitchenQueueCursorError("invalid cursor") from exc

        if normalized_status == "ALL":
            record_kitchen_queue_size(len(orders))

        return KitchenQueueResponse(
            orders=[to_order_response(order) for order in orders],
            nextCursor=next_cursor,
        )
