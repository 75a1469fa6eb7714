from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from rpos.domain.common.ids import OrderId, TableId


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    PAYING = "paying"
    RESERVED = "reserved"


@dataclass(frozen=True)
class RestaurantTable:
    table_id: TableId
    number: int
    name: str
    capacity: int
    status: TableStatus
    position_x: int = 0
    position_y: int = 0
    current_order_id: OrderId | None = None
    guests: int | None = None

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError("table number must be >= 1")
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")
        if not self.name.strip():
            raise ValueError("name must be non-empty")
        if self.status == TableStatus.AVAILABLE and self.current_order_id is not None:
            raise ValueError("an available table cannot hold an order")

    def seat(self, guests: int) -> RestaurantTable:
        if self.status not in (TableStatus.AVAILABLE, TableStatus.RESERVED):
            raise TableStateError(f"table {self.number} is {self.status.value}")
        if guests < 1 or guests > self.capacity:
            raise TableStateError(
                f"table {self.number} seats between 1 and {self.capacity} guests"
            )
        return replace(self, status=TableStatus.OCCUPIED, guests=guests)

    def assign_order(self, order_id: OrderId) -> RestaurantTable:
        if self.current_order_id is not None and self.current_order_id != order_id:
            raise TableOccupiedError(
                f"table {self.number} already holds order {self.current_order_id}"
            )
        if self.status == TableStatus.PAYING:
            raise TableStateError(f"table {self.number} is settling its bill")
        return replace(self, status=TableStatus.OCCUPIED, current_order_id=order_id)

    def request_bill(self) -> RestaurantTable:
        if self.status != TableStatus.OCCUPIED or self.current_order_id is None:
            raise TableStateError(f"table {self.number} has no open order to bill")
        return replace(self, status=TableStatus.PAYING)

    def reserve(self) -> RestaurantTable:
        if self.status != TableStatus.AVAILABLE:
            raise TableStateError(f"table {self.number} is {self.status.value}")
        return replace(self, status=TableStatus.RESERVED)

    def free(self) -> RestaurantTable:
        if self.current_order_id is not None:
            raise TableOccupiedError(
                f"table {self.number} still holds order {self.current_order_id}"
            )
        return replace(self, status=TableStatus.AVAILABLE, guests=None)

    def release(self, order_id: OrderId) -> RestaurantTable:
        if self.current_order_id != order_id:
            return self
        return replace(
            self,
            status=TableStatus.AVAILABLE,
            current_order_id=None,
            guests=None,
        )


class TableStateError(Exception):
    pass


class TableOccupiedError(Exception):
    pass
