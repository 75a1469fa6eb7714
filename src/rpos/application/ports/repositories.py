from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import TracebackType
from typing import Protocol

from rpos.domain.cash.entities import CashMovement, CashSession, MovementType, SaleEntry
from rpos.domain.common.ids import (
    CashSessionId,
    CategoryId,
    CustomerId,
    OrderId,
    ProductId,
    TableId,
    UserId,
)
from rpos.domain.customer.entities import Customer
from rpos.domain.menu.entities import Category, Product
from rpos.domain.order.entities import Order, OrderOrigin, OrderStatus, PaymentMethod
from rpos.domain.table.entities import RestaurantTable
from rpos.domain.user.entities import User


@dataclass(frozen=True)
class OrderListFilter:
    statuses: frozenset[OrderStatus] = field(default_factory=frozenset)
    table_id: TableId | None = None
    origin: OrderOrigin | None = None
    completed_from: datetime | None = None
    completed_to: datetime | None = None


class OrderRepository(Protocol):
    def add(self, order: Order) -> None: ...

    def get(self, order_id: OrderId) -> Order | None: ...

    def get_for_update(self, order_id: OrderId) -> Order | None: ...

    def update(self, order: Order, expected_version: int) -> Order: ...

    def get_by_idempotency_key(self, key: str) -> Order | None: ...

    def list(self, filters: OrderListFilter, limit: int | None = None) -> list[Order]: ...

    def list_for_kitchen(
        self,
        statuses: frozenset[OrderStatus],
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]: ...

    def list_unsettled(self) -> list[Order]: ...


class OrderCounterRepository(Protocol):
    def next_number(self, day: str) -> int: ...


class TableRepository(Protocol):
    def add(self, table: RestaurantTable) -> None: ...

    def get(self, table_id: TableId) -> RestaurantTable | None: ...

    def get_for_update(self, table_id: TableId) -> RestaurantTable | None: ...

    def get_by_number(self, number: int) -> RestaurantTable | None: ...

    def list(self) -> list[RestaurantTable]: ...

    def update(self, table: RestaurantTable) -> None: ...


class CashSessionRepository(Protocol):
    def add(self, session: CashSession) -> None: ...

    def get(self, session_id: CashSessionId) -> CashSession | None: ...

    def get_for_update(self, session_id: CashSessionId) -> CashSession | None: ...

    def get_open(self) -> CashSession | None: ...

    def get_open_for_update(self) -> CashSession | None: ...

    def list(self, limit: int) -> list[CashSession]: ...

    def save_closed(self, session: CashSession) -> None: ...

    def increment_sales(
        self,
        session_id: CashSessionId,
        method: PaymentMethod,
        amount_cents: int,
        orders_delta: int,
    ) -> None: ...

    def increment_movements(
        self,
        session_id: CashSessionId,
        movement_type: MovementType,
        amount_cents: int,
    ) -> None: ...


class CashMovementRepository(Protocol):
    def add(self, movement: CashMovement) -> None: ...

    def list_for_session(self, session_id: CashSessionId) -> list[CashMovement]: ...


class SaleLedgerRepository(Protocol):
    def add(self, entry: SaleEntry) -> None: ...

    def get_sale(self, order_id: OrderId) -> SaleEntry | None: ...

    def get_reversal(self, order_id: OrderId) -> SaleEntry | None: ...

    def list_for_session(self, session_id: CashSessionId) -> list[SaleEntry]: ...


class CustomerRepository(Protocol):
    def add(self, customer: Customer) -> None: ...

    def get(self, customer_id: CustomerId) -> Customer | None: ...

    def get_by_phone(self, phone: str) -> Customer | None: ...

    def get_by_telegram_chat_id(self, chat_id: str) -> Customer | None: ...

    def list(self) -> list[Customer]: ...

    def update(self, customer: Customer) -> None: ...


class CategoryRepository(Protocol):
    def add(self, category: Category) -> None: ...

    def get(self, category_id: CategoryId) -> Category | None: ...

    def list(self, include_inactive: bool = False) -> list[Category]: ...

    def update(self, category: Category) -> None: ...


class ProductRepository(Protocol):
    def add(self, product: Product) -> None: ...

    def get(self, product_id: ProductId) -> Product | None: ...

    def get_many(self, product_ids: list[ProductId]) -> dict[ProductId, Product]: ...

    def list(
        self,
        category_id: CategoryId | None = None,
        include_inactive: bool = False,
    ) -> list[Product]: ...

    def update(self, product: Product) -> None: ...


class UserRepository(Protocol):
    def add(self, user: User) -> None: ...

    def get(self, user_id: UserId) -> User | None: ...

    def get_by_pin(self, pin: str) -> User | None: ...

    def list(self, include_inactive: bool = False) -> list[User]: ...

    def update(self, user: User) -> None: ...


class UnitOfWork(Protocol):
    orders: OrderRepository
    order_counters: OrderCounterRepository
    tables: TableRepository
    cash_sessions: CashSessionRepository
    cash_movements: CashMovementRepository
    sale_ledger: SaleLedgerRepository
    customers: CustomerRepository
    categories: CategoryRepository
    products: ProductRepository
    users: UserRepository

    def __enter__(self) -> UnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class OptimisticConcurrencyError(Exception):
    pass


class InvalidCursorError(Exception):
    pass


class DuplicateEntryError(Exception):
    pass
