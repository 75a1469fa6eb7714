from __future__ import annotations

import copy
from dataclasses import replace
from datetime import datetime, timezone
from types import TracebackType
from typing import Any

from rpos.application.ports.repositories import (
    DuplicateEntryError,
    InvalidCursorError,
    OptimisticConcurrencyError,
    OrderListFilter,
)
from rpos.domain.cash.entities import (
    SALES_BUCKETS,
    CashMovement,
    CashSession,
    CashSessionStatus,
    MovementType,
    SaleEntry,
    SaleEntryKind,
)
from rpos.domain.common.ids import (
    CashSessionId,
    CategoryId,
    CustomerId,
    OrderId,
    ProductId,
    TableId,
    UserId,
)
from rpos.domain.common.money import Money
from rpos.domain.customer.entities import Customer
from rpos.domain.menu.entities import Category, Modifier, ModifierGroup, Product, ProductSize
from rpos.domain.order.entities import (
    ACTIVE_STATUSES,
    Order,
    OrderStatus,
    PaymentMethod,
)
from rpos.domain.table.entities import RestaurantTable, TableStatus
from rpos.domain.user.entities import User, UserRole

NOW = datetime(2026, 10, 19, 17, 0, tzinfo=timezone.utc)


class FakeDatabase:
    def __init__(self) -> None:
        self.orders: dict[OrderId, Order] = {}
        self.counters: dict[str, int] = {}
        self.tables: dict[TableId, RestaurantTable] = {}
        self.cash_sessions: dict[CashSessionId, CashSession] = {}
        self.cash_movements: list[CashMovement] = []
        self.sale_entries: list[SaleEntry] = []
        self.customers: dict[CustomerId, Customer] = {}
        self.categories: dict[CategoryId, Category] = {}
        self.products: dict[ProductId, Product] = {}
        self.users: dict[UserId, User] = {}

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.__dict__)

    def restore(self, state: dict[str, Any]) -> None:
        self.__dict__.update(state)


class FakeOrderRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, order: Order) -> None:
        if order.idempotency_key and self.get_by_idempotency_key(order.idempotency_key):
            raise DuplicateEntryError(f"idempotency key {order.idempotency_key}")
        self._db.orders[order.order_id] = order

    def get(self, order_id: OrderId) -> Order | None:
        return self._db.orders.get(order_id)

    def get_for_update(self, order_id: OrderId) -> Order | None:
        return self.get(order_id)

    def update(self, order: Order, expected_version: int) -> Order:
        current = self._db.orders.get(order.order_id)
        if current is None or current.version != expected_version:
            raise OptimisticConcurrencyError(str(order.order_id))
        persisted = replace(order, version=expected_version + 1)
        self._db.orders[order.order_id] = persisted
        return persisted

    def get_by_idempotency_key(self, key: str) -> Order | None:
        for order in self._db.orders.values():
            if order.idempotency_key == key:
                return order
        return None

    def list(self, filters: OrderListFilter, limit: int | None = None) -> list[Order]:
        orders = [order for order in self._newest_first() if _matches(order, filters)]
        return orders[:limit] if limit is not None else orders

    def list_for_kitchen(
        self,
        statuses: frozenset[OrderStatus],
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        start = 0
        if cursor is not None:
            if not cursor.isdigit():
                raise InvalidCursorError(cursor)
            start = int(cursor)
        matching = [order for order in self._newest_first() if order.status in statuses]
        page = matching[start : start + limit]
        next_cursor = str(start + limit) if len(matching) > start + limit else None
        return page, next_cursor

    def list_unsettled(self) -> list[Order]:
        return [
            order
            for order in self._db.orders.values()
            if order.status in ACTIVE_STATUSES
            or (order.status != OrderStatus.CANCELLED and not order.is_paid)
        ]

    def _newest_first(self) -> list[Order]:
        return sorted(
            self._db.orders.values(),
            key=lambda order: (order.created_at, order.order_id),
            reverse=True,
        )


def _matches(order: Order, filters: OrderListFilter) -> bool:
    if filters.statuses and order.status not in filters.statuses:
        return False
    if filters.table_id is not None and order.table_id != filters.table_id:
        return False
    if filters.origin is not None and order.origin != filters.origin:
        return False
    if filters.completed_from is not None or filters.completed_to is not None:
        if order.completed_at is None:
            return False
        if filters.completed_from is not None and order.completed_at < filters.completed_from:
            return False
        if filters.completed_to is not None and order.completed_at >= filters.completed_to:
            return False
    return True


class FakeOrderCounterRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def next_number(self, day: str) -> int:
        self._db.counters[day] = self._db.counters.get(day, 0) + 1
        return self._db.counters[day]


class FakeTableRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, table: RestaurantTable) -> None:
        if self.get_by_number(table.number) is not None:
            raise DuplicateEntryError(f"table number {table.number}")
        self._db.tables[table.table_id] = table

    def get(self, table_id: TableId) -> RestaurantTable | None:
        return self._db.tables.get(table_id)

    def get_for_update(self, table_id: TableId) -> RestaurantTable | None:
        return self.get(table_id)

    def get_by_number(self, number: int) -> RestaurantTable | None:
        return next((table for table in self._db.tables.values() if table.number == number), None)

    def list(self) -> list[RestaurantTable]:
        return sorted(self._db.tables.values(), key=lambda table: table.number)

    def update(self, table: RestaurantTable) -> None:
        self._db.tables[table.table_id] = table


class FakeCashSessionRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, session: CashSession) -> None:
        if session.is_open and self.get_open() is not None:
            raise DuplicateEntryError("only one cash session may be open")
        self._db.cash_sessions[session.session_id] = session

    def get(self, session_id: CashSessionId) -> CashSession | None:
        return self._db.cash_sessions.get(session_id)

    def get_for_update(self, session_id: CashSessionId) -> CashSession | None:
        return self.get(session_id)

    def get_open(self) -> CashSession | None:
        return next(
            (session for session in self._db.cash_sessions.values() if session.is_open),
            None,
        )

    def get_open_for_update(self) -> CashSession | None:
        return self.get_open()

    def list(self, limit: int) -> list[CashSession]:
        sessions = sorted(
            self._db.cash_sessions.values(),
            key=lambda session: (session.opened_at, session.session_id),
            reverse=True,
        )
        return sessions[:limit]

    def save_closed(self, session: CashSession) -> None:
        current = self._db.cash_sessions[session.session_id]
        if current.status != CashSessionStatus.OPEN:
            raise OptimisticConcurrencyError(str(session.session_id))
        self._db.cash_sessions[session.session_id] = session

    def increment_sales(
        self,
        session_id: CashSessionId,
        method: PaymentMethod,
        amount_cents: int,
        orders_delta: int,
    ) -> None:
        session = self._db.cash_sessions[session_id]
        bucket = SALES_BUCKETS[method]
        self._db.cash_sessions[session_id] = replace(
            session,
            **{
                bucket: getattr(session, bucket) + amount_cents,
                "total_sales_cents": session.total_sales_cents + amount_cents,
                "orders_count": session.orders_count + orders_delta,
            },
        )

    def increment_movements(
        self,
        session_id: CashSessionId,
        movement_type: MovementType,
        amount_cents: int,
    ) -> None:
        session = self._db.cash_sessions[session_id]
        if movement_type == MovementType.IN:
            updated = replace(session, cash_in_cents=session.cash_in_cents + amount_cents)
        else:
            updated = replace(session, cash_out_cents=session.cash_out_cents + amount_cents)
        self._db.cash_sessions[session_id] = updated


class FakeCashMovementRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, movement: CashMovement) -> None:
        self._db.cash_movements.append(movement)

    def list_for_session(self, session_id: CashSessionId) -> list[CashMovement]:
        return [item for item in self._db.cash_movements if item.session_id == session_id]


class FakeSaleLedgerRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, entry: SaleEntry) -> None:
        if self._find(entry.order_id, entry.kind) is not None:
            raise DuplicateEntryError(f"{entry.kind.value} for {entry.order_id}")
        self._db.sale_entries.append(entry)

    def get_sale(self, order_id: OrderId) -> SaleEntry | None:
        return self._find(order_id, SaleEntryKind.SALE)

    def get_reversal(self, order_id: OrderId) -> SaleEntry | None:
        return self._find(order_id, SaleEntryKind.REVERSAL)

    def list_for_session(self, session_id: CashSessionId) -> list[SaleEntry]:
        return [entry for entry in self._db.sale_entries if entry.session_id == session_id]

    def _find(self, order_id: OrderId, kind: SaleEntryKind) -> SaleEntry | None:
        return next(
            (
                entry
                for entry in self._db.sale_entries
                if entry.order_id == order_id and entry.kind == kind
            ),
            None,
        )


class FakeCustomerRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, customer: Customer) -> None:
        if self.get_by_phone(customer.phone) is not None:
            raise DuplicateEntryError(f"phone {customer.phone}")
        self._db.customers[customer.customer_id] = customer

    def get(self, customer_id: CustomerId) -> Customer | None:
        return self._db.customers.get(customer_id)

    def get_by_phone(self, phone: str) -> Customer | None:
        return next((item for item in self._db.customers.values() if item.phone == phone), None)

    def get_by_telegram_chat_id(self, chat_id: str) -> Customer | None:
        return next(
            (item for item in self._db.customers.values() if item.telegram_chat_id == chat_id),
            None,
        )

    def list(self) -> list[Customer]:
        return sorted(self._db.customers.values(), key=lambda item: (item.name, item.customer_id))

    def update(self, customer: Customer) -> None:
        self._db.customers[customer.customer_id] = customer


class FakeCategoryRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, category: Category) -> None:
        self._ensure_unique_name(category)
        self._db.categories[category.category_id] = category

    def get(self, category_id: CategoryId) -> Category | None:
        return self._db.categories.get(category_id)

    def list(self, include_inactive: bool = False) -> list[Category]:
        categories = [
            item for item in self._db.categories.values() if include_inactive or item.is_active
        ]
        return sorted(categories, key=lambda item: (item.sort_order, item.name))

    def update(self, category: Category) -> None:
        self._ensure_unique_name(category)
        self._db.categories[category.category_id] = category

    def _ensure_unique_name(self, category: Category) -> None:
        for other in self._db.categories.values():
            if other.name == category.name and other.category_id != category.category_id:
                raise DuplicateEntryError(f"category {category.name}")


class FakeProductRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, product: Product) -> None:
        self._db.products[product.product_id] = product

    def get(self, product_id: ProductId) -> Product | None:
        return self._db.products.get(product_id)

    def get_many(self, product_ids: list[ProductId]) -> dict[ProductId, Product]:
        return {
            product_id: self._db.products[product_id]
            for product_id in product_ids
            if product_id in self._db.products
        }

    def list(
        self,
        category_id: CategoryId | None = None,
        include_inactive: bool = False,
    ) -> list[Product]:
        products = [
            item
            for item in self._db.products.values()
            if (include_inactive or item.is_active)
            and (category_id is None or item.category_id == category_id)
        ]
        return sorted(products, key=lambda item: (item.name, item.product_id))

    def update(self, product: Product) -> None:
        self._db.products[product.product_id] = product


class FakeUserRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def add(self, user: User) -> None:
        if self.get_by_pin(user.pin) is not None:
            raise DuplicateEntryError("pin taken")
        self._db.users[user.user_id] = user

    def get(self, user_id: UserId) -> User | None:
        return self._db.users.get(user_id)

    def get_by_pin(self, pin: str) -> User | None:
        return next((item for item in self._db.users.values() if item.pin == pin), None)

    def list(self, include_inactive: bool = False) -> list[User]:
        users = [item for item in self._db.users.values() if include_inactive or item.is_active]
        return sorted(users, key=lambda item: (item.name, item.user_id))

    def update(self, user: User) -> None:
        self._db.users[user.user_id] = user


class FakeUnitOfWork:
    """Reusable like the SQLAlchemy one; an uncommitted block restores the snapshot."""

    def __init__(self, db: FakeDatabase | None = None) -> None:
        self.db = db or FakeDatabase()
        self.commits = 0
        self._snapshot: dict[str, Any] | None = None
        self.orders = FakeOrderRepository(self.db)
        self.order_counters = FakeOrderCounterRepository(self.db)
        self.tables = FakeTableRepository(self.db)
        self.cash_sessions = FakeCashSessionRepository(self.db)
        self.cash_movements = FakeCashMovementRepository(self.db)
        self.sale_ledger = FakeSaleLedgerRepository(self.db)
        self.customers = FakeCustomerRepository(self.db)
        self.categories = FakeCategoryRepository(self.db)
        self.products = FakeProductRepository(self.db)
        self.users = FakeUserRepository(self.db)

    def __enter__(self) -> FakeUnitOfWork:
        self._snapshot = self.db.snapshot()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.rollback()
        self._snapshot = None

    def commit(self) -> None:
        self.commits += 1
        self._snapshot = self.db.snapshot()

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.db.restore(self._snapshot)


class FakePublisher:
    def __init__(self, fail: bool = False) -> None:
        self.messages: list[tuple[str, str]] = []
        self._fail = fail

    def publish(self, channel: str, message: str) -> None:
        if self._fail:
            raise ConnectionError("redis down")
        self.messages.append((channel, message))


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def notify_order_status(self, chat_id: str, order: Order) -> None:
        self.sent.append((chat_id, str(order.order_id), order.status.value))


class FakeCache:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.ttls.pop(key, None)


class FakeMessenger:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.edited: list[dict[str, Any]] = []
        self.answers: list[tuple[str, str | None]] = []

    def send_message(
        self,
        chat_id: str,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        message = {"chat_id": chat_id, "text": text, "reply_markup": reply_markup}
        self.sent.append(message)
        return message

    def edit_message_text(
        self,
        chat_id: str,
        message_id: int,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        message = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
            "reply_markup": reply_markup,
        }
        self.edited.append(message)
        return message

    def answer_callback_query(self, callback_query_id: str, text: str | None = None) -> None:
        self.answers.append((callback_query_id, text))

    @property
    def last_text(self) -> str:
        return self.sent[-1]["text"]


def cop(amount: int) -> Money:
    return Money(amount_cents=amount, currency="COP")


def seed_catalog(uow: FakeUnitOfWork) -> None:
    """Loads the burger shop menu, six tables and the three default staff users."""
    db = uow.db
    for category_id, name, order in (
        ("cat_hamburguesas", "Hamburguesas", 1),
        ("cat_papas", "Papas", 2),
        ("cat_bebidas", "Bebidas", 3),
        ("cat_postres", "Postres", 5),
    ):
        db.categories[CategoryId(category_id)] = Category(
            category_id=CategoryId(category_id), name=name, icon="", sort_order=order
        )
    db.products[ProductId("prd_hamburguesa")] = Product(
        product_id=ProductId("prd_hamburguesa"),
        category_id=CategoryId("cat_hamburguesas"),
        name="Hamburguesa Clásica",
        description="Carne 150g",
        base_price=cop(15000),
        created_at=NOW,
        sizes=[ProductSize("Sencilla", cop(0)), ProductSize("Doble", cop(5000))],
        modifier_groups=[
            ModifierGroup(
                name="Adiciones",
                min_select=0,
                max_select=3,
                modifiers=[
                    Modifier("tocineta", "Tocineta", cop(3000)),
                    Modifier("huevo", "Huevo", cop(2000)),
                ],
            )
        ],
    )
    db.products[ProductId("prd_papas")] = Product(
        product_id=ProductId("prd_papas"),
        category_id=CategoryId("cat_papas"),
        name="Papas Francesas",
        description="",
        base_price=cop(8000),
        created_at=NOW,
    )
    db.products[ProductId("prd_coca")] = Product(
        product_id=ProductId("prd_coca"),
        category_id=CategoryId("cat_bebidas"),
        name="Coca-Cola",
        description="350ml",
        base_price=cop(5000),
        created_at=NOW,
    )
    db.products[ProductId("prd_malteada")] = Product(
        product_id=ProductId("prd_malteada"),
        category_id=CategoryId("cat_bebidas"),
        name="Malteada",
        description="",
        base_price=cop(9000),
        created_at=NOW,
        is_active=False,
    )
    for number in range(1, 7):
        table_id = TableId(f"tbl_{number:03d}")
        db.tables[table_id] = RestaurantTable(
            table_id=table_id,
            number=number,
            name=f"Mesa {number}",
            capacity=4,
            status=TableStatus.AVAILABLE,
        )
    for user_id, name, pin, role in (
        ("usr_admin", "Admin", "1234", UserRole.ADMIN),
        ("usr_cajero", "Cajero", "2222", UserRole.CASHIER),
        ("usr_mesero", "Mesero", "3333", UserRole.WAITER),
    ):
        db.users[UserId(user_id)] = User(
            user_id=UserId(user_id),
            name=name,
            pin=pin,
            role=role,
            is_active=True,
            created_at=NOW,
        )
