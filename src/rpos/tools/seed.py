from __future__ import annotations

from typing import Any

from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from rpos.infrastructure.db.models.base import Base
from rpos.infrastructure.db.models.menu import CategoryModel, ProductModel
from rpos.infrastructure.db.models.table import TableModel
from rpos.infrastructure.db.models.user import UserModel
from rpos.infrastructure.db.session import get_engine

CURRENCY = "COP"

CATEGORIES: list[dict[str, Any]] = [
    {"id": "cat_hamburguesas", "name": "Hamburguesas", "icon": "🍔", "sort_order": 1},
    {"id": "cat_papas", "name": "Papas", "icon": "🍟", "sort_order": 2},
    {"id": "cat_bebidas", "name": "Bebidas", "icon": "🥤", "sort_order": 3},
    {"id": "cat_perros", "name": "Perros Calientes", "icon": "🌭", "sort_order": 4},
    {"id": "cat_postres", "name": "Postres", "icon": "🍦", "sort_order": 5},
    {"id": "cat_combos", "name": "Combos", "icon": "🍱", "sort_order": 6},
]

PRODUCTS: list[dict[str, Any]] = [
    {
        "id": "prd_hamburguesa_clasica",
        "category_id": "cat_hamburguesas",
        "name": "Hamburguesa Clásica",
        "description": "Carne 150g, queso, lechuga, tomate",
        "base_price_cents": 15000,
        "sizes": [
            {"name": "Sencilla", "price_cents": 0},
            {"name": "Doble", "price_cents": 5000},
        ],
        "modifier_groups": [
            {
                "name": "Adiciones",
                "min_select": 0,
                "max_select": 3,
                "modifiers": [
                    {"id": "tocineta", "name": "Tocineta", "price_cents": 3000},
                    {"id": "huevo", "name": "Huevo", "price_cents": 2000},
                    {"id": "pepinillos", "name": "Pepinillos", "price_cents": 1000},
                ],
            }
        ],
    },
    {
        "id": "prd_papas_francesas",
        "category_id": "cat_papas",
        "name": "Papas Francesas",
        "description": "Papas fritas crocantes",
        "base_price_cents": 8000,
        "sizes": [
            {"name": "Medianas", "price_cents": 0},
            {"name": "Grandes", "price_cents": 3000},
        ],
        "modifier_groups": [],
    },
    {
        "id": "prd_coca_cola",
        "category_id": "cat_bebidas",
        "name": "Coca-Cola",
        "description": "350ml fría",
        "base_price_cents": 5000,
        "sizes": [],
        "modifier_groups": [],
    },
    {
        "id": "prd_combo_clasico",
        "category_id": "cat_combos",
        "name": "Combo Clásico",
        "description": "Hamburguesa + Papas + Bebida",
        "base_price_cents": 22000,
        "sizes": [],
        "modifier_groups": [],
    },
]

USERS: list[dict[str, Any]] = [
    {"id": "usr_admin", "name": "Admin", "pin": "1234", "role": "admin"},
    {"id": "usr_cajero", "name": "Cajero", "pin": "2222", "role": "cashier"},
    {"id": "usr_mesero", "name": "Mesero", "pin": "3333", "role": "waiter"},
]


def _tables() -> list[dict[str, Any]]:
    rows = []
    for number in range(1, 7):
        capacity = 6 if number == 4 else 2 if number == 3 else 4
        rows.append(
            {
                "id": f"tbl_{number:03d}",
                "number": number,
                "name": f"Mesa {number}",
                "capacity": capacity,
                "status": "available",
                "position_x": (number - 1) % 3,
                "position_y": (number - 1) // 3,
            }
        )
    return rows


def _upsert(
    session: Session,
    dialect: str,
    model: type[Base],
    row: dict[str, Any],
    update: bool,
) -> None:
    insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
    statement = insert(model).values(**row)
    if update:
        statement = statement.on_conflict_do_update(
            index_elements=[model.__table__.c.id],
            set_={key: value for key, value in row.items() if key != "id"},
        )
    else:
        # keep whatever the operators changed since the first seed
        statement = statement.on_conflict_do_nothing()
    session.execute(statement)


def seed(engine: Engine) -> bool:
    required_tables = {"categories", "products", "restaurant_tables", "users"}
    if not required_tables.issubset(set(inspect(engine).get_table_names())):
        return False

    dialect = engine.dialect.name
    with Session(engine) as session:
        for category in CATEGORIES:
            _upsert(session, dialect, CategoryModel, {**category, "is_active": True}, update=True)
        for product in PRODUCTS:
            _upsert(
                session,
                dialect,
                ProductModel,
                {**product, "currency": CURRENCY, "is_active": True},
                update=True,
            )
        for table in _tables():
            _upsert(session, dialect, TableModel, table, update=False)
        for user in USERS:
            _upsert(session, dialect, UserModel, {**user, "is_active": True}, update=False)
        session.commit()
    return True


def main() -> None:
    if not seed(get_engine(timeout_seconds=2.0)):
        print("no schema yet")
        return
    print("seed complete")


if __name__ == "__main__":
    main()
