from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from rpos.application.ports.repositories import CategoryRepository, ProductRepository
from rpos.domain.common.ids import CategoryId, ProductId
from rpos.domain.common.money import Money
from rpos.domain.menu.entities import Category, Modifier, ModifierGroup, Product, ProductSize
from rpos.infrastructure.db.models.menu import CategoryModel, ProductModel
from rpos.infrastructure.db.repositories.common import aware, execute_checked, insert_row


class SqlAlchemyCategoryRepository(CategoryRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, category: Category) -> None:
        insert_row(
            self._session,
            CategoryModel(id=str(category.category_id), **_category_columns(category)),
        )

    def get(self, category_id: CategoryId) -> Category | None:
        model = self._session.get(CategoryModel, str(category_id), populate_existing=True)
        return _category_to_domain(model) if model is not None else None

    def list(self, include_inactive: bool = False) -> list[Category]:
        statement = select(CategoryModel).order_by(CategoryModel.sort_order, CategoryModel.name)
        if not include_inactive:
            statement = statement.where(CategoryModel.is_active.is_(True))
        return [_category_to_domain(model) for model in self._session.execute(statement).scalars()]

    def update(self, category: Category) -> None:
        execute_checked(
            self._session,
            update(CategoryModel)
            .where(CategoryModel.id == str(category.category_id))
            .values(**_category_columns(category))
            .execution_options(synchronize_session=False),
        )


class SqlAlchemyProductRepository(ProductRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, product: Product) -> None:
        insert_row(
            self._session,
            ProductModel(
                id=str(product.product_id),
                created_at=product.created_at,
                **_product_columns(product),
            ),
        )

    def get(self, product_id: ProductId) -> Product | None:
        model = self._session.get(ProductModel, str(product_id), populate_existing=True)
        return _product_to_domain(model) if model is not None else None

    def get_many(self, product_ids: list[ProductId]) -> dict[ProductId, Product]:
        if not product_ids:
            return {}
        statement = select(ProductModel).where(
            ProductModel.id.in_([str(product_id) for product_id in product_ids])
        )
        return {
            ProductId(model.id): _product_to_domain(model)
            for model in self._session.execute(statement).scalars()
        }

    def list(
        self,
        category_id: CategoryId | None = None,
        include_inactive: bool = False,
    ) -> list[Product]:
        statement = select(ProductModel).order_by(ProductModel.name, ProductModel.id)
        if category_id is not None:
            statement = statement.where(ProductModel.category_id == str(category_id))
        if not include_inactive:
            statement = statement.where(ProductModel.is_active.is_(True))
        return [_product_to_domain(model) for model in self._session.execute(statement).scalars()]

    def update(self, product: Product) -> None:
        self._session.execute(
            update(ProductModel)
            .where(ProductModel.id == str(product.product_id))
            .values(**_product_columns(product))
            .execution_options(synchronize_session=False)
        )


def _category_columns(category: Category) -> dict[str, object]:
    return {
        "name": category.name,
        "icon": category.icon,
        "sort_order": category.sort_order,
        "is_active": category.is_active,
    }


def _category_to_domain(model: CategoryModel) -> Category:
    return Category(
        category_id=CategoryId(model.id),
        name=model.name,
        icon=model.icon,
        sort_order=model.sort_order,
        is_active=model.is_active,
    )


def _product_columns(product: Product) -> dict[str, object]:
    return {
        "category_id": str(product.category_id),
        "name": product.name,
        "description": product.description,
        "base_price_cents": product.base_price.amount_cents,
        "currency": product.base_price.currency,
        "sizes": [
            {"name": size.name, "price_cents": size.price_modifier.amount_cents}
            for size in product.sizes
        ],
        "modifier_groups": [
            {
                "name": group.name,
                "min_select": group.min_select,
                "max_select": group.max_select,
                "modifiers": [
                    {
                        "id": modifier.modifier_id,
                        "name": modifier.name,
                        "price_cents": modifier.price_modifier.amount_cents,
                        "is_default": modifier.is_default,
                    }
                    for modifier in group.modifiers
                ],
            }
            for group in product.modifier_groups
        ],
        "is_active": product.is_active,
    }


def _group_to_domain(raw: dict[str, Any], currency: str) -> ModifierGroup:
    return ModifierGroup(
        name=raw["name"],
        min_select=raw.get("min_select", 0),
        max_select=raw.get("max_select", 1),
        modifiers=[
            Modifier(
                modifier_id=item["id"],
                name=item["name"],
                price_modifier=Money(amount_cents=item["price_cents"], currency=currency),
                is_default=item.get("is_default", False),
            )
            for item in raw.get("modifiers", [])
        ],
    )


def _product_to_domain(model: ProductModel) -> Product:
    currency = model.currency
    return Product(
        product_id=ProductId(model.id),
        category_id=CategoryId(model.category_id),
        name=model.name,
        description=model.description,
        base_price=Money(amount_cents=model.base_price_cents, currency=currency),
        created_at=aware(model.created_at),
        sizes=[
            ProductSize(
                name=item["name"],
                price_modifier=Money(amount_cents=item["price_cents"], currency=currency),
            )
            for item in model.sizes or []
        ],
        modifier_groups=[_group_to_domain(raw, currency) for raw in model.modifier_groups or []],
        is_active=model.is_active,
    )
