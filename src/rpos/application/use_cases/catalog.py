from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

from rpos.application.dto.requests import CategoryRequest, ProductRequest
from rpos.application.dto.responses import (
    CategoryListResponse,
    CategoryResponse,
    ProductListResponse,
    ProductResponse,
)
from rpos.application.errors import ConflictError, NotFoundError, ValidationError
from rpos.application.mappers.menu_mapper import to_category_response, to_product_response
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.application.use_cases.context import BusinessSettings
from rpos.domain.common.ids import CategoryId, ProductId
from rpos.domain.common.money import Money
from rpos.domain.menu.entities import Category, Modifier, ModifierGroup, Product, ProductSize


class CategoryNotFoundError(NotFoundError):
    code = "CATEGORY_NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"


class CategoryNameTakenError(ConflictError):
    code = "CATEGORY_NAME_TAKEN"


class InvalidProductError(ValidationError):
    code = "INVALID_PRODUCT"


class ListCategories:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, include_inactive: bool = False) -> CategoryListResponse:
        with self._uow as uow:
            categories = uow.categories.list(include_inactive=include_inactive)
        return CategoryListResponse(
            categories=[to_category_response(category) for category in categories]
        )


class CreateCategory:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, request_dto: CategoryRequest) -> CategoryResponse:
        category = Category(
            category_id=CategoryId(f"cat_{uuid4().hex[:12]}"),
            name=request_dto.name,
            icon=request_dto.icon,
            sort_order=request_dto.sort_order,
            is_active=request_dto.is_active,
        )
        try:
            with self._uow as uow:
                uow.categories.add(category)
                uow.commit()
        except DuplicateEntryError as exc:
            raise CategoryNameTakenError(f"category {request_dto.name} already exists") from exc
        return to_category_response(category)


class UpdateCategory:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, category_id: CategoryId, request_dto: CategoryRequest) -> CategoryResponse:
        try:
            with self._uow as uow:
                category = uow.categories.get(category_id)
                if category is None:
                    raise CategoryNotFoundError(f"category {category_id} not found")
                updated = replace(
                    category,
                    name=request_dto.name,
                    icon=request_dto.icon,
                    sort_order=request_dto.sort_order,
                    is_active=request_dto.is_active,
                )
                uow.categories.update(updated)
                uow.commit()
        except DuplicateEntryError as exc:
            raise CategoryNameTakenError(f"category {request_dto.name} already exists") from exc
        return to_category_response(updated)


class ListProducts:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(
        self,
        category_id: CategoryId | None = None,
        include_inactive: bool = False,
    ) -> ProductListResponse:
        with self._uow as uow:
            products = uow.products.list(
                category_id=category_id,
                include_inactive=include_inactive,
            )
        return ProductListResponse(products=[to_product_response(product) for product in products])


class GetProduct:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, product_id: ProductId) -> ProductResponse:
        with self._uow as uow:
            product = uow.products.get(product_id)
        if product is None:
            raise ProductNotFoundError(f"product {product_id} not found")
        return to_product_response(product)


class _ProductWriter:
    def __init__(self, uow: UnitOfWork, settings: BusinessSettings) -> None:
        self._uow = uow
        self._settings = settings

    def _build(
        self,
        uow: UnitOfWork,
        product_id: ProductId,
        request_dto: ProductRequest,
        created_at: datetime,
    ) -> Product:
        if uow.categories.get(CategoryId(request_dto.category_id)) is None:
            raise InvalidProductError(f"category {request_dto.category_id} does not exist")
        currency = self._settings.currency
        try:
            return Product(
                product_id=product_id,
                category_id=CategoryId(request_dto.category_id),
                name=request_dto.name,
                description=request_dto.description,
                base_price=Money(amount_cents=request_dto.base_price_cents, currency=currency),
                created_at=created_at,
                sizes=[
                    ProductSize(
                        name=size.name,
                        price_modifier=Money(
                            amount_cents=size.price_modifier_cents, currency=currency
                        ),
                    )
                    for size in request_dto.sizes
                ],
                modifier_groups=[
                    ModifierGroup(
                        name=group.name,
                        min_select=group.min_select,
                        max_select=group.max_select,
                        modifiers=[
                            Modifier(
                                modifier_id=modifier.id,
                                name=modifier.name,
                                price_modifier=Money(
                                    amount_cents=modifier.price_modifier_cents,
                                    currency=currency,
                                ),
                                is_default=modifier.is_default,
                            )
                            for modifier in group.modifiers
                        ],
                    )
                    for group in request_dto.modifier_groups
                ],
                is_active=request_dto.is_active,
            )
        except ValueError as exc:
            raise InvalidProductError(str(exc)) from exc


class CreateProduct(_ProductWriter):
    def execute(self, request_dto: ProductRequest) -> ProductResponse:
        with self._uow as uow:
            product = self._build(
                uow,
                ProductId(f"prd_{uuid4().hex[:12]}"),
                request_dto,
                datetime.now(timezone.utc),
            )
            uow.products.add(product)
            uow.commit()
        return to_product_response(product)


class UpdateProduct(_ProductWriter):
    def execute(self, product_id: ProductId, request_dto: ProductRequest) -> ProductResponse:
        with self._uow as uow:
            current = uow.products.get(product_id)
            if current is None:
                raise ProductNotFoundError(f"product {product_id} not found")
            product = self._build(uow, product_id, request_dto, current.created_at)
            uow.products.update(product)
            uow.commit()
        return to_product_response(product)


class DeactivateProduct:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, product_id: ProductId) -> ProductResponse:
        with self._uow as uow:
            product = uow.products.get(product_id)
            if product is None:
                raise ProductNotFoundError(f"product {product_id} not found")
            updated = replace(product, is_active=False)
            uow.products.update(updated)
            uow.commit()
        return to_product_response(updated)
