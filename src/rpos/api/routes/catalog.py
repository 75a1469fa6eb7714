from __future__ import annotations

from fastapi import APIRouter, Query, status

from rpos.api.dependencies import business_settings, unit_of_work
from rpos.application.dto.requests import CategoryRequest, ProductRequest
from rpos.application.dto.responses import (
    CategoryListResponse,
    CategoryResponse,
    ProductListResponse,
    ProductResponse,
)
from rpos.application.use_cases.catalog import (
    CreateCategory,
    CreateProduct,
    DeactivateProduct,
    GetProduct,
    ListCategories,
    ListProducts,
    UpdateCategory,
    UpdateProduct,
)
from rpos.domain.common.ids import CategoryId, ProductId

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(
    include_inactive: bool = Query(default=False, alias="includeInactive"),
) -> CategoryListResponse:
    return ListCategories(unit_of_work()).execute(include_inactive=include_inactive)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(request_dto: CategoryRequest) -> CategoryResponse:
    return CreateCategory(unit_of_work()).execute(request_dto)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(category_id: str, request_dto: CategoryRequest) -> CategoryResponse:
    return UpdateCategory(unit_of_work()).execute(CategoryId(category_id), request_dto)


@router.get("/products", response_model=ProductListResponse)
def list_products(
    category_id: str | None = Query(default=None, alias="categoryId"),
    include_inactive: bool = Query(default=False, alias="includeInactive"),
) -> ProductListResponse:
    return ListProducts(unit_of_work()).execute(
        category_id=CategoryId(category_id) if category_id else None,
        include_inactive=include_inactive,
    )


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(request_dto: ProductRequest) -> ProductResponse:
    return CreateProduct(unit_of_work(), business_settings()).execute(request_dto)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: str) -> ProductResponse:
    return GetProduct(unit_of_work()).execute(ProductId(product_id))


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(product_id: str, request_dto: ProductRequest) -> ProductResponse:
    return UpdateProduct(unit_of_work(), business_settings()).execute(
        ProductId(product_id), request_dto
    )


@router.delete("/products/{product_id}", response_model=ProductResponse)
def deactivate_product(product_id: str) -> ProductResponse:
    return DeactivateProduct(unit_of_work()).execute(ProductId(product_id))
