from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from support.fakes import FakeUnitOfWork, seed_catalog

from rpos.application.dto.requests import (
    CategoryRequest,
    ModifierGroupRequest,
    ModifierRequest,
    ProductRequest,
    ProductSizeRequest,
)
from rpos.application.use_cases.catalog import (
    CategoryNameTakenError,
    CategoryNotFoundError,
    CreateCategory,
    CreateProduct,
    DeactivateProduct,
    GetProduct,
    InvalidProductError,
    ListCategories,
    ListProducts,
    ProductNotFoundError,
    UpdateCategory,
    UpdateProduct,
)
from rpos.application.use_cases.context import BusinessSettings
from rpos.domain.common.ids import CategoryId, ProductId


@pytest.fixture()
def uow() -> FakeUnitOfWork:
    unit = FakeUnitOfWork()
    seed_catalog(unit)
    return unit


def _salchipapa(**fields: object) -> ProductRequest:
    values: dict[str, object] = {
        "category_id": "cat_papas",
        "name": "Salchipapa",
        "base_price_cents": 12000,
        "sizes": [
            ProductSizeRequest(name="Personal"),
            ProductSizeRequest(name="Familiar", price_modifier_cents=8000),
        ],
        "modifier_groups": [
            ModifierGroupRequest(
                name="Salsas",
                max_select=2,
                modifiers=[
                    ModifierRequest(id="rosada", name="Rosada", is_default=True),
                    ModifierRequest(id="pina", name="Piña", price_modifier_cents=500),
                ],
            )
        ],
    }
    values.update(fields)
    return ProductRequest(**values)


def test_categories_are_sorted_and_filter_inactive(uow: FakeUnitOfWork) -> None:
    created = CreateCategory(uow).execute(
        CategoryRequest(name="Salchipapas", icon="🍟", sort_order=2)
    )
    UpdateCategory(uow).execute(
        CategoryId("cat_postres"), CategoryRequest(name="Postres", sort_order=5, is_active=False)
    )

    active = ListCategories(uow).execute().categories
    names = [category.name for category in active]
    assert "Postres" not in names
    assert names.index("Papas") < names.index("Salchipapas") < names.index("Bebidas")
    assert created.icon == "🍟"
    everything = ListCategories(uow).execute(include_inactive=True).categories
    assert "Postres" in [category.name for category in everything]


def test_category_names_are_unique(uow: FakeUnitOfWork) -> None:
    with pytest.raises(CategoryNameTakenError):
        CreateCategory(uow).execute(CategoryRequest(name="Bebidas"))
    with pytest.raises(CategoryNameTakenError):
        UpdateCategory(uow).execute(CategoryId("cat_papas"), CategoryRequest(name="Bebidas"))
    with pytest.raises(CategoryNotFoundError):
        UpdateCategory(uow).execute(CategoryId("cat_404"), CategoryRequest(name="Nueva"))


def test_create_product_with_sizes_and_modifiers(uow: FakeUnitOfWork) -> None:
    product = CreateProduct(uow, BusinessSettings()).execute(_salchipapa())

    assert product.basePrice.amountCents == 12000
    assert product.basePrice.currency == "COP"
    assert [size.name for size in product.sizes] == ["Personal", "Familiar"]
    group = product.modifierGroups[0]
    assert (group.minSelect, group.maxSelect) == (0, 2)
    assert [modifier.isDefault for modifier in group.modifiers] == [True, False]
    fetched = GetProduct(uow).execute(ProductId(product.productId))
    assert fetched.name == "Salchipapa"


def test_product_needs_existing_category_and_valid_groups(uow: FakeUnitOfWork) -> None:
    writer = CreateProduct(uow, BusinessSettings())
    with pytest.raises(InvalidProductError):
        writer.execute(_salchipapa(category_id="cat_404"))
    bad_group = ModifierGroupRequest(name="Salsas", min_select=2, max_select=1)
    with pytest.raises(InvalidProductError):
        writer.execute(_salchipapa(modifier_groups=[bad_group]))


def test_update_keeps_creation_time_and_deactivate_hides(uow: FakeUnitOfWork) -> None:
    product_id = ProductId("prd_papas")
    before = GetProduct(uow).execute(product_id)

    updated = UpdateProduct(uow, BusinessSettings()).execute(
        product_id,
        ProductRequest(category_id="cat_papas", name="Papas Rústicas", base_price_cents=9000),
    )
    assert updated.createdAt == before.createdAt
    assert updated.basePrice.amountCents == 9000

    DeactivateProduct(uow).execute(product_id)
    visible = ListProducts(uow).execute(category_id=CategoryId("cat_papas")).products
    assert visible == []
    hidden = ListProducts(uow).execute(category_id=CategoryId("cat_papas"), include_inactive=True)
    assert [product.isActive for product in hidden.products] == [False]


def test_missing_products(uow: FakeUnitOfWork) -> None:
    with pytest.raises(ProductNotFoundError):
        GetProduct(uow).execute(ProductId("prd_404"))
    with pytest.raises(ProductNotFoundError):
        DeactivateProduct(uow).execute(ProductId("prd_404"))
    with pytest.raises(ProductNotFoundError):
        UpdateProduct(uow, BusinessSettings()).execute(ProductId("prd_404"), _salchipapa())
