from __future__ import annotations

from rpos.application.dto.responses import (
    CategoryResponse,
    ModifierGroupResponse,
    ModifierResponse,
    ProductResponse,
    ProductSizeResponse,
)
from rpos.application.mappers.order_mapper import to_money_response
from rpos.domain.menu.entities import Category, Product


def to_category_response(category: Category) -> CategoryResponse:
    return CategoryResponse(
        categoryId=str(category.category_id),
        name=category.name,
        icon=category.icon,
        sortOrder=category.sort_order,
        isActive=category.is_active,
    )


def to_product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        productId=str(product.product_id),
        categoryId=str(product.category_id),
        name=product.name,
        description=product.description,
        basePrice=to_money_response(product.base_price),
        sizes=[
            ProductSizeResponse(
                name=size.name,
                priceModifier=to_money_response(size.price_modifier),
            )
            for size in product.sizes
        ],
        modifierGroups=[
            ModifierGroupResponse(
                name=group.name,
                minSelect=group.min_select,
                maxSelect=group.max_select,
                modifiers=[
                    ModifierResponse(
                        modifierId=modifier.modifier_id,
                        name=modifier.name,
                        priceModifier=to_money_response(modifier.price_modifier),
                        isDefault=modifier.is_default,
                    )
                    for modifier in group.modifiers
                ],
            )
            for group in product.modifier_groups
        ],
        isActive=product.is_active,
        createdAt=product.created_at,
    )
