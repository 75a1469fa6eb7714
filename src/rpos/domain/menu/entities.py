from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from rpos.domain.common.ids import CategoryId, ProductId
from rpos.domain.common.money import Money
from rpos.domain.order.entities import SelectedModifier, SelectedSize


@dataclass(frozen=True)
class Category:
    category_id: CategoryId
    name: str
    icon: str
    sort_order: int
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")


@dataclass(frozen=True)
class ProductSize:
    name: str
    price_modifier: Money


@dataclass(frozen=True)
class Modifier:
    modifier_id: str
    name: str
    price_modifier: Money
    is_default: bool = False


@dataclass(frozen=True)
class ModifierGroup:
    name: str
    modifiers: list[Modifier] = field(default_factory=list)
    min_select: int = 0
    max_select: int = 1

    def __post_init__(self) -> None:
        if self.min_select < 0 or self.max_select < self.min_select:
            raise ValueError("modifier group requires 0 <= min_select <= max_select")


@dataclass(frozen=True)
class PricedSelection:
    unit_price: Money
    size: SelectedSize | None
    modifiers: tuple[SelectedModifier, ...]


@dataclass(frozen=True)
class Product:
    product_id: ProductId
    category_id: CategoryId
    name: str
    description: str
    base_price: Money
    created_at: datetime
    sizes: list[ProductSize] = field(default_factory=list)
    modifier_groups: list[ModifierGroup] = field(default_factory=list)
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")

    def price_for(
        self,
        size_name: str | None = None,
        modifier_ids: list[str] | None = None,
    ) -> PricedSelection:
        unit_cents = self.base_price.amount_cents
        currency = self.base_price.currency

        selected_size: SelectedSize | None = None
        if size_name is not None:
            size = next((item for item in self.sizes if item.name == size_name), None)
            if size is None:
                raise PricingError(f"product {self.name} has no size {size_name}")
            selected_size = SelectedSize(name=size.name, price_modifier=size.price_modifier)
            unit_cents += size.price_modifier.amount_cents

        wanted = list(dict.fromkeys(modifier_ids or []))
        selected: list[SelectedModifier] = []
        for group in self.modifier_groups:
            chosen = [modifier for modifier in group.modifiers if modifier.modifier_id in wanted]
            if len(chosen) < group.min_select or len(chosen) > group.max_select:
                raise PricingError(
                    f"{group.name} requires between {group.min_select} and "
                    f"{group.max_select} selections"
                )
            for modifier in chosen:
                wanted.remove(modifier.modifier_id)
                unit_cents += modifier.price_modifier.amount_cents
                selected.append(
                    SelectedModifier(
                        modifier_id=modifier.modifier_id,
                        name=modifier.name,
                        price_modifier=modifier.price_modifier,
                    )
                )
        if wanted:
            raise PricingError(f"unknown modifiers for {self.name}: {', '.join(wanted)}")

        return PricedSelection(
            unit_price=Money(amount_cents=unit_cents, currency=currency),
            size=selected_size,
            modifiers=tuple(selected),
        )


class PricingError(Exception):
    pass
