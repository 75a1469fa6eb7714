from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from rpos.domain.cash.entities import MovementType
from rpos.domain.order.entities import OrderChannel, OrderOrigin, OrderStatus, PaymentMethod
from rpos.domain.user.entities import UserRole


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class PlaceOrderLineRequest(CamelBaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    size: str | None = None
    modifier_ids: list[str] = Field(default_factory=list)
    notes: str | None = None


class PlaceOrderRequest(CamelBaseModel):
    channel: OrderChannel
    lines: list[PlaceOrderLineRequest] = Field(min_length=1)
    table_id: str | None = None
    customer_id: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    discount_cents: int = Field(default=0, ge=0)
    notes: str | None = None
    origin: OrderOrigin = OrderOrigin.POS
    payment_method: PaymentMethod | None = None


class PaymentRequest(CamelBaseModel):
    method: PaymentMethod
    tendered_cents: int | None = Field(default=None, ge=0)


class ChangeOrderStatusRequest(CamelBaseModel):
    status: OrderStatus
    payment: PaymentRequest | None = None


class ConfirmPaymentRequest(CamelBaseModel):
    method: PaymentMethod | None = None
    tendered_cents: int | None = Field(default=None, ge=0)


class OpenCashSessionRequest(CamelBaseModel):
    user_id: str
    opening_amount_cents: int = Field(ge=0)


class CloseCashSessionRequest(CamelBaseModel):
    user_id: str
    actual_amount_cents: int = Field(ge=0)
    notes: str | None = None


class CashMovementRequest(CamelBaseModel):
    user_id: str
    type: MovementType
    amount_cents: int = Field(gt=0)
    reason: str = Field(min_length=1)


class CategoryRequest(CamelBaseModel):
    name: str = Field(min_length=1)
    icon: str = ""
    sort_order: int = 0
    is_active: bool = True


class ProductSizeRequest(CamelBaseModel):
    name: str = Field(min_length=1)
    price_modifier_cents: int = Field(default=0, ge=0)


class ModifierRequest(CamelBaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price_modifier_cents: int = Field(default=0, ge=0)
    is_default: bool = False


class ModifierGroupRequest(CamelBaseModel):
    name: str = Field(min_length=1)
    min_select: int = Field(default=0, ge=0)
    max_select: int = Field(default=1, ge=0)
    modifiers: list[ModifierRequest] = Field(default_factory=list)


class ProductRequest(CamelBaseModel):
    category_id: str
    name: str = Field(min_length=1)
    description: str = ""
    base_price_cents: int = Field(ge=0)
    sizes: list[ProductSizeRequest] = Field(default_factory=list)
    modifier_groups: list[ModifierGroupRequest] = Field(default_factory=list)
    is_active: bool = True


class CustomerRequest(CamelBaseModel):
    name: str = Field(min_length=1)
    phone: str
    address: str = ""
    notes: str | None = None
    telegram_chat_id: str | None = None


class CustomerUpdateRequest(CamelBaseModel):
    name: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


class UserRequest(CamelBaseModel):
    name: str = Field(min_length=1)
    pin: str
    role: UserRole
    is_active: bool = True


class UserUpdateRequest(CamelBaseModel):
    name: str | None = None
    pin: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None


class LoginRequest(CamelBaseModel):
    pin: str


class TableRequest(CamelBaseModel):
    number: int = Field(ge=1)
    name: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    position_x: int = 0
    position_y: int = 0


class TableUpdateRequest(CamelBaseModel):
    name: str | None = None
    capacity: int | None = Field(default=None, ge=1)
    position_x: int | None = None
    position_y: int | None = None


class SeatTableRequest(CamelBaseModel):
    guests: int = Field(ge=1)
