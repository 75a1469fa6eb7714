from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class SelectedSizeResponse(BaseModel):
    name: str
    priceModifier: MoneyResponse


class SelectedModifierResponse(BaseModel):
    modifierId: str
    name: str
    priceModifier: MoneyResponse


class OrderLineResponse(BaseModel):
    lineId: str
    productId: str
    name: str
    quantity: int
    unitPrice: MoneyResponse
    lineTotal: MoneyResponse
    notes: str | None = None
    size: SelectedSizeResponse | None = None
    modifiers: list[SelectedModifierResponse] = Field(default_factory=list)
    status: str


class OrderResponse(BaseModel):
    orderId: str
    orderNumber: str
    channel: str
    origin: str
    status: str
    tableId: str | None = None
    tableName: str | None = None
    customerId: str | None = None
    customerName: str | None = None
    customerPhone: str | None = None
    customerAddress: str | None = None
    notes: str | None = None
    lines: list[OrderLineResponse] = Field(default_factory=list)
    subtotal: MoneyResponse
    discount: MoneyResponse
    tax: MoneyResponse
    total: MoneyResponse
    paymentStatus: str
    paymentMethod: str | None = None
    paidAmount: MoneyResponse | None = None
    changeGiven: MoneyResponse | None = None
    version: int
    createdAt: datetime
    confirmedAt: datetime | None = None
    readyAt: datetime | None = None
    completedAt: datetime | None = None
    cancelledAt: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse] = Field(default_factory=list)


class KitchenQueueResponse(BaseModel):
    orders: list[OrderResponse] = Field(default_factory=list)
    nextCursor: str | None = None


class TableResponse(BaseModel):
    tableId: str
    number: int
    name: str
    capacity: int
    status: str
    guests: int | None = None
    currentOrderId: str | None = None
    positionX: int
    positionY: int


class TableListResponse(BaseModel):
    tables: list[TableResponse] = Field(default_factory=list)


class CashSessionResponse(BaseModel):
    sessionId: str
    userId: str
    userName: str
    status: str
    currency: str
    openingAmountCents: int
    cashSalesCents: int
    cardSalesCents: int
    transferSalesCents: int
    nequiSalesCents: int
    daviplataSalesCents: int
    totalSalesCents: int
    ordersCount: int
    cashInCents: int
    cashOutCents: int
    expectedCashCents: int
    openedAt: datetime
    closedAt: datetime | None = None
    closedByUserId: str | None = None
    actualAmountCents: int | None = None
    expectedAmountCents: int | None = None
    differenceCents: int | None = None
    notes: str | None = None


class CashSessionListResponse(BaseModel):
    sessions: list[CashSessionResponse] = Field(default_factory=list)


class CashMovementResponse(BaseModel):
    movementId: str
    sessionId: str
    type: str
    amountCents: int
    reason: str
    userId: str
    userName: str
    createdAt: datetime


class CashMovementListResponse(BaseModel):
    movements: list[CashMovementResponse] = Field(default_factory=list)


class CategoryResponse(BaseModel):
    categoryId: str
    name: str
    icon: str
    sortOrder: int
    isActive: bool


class CategoryListResponse(BaseModel):
    categories: list[CategoryResponse] = Field(default_factory=list)


class ProductSizeResponse(BaseModel):
    name: str
    priceModifier: MoneyResponse


class ModifierResponse(BaseModel):
    modifierId: str
    name: str
    priceModifier: MoneyResponse
    isDefault: bool


class ModifierGroupResponse(BaseModel):
    name: str
    minSelect: int
    maxSelect: int
    modifiers: list[ModifierResponse] = Field(default_factory=list)


class ProductResponse(BaseModel):
    productId: str
    categoryId: str
    name: str
    description: str
    basePrice: MoneyResponse
    sizes: list[ProductSizeResponse] = Field(default_factory=list)
    modifierGroups: list[ModifierGroupResponse] = Field(default_factory=list)
    isActive: bool
    createdAt: datetime


class ProductListResponse(BaseModel):
    products: list[ProductResponse] = Field(default_factory=list)


class CustomerResponse(BaseModel):
    customerId: str
    name: str
    phone: str
    address: str
    telegramChatId: str | None = None
    notes: str | None = None
    createdAt: datetime
    lastOrderAt: datetime | None = None


class CustomerListResponse(BaseModel):
    customers: list[CustomerResponse] = Field(default_factory=list)


class UserResponse(BaseModel):
    userId: str
    name: str
    role: str
    isActive: bool
    permissions: list[str] = Field(default_factory=list)
    createdAt: datetime


class UserListResponse(BaseModel):
    users: list[UserResponse] = Field(default_factory=list)


class HourlySalesResponse(BaseModel):
    hour: int
    totalCents: int
    orders: int


class MethodSalesResponse(BaseModel):
    method: str
    totalCents: int
    orders: int


class CategorySalesResponse(BaseModel):
    category: str
    totalCents: int
    quantity: int


class TopProductResponse(BaseModel):
    productId: str
    name: str
    quantity: int
    totalCents: int


class SalesReportResponse(BaseModel):
    period: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    previousPeriodSalesCents: int | None = None
    currency: str
    totalSalesCents: int
    ordersCount: int
    averageTicketCents: int
    byHour: list[HourlySalesResponse] = Field(default_factory=list)
    byPaymentMethod: list[MethodSalesResponse] = Field(default_factory=list)
    byCategory: list[CategorySalesResponse] = Field(default_factory=list)
    topProducts: list[TopProductResponse] = Field(default_factory=list)


class BusinessConfigResponse(BaseModel):
    businessName: str
    currency: str
    taxRateBps: int
    utcOffsetHours: int
    paymentMethods: list[str] = Field(default_factory=list)
    orderChannels: list[str] = Field(default_factory=list)


class ActiveCashSessionResponse(BaseModel):
    session: CashSessionResponse | None = None
