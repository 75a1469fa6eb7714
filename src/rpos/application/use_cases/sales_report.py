from __future__ import annotations

import calendar
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone

from rpos.application.dto.responses import (
    CategorySalesResponse,
    HourlySalesResponse,
    MethodSalesResponse,
    SalesReportResponse,
    TopProductResponse,
)
from rpos.application.errors import ValidationError
from rpos.application.ports.repositories import OrderListFilter, UnitOfWork
from rpos.application.use_cases.context import BusinessSettings
from rpos.domain.order.entities import Order, OrderStatus

_SOLD_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.DELIVERED})
_UNKNOWN_CATEGORY = "Otros"
_TOP_PRODUCTS = 5
PERIODS = ("today", "week", "month", "all")


class InvalidReportRangeError(ValidationError):
    code = "INVALID_REPORT_RANGE"


def as_utc(moment: datetime | None, utc_offset_hours: int) -> datetime | None:
    """Naive datetimes are read as business-local wall time."""
    if moment is None or moment.tzinfo is not None:
        return moment
    return (moment - timedelta(hours=utc_offset_hours)).replace(tzinfo=timezone.utc)


def _month_before(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_period(
    period: str,
    now: datetime,
    utc_offset_hours: int,
) -> tuple[datetime | None, datetime | None]:
    offset = timedelta(hours=utc_offset_hours)
    local = now + offset
    start_of_day = local.replace(hour=0, minute=0, second=0, microsecond=0) - offset
    if period == "today":
        return start_of_day, None
    if period == "week":
        return start_of_day - timedelta(days=7), None
    if period == "month":
        return _month_before(start_of_day), None
    if period == "all":
        return None, None
    raise InvalidReportRangeError(f"unknown period {period}", details={"periods": list(PERIODS)})


class SalesReport:
    def __init__(self, uow: UnitOfWork, settings: BusinessSettings) -> None:
        self._uow = uow
        self._settings = settings

    def execute(
        self,
        period: str | None = "today",
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> SalesReportResponse:
        current = now or datetime.now(timezone.utc)
        start = as_utc(start, self._settings.utc_offset_hours)
        end = as_utc(end, self._settings.utc_offset_hours)
        if start is None and end is None and period is not None:
            start, end = resolve_period(period, current, self._settings.utc_offset_hours)
        else:
            period = None
        if start is not None and end is not None and end <= start:
            raise InvalidReportRangeError("end must be after start")

        with self._uow as uow:
            orders = self._sold(uow, start, end)
            previous = None
            if period == "today" and start is not None:
                previous = self._sold(uow, start - timedelta(days=1), start)
            category_of = {
                product.product_id: product.category_id
                for product in uow.products.list(include_inactive=True)
            }
            category_names = {
                category.category_id: category.name
                for category in uow.categories.list(include_inactive=True)
            }

        total = sum(order.total.amount_cents for order in orders)
        by_hour: dict[int, list[int]] = defaultdict(lambda: [0, 0])
        by_method: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        by_category: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        quantities: Counter[str] = Counter()
        product_totals: Counter[str] = Counter()
        product_names: dict[str, str] = {}
        offset = timedelta(hours=self._settings.utc_offset_hours)

        for order in orders:
            stamp = (order.completed_at or order.created_at) + offset
            by_hour[stamp.hour][0] += order.total.amount_cents
            by_hour[stamp.hour][1] += 1
            method = order.payment_method.value if order.payment_method else "unknown"
            by_method[method][0] += order.total.amount_cents
            by_method[method][1] += 1
            for line in order.lines:
                category_id = category_of.get(line.product_id)
                category = _UNKNOWN_CATEGORY
                if category_id is not None:
                    category = category_names.get(category_id, _UNKNOWN_CATEGORY)
                by_category[category][0] += line.line_total.amount_cents
                by_category[category][1] += line.quantity
                quantities[str(line.product_id)] += line.quantity
                product_totals[str(line.product_id)] += line.line_total.amount_cents
                product_names.setdefault(str(line.product_id), line.name)

        top = sorted(
            quantities,
            key=lambda product_id: (-quantities[product_id], -product_totals[product_id]),
        )[:_TOP_PRODUCTS]

        return SalesReportResponse(
            period=period,
            start=start,
            end=end,
            previousPeriodSalesCents=(
                sum(order.total.amount_cents for order in previous)
                if previous is not None
                else None
            ),
            currency=self._settings.currency,
            totalSalesCents=total,
            ordersCount=len(orders),
            averageTicketCents=total // len(orders) if orders else 0,
            byHour=[
                HourlySalesResponse(hour=hour, totalCents=values[0], orders=values[1])
                for hour, values in sorted(by_hour.items())
            ],
            byPaymentMethod=[
                MethodSalesResponse(method=method, totalCents=values[0], orders=values[1])
                for method, values in sorted(by_method.items(), key=lambda item: -item[1][0])
            ],
            byCategory=[
                CategorySalesResponse(category=name, totalCents=values[0], quantity=values[1])
                for name, values in sorted(by_category.items(), key=lambda item: -item[1][0])
            ],
            topProducts=[
                TopProductResponse(
                    productId=product_id,
                    name=product_names[product_id],
                    quantity=quantities[product_id],
                    totalCents=product_totals[product_id],
                )
                for product_id in top
            ],
        )

    def _sold(
        self,
        uow: UnitOfWork,
        start: datetime | None,
        end: datetime | None,
    ) -> list[Order]:
        orders = uow.orders.list(
            OrderListFilter(statuses=_SOLD_STATUSES, completed_from=start, completed_to=end)
        )
        return [order for order in orders if order.is_paid]
