from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter

from rpos.api.dependencies import business_settings, unit_of_work
from rpos.application.dto.responses import BusinessConfigResponse, SalesReportResponse
from rpos.application.use_cases.business_config import GetBusinessConfig
from rpos.application.use_cases.sales_report import SalesReport

router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/reports/sales", response_model=SalesReportResponse)
def sales_report(
    period: str | None = "today",
    start: datetime | None = None,
    end: datetime | None = None,
) -> SalesReportResponse:
    return SalesReport(unit_of_work(), business_settings()).execute(
        period=period, start=start, end=end
    )


@router.get("/config", response_model=BusinessConfigResponse)
def business_config() -> BusinessConfigResponse:
    return GetBusinessConfig(business_settings()).execute()
