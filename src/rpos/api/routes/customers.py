from __future__ import annotations

from fastapi import APIRouter, Query, status

from rpos.api.dependencies import unit_of_work
from rpos.application.dto.requests import CustomerRequest, CustomerUpdateRequest
from rpos.application.dto.responses import CustomerListResponse, CustomerResponse
from rpos.application.use_cases.customers import (
    CreateCustomer,
    GetCustomer,
    ListCustomers,
    UpdateCustomer,
)
from rpos.domain.common.ids import CustomerId

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("", response_model=CustomerListResponse)
def list_customers(
    phone: str | None = None,
    telegram_chat_id: str | None = Query(default=None, alias="telegramChatId"),
) -> CustomerListResponse:
    return ListCustomers(unit_of_work()).execute(phone=phone, telegram_chat_id=telegram_chat_id)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(request_dto: CustomerRequest) -> CustomerResponse:
    return CreateCustomer(unit_of_work()).execute(request_dto)


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: str) -> CustomerResponse:
    return GetCustomer(unit_of_work()).execute(CustomerId(customer_id))


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(customer_id: str, request_dto: CustomerUpdateRequest) -> CustomerResponse:
    return UpdateCustomer(unit_of_work()).execute(CustomerId(customer_id), request_dto)
