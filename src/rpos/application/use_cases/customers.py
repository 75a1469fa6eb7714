from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

from rpos.application.dto.requests import CustomerRequest, CustomerUpdateRequest
from rpos.application.dto.responses import CustomerListResponse, CustomerResponse
from rpos.application.errors import ConflictError, ValidationError
from rpos.application.mappers.customer_mapper import to_customer_response
from rpos.application.ports.repositories import DuplicateEntryError, UnitOfWork
from rpos.application.use_cases.place_order import CustomerNotFoundError
from rpos.domain.common.ids import CustomerId
from rpos.domain.customer.entities import Customer, normalize_phone

logger = logging.getLogger(__name__)


class InvalidCustomerError(ValidationError):
    code = "INVALID_CUSTOMER"


class CustomerPhoneTakenError(ConflictError):
    code = "CUSTOMER_PHONE_TAKEN"


def _phone(raw: str) -> str:
    try:
        return normalize_phone(raw)
    except ValueError as exc:
        raise InvalidCustomerError(str(exc), details={"phone": raw}) from exc


class ListCustomers:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(
        self,
        phone: str | None = None,
        telegram_chat_id: str | None = None,
    ) -> CustomerListResponse:
        with self._uow as uow:
            if phone is not None:
                found = uow.customers.get_by_phone(_phone(phone))
                customers = [found] if found else []
            elif telegram_chat_id is not None:
                found = uow.customers.get_by_telegram_chat_id(telegram_chat_id)
                customers = [found] if found else []
            else:
                customers = uow.customers.list()
        return CustomerListResponse(
            customers=[to_customer_response(customer) for customer in customers]
        )


class GetCustomer:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, customer_id: CustomerId) -> CustomerResponse:
        with self._uow as uow:
            customer = uow.customers.get(customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"customer {customer_id} not found")
        return to_customer_response(customer)


class FindTelegramCustomer:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, chat_id: str) -> CustomerResponse | None:
        with self._uow as uow:
            customer = uow.customers.get_by_telegram_chat_id(chat_id)
        return to_customer_response(customer) if customer else None


class CreateCustomer:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, request_dto: CustomerRequest) -> CustomerResponse:
        phone = _phone(request_dto.phone)
        try:
            customer = Customer(
                customer_id=CustomerId(f"cus_{uuid4().hex[:12]}"),
                name=request_dto.name,
                phone=phone,
                address=request_dto.address,
                created_at=datetime.now(timezone.utc),
                telegram_chat_id=request_dto.telegram_chat_id,
                notes=request_dto.notes,
            )
        except ValueError as exc:
            raise InvalidCustomerError(str(exc)) from exc
        try:
            with self._uow as uow:
                if uow.customers.get_by_phone(phone) is not None:
                    raise CustomerPhoneTakenError(
                        f"a customer with phone {phone} already exists",
                        details={"phone": phone},
                    )
                uow.customers.add(customer)
                uow.commit()
        except DuplicateEntryError as exc:
            raise CustomerPhoneTakenError(
                f"a customer with phone {phone} already exists", details={"phone": phone}
            ) from exc
        return to_customer_response(customer)


class RegisterTelegramCustomer:
    """Creates the customer for a Telegram chat, or links the chat to a known phone."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, chat_id: str, name: str, phone: str, address: str) -> CustomerResponse:
        normalized = _phone(phone)
        with self._uow as uow:
            existing = uow.customers.get_by_phone(normalized)
            if existing is not None:
                customer = replace(
                    existing,
                    telegram_chat_id=chat_id,
                    name=name or existing.name,
                    address=address or existing.address,
                )
                uow.customers.update(customer)
            else:
                try:
                    customer = Customer(
                        customer_id=CustomerId(f"cus_{uuid4().hex[:12]}"),
                        name=name,
                        phone=normalized,
                        address=address,
                        created_at=datetime.now(timezone.utc),
                        telegram_chat_id=chat_id,
                    )
                except ValueError as exc:
                    raise InvalidCustomerError(str(exc)) from exc
                uow.customers.add(customer)
            uow.commit()
        logger.info(
            "telegram customer registered",
            extra={"chat_id": chat_id, "customer_id": str(customer.customer_id)},
        )
        return to_customer_response(customer)


class UpdateCustomer:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(
        self,
        customer_id: CustomerId,
        request_dto: CustomerUpdateRequest,
    ) -> CustomerResponse:
        changes = request_dto.model_dump(exclude_none=True)
        if "phone" in changes:
            changes["phone"] = _phone(changes["phone"])
        try:
            with self._uow as uow:
                customer = uow.customers.get(customer_id)
                if customer is None:
                    raise CustomerNotFoundError(f"customer {customer_id} not found")
                if "phone" in changes and changes["phone"] != customer.phone:
                    if uow.customers.get_by_phone(changes["phone"]) is not None:
                        raise CustomerPhoneTakenError(
                            f"a customer with phone {changes['phone']} already exists",
                            details={"phone": changes["phone"]},
                        )
                try:
                    updated = replace(customer, **changes)
                except ValueError as exc:
                    raise InvalidCustomerError(str(exc)) from exc
                uow.customers.update(updated)
                uow.commit()
        except DuplicateEntryError as exc:
            raise CustomerPhoneTakenError("customer phone already exists") from exc
        return to_customer_response(updated)
