from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from rpos.application.ports.repositories import CustomerRepository, UserRepository
from rpos.domain.common.ids import CustomerId, UserId
from rpos.domain.customer.entities import Customer
from rpos.domain.user.entities import User, UserRole
from rpos.infrastructure.db.models.customer import CustomerModel
from rpos.infrastructure.db.models.user import UserModel
from rpos.infrastructure.db.repositories.common import (
    aware,
    aware_or_none,
    execute_checked,
    insert_row,
)


class SqlAlchemyCustomerRepository(CustomerRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, customer: Customer) -> None:
        insert_row(
            self._session,
            CustomerModel(
                id=str(customer.customer_id),
                created_at=customer.created_at,
                **_customer_columns(customer),
            ),
        )

    def get(self, customer_id: CustomerId) -> Customer | None:
        model = self._session.get(CustomerModel, str(customer_id), populate_existing=True)
        return _customer_to_domain(model) if model is not None else None

    def get_by_phone(self, phone: str) -> Customer | None:
        return self._first(CustomerModel.phone == phone)

    def get_by_telegram_chat_id(self, chat_id: str) -> Customer | None:
        return self._first(CustomerModel.telegram_chat_id == chat_id)

    def list(self) -> list[Customer]:
        statement = select(CustomerModel).order_by(CustomerModel.name, CustomerModel.id)
        return [_customer_to_domain(model) for model in self._session.execute(statement).scalars()]

    def update(self, customer: Customer) -> None:
        execute_checked(
            self._session,
            update(CustomerModel)
            .where(CustomerModel.id == str(customer.customer_id))
            .values(**_customer_columns(customer))
            .execution_options(synchronize_session=False),
        )

    def _first(self, criterion: object) -> Customer | None:
        model = self._session.execute(
            select(CustomerModel).where(criterion).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return _customer_to_domain(model) if model is not None else None


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, user: User) -> None:
        insert_row(
            self._session,
            UserModel(
                id=str(user.user_id),
                name=user.name,
                pin=user.pin,
                role=user.role.value,
                is_active=user.is_active,
                created_at=user.created_at,
            ),
        )

    def get(self, user_id: UserId) -> User | None:
        model = self._session.get(UserModel, str(user_id), populate_existing=True)
        return _user_to_domain(model) if model is not None else None

    def get_by_pin(self, pin: str) -> User | None:
        model = self._session.execute(
            select(UserModel).where(UserModel.pin == pin)
        ).scalar_one_or_none()
        return _user_to_domain(model) if model is not None else None

    def list(self, include_inactive: bool = False) -> list[User]:
        statement = select(UserModel).order_by(UserModel.name, UserModel.id)
        if not include_inactive:
            statement = statement.where(UserModel.is_active.is_(True))
        return [_user_to_domain(model) for model in self._session.execute(statement).scalars()]

    def update(self, user: User) -> None:
        execute_checked(
            self._session,
            update(UserModel)
            .where(UserModel.id == str(user.user_id))
            .values(name=user.name, pin=user.pin, role=user.role.value, is_active=user.is_active)
            .execution_options(synchronize_session=False),
        )


def _customer_columns(customer: Customer) -> dict[str, object]:
    return {
        "name": customer.name,
        "phone": customer.phone,
        "address": customer.address,
        "telegram_chat_id": customer.telegram_chat_id,
        "notes": customer.notes,
        "last_order_at": customer.last_order_at,
    }


def _customer_to_domain(model: CustomerModel) -> Customer:
    return Customer(
        customer_id=CustomerId(model.id),
        name=model.name,
        phone=model.phone,
        address=model.address,
        created_at=aware(model.created_at),
        telegram_chat_id=model.telegram_chat_id,
        notes=model.notes,
        last_order_at=aware_or_none(model.last_order_at),
    )


def _user_to_domain(model: UserModel) -> User:
    return User(
        user_id=UserId(model.id),
        name=model.name,
        pin=model.pin,
        role=UserRole(model.role),
        is_active=model.is_active,
        created_at=aware(model.created_at),
    )
