from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from rpos.domain.common.ids import UserId

_PIN_PATTERN = re.compile(r"^\d{4}$")


class UserRole(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"
    WAITER = "waiter"
    DELIVERY = "delivery"


class Permission(str, Enum):
    TAKE_ORDERS = "take_orders"
    PROCESS_PAYMENTS = "process_payments"
    MANAGE_CASH = "manage_cash"
    VIEW_REPORTS = "view_reports"
    MANAGE_MENU = "manage_menu"
    MANAGE_USERS = "manage_users"
    DELIVER_ORDERS = "deliver_orders"


ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.ADMIN: frozenset(Permission),
    UserRole.CASHIER: frozenset(
        {Permission.TAKE_ORDERS, Permission.PROCESS_PAYMENTS, Permission.MANAGE_CASH}
    ),
    UserRole.WAITER: frozenset({Permission.TAKE_ORDERS}),
    UserRole.DELIVERY: frozenset({Permission.PROCESS_PAYMENTS, Permission.DELIVER_ORDERS}),
}


def is_valid_pin(pin: str) -> bool:
    return bool(_PIN_PATTERN.match(pin))


@dataclass(frozen=True)
class User:
    user_id: UserId
    name: str
    pin: str
    role: UserRole
    is_active: bool
    created_at: datetime

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")
        if not is_valid_pin(self.pin):
            raise ValueError("pin must be exactly 4 digits")

    def can(self, permission: Permission) -> bool:
        return self.is_active and permission in ROLE_PERMISSIONS[self.role]
