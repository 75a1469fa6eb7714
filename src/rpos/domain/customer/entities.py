from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from rpos.domain.common.ids import CustomerId

_NON_DIGITS = re.compile(r"\D+")


def normalize_phone(raw: str) -> str:
    digits = _NON_DIGITS.sub("", raw)
    if not 7 <= len(digits) <= 15:
        raise ValueError("phone must contain between 7 and 15 digits")
    return digits


@dataclass(frozen=True)
class Customer:
    customer_id: CustomerId
    name: str
    phone: str
    address: str
    created_at: datetime
    telegram_chat_id: str | None = None
    notes: str | None = None
    last_order_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")
