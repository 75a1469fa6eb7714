from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum

from rpos.application.ports.cache import CacheStore


class ConversationState(str, Enum):
    IDLE = "idle"
    REGISTER_NAME = "register_name"
    REGISTER_PHONE = "register_phone"
    REGISTER_ADDRESS = "register_address"
    AWAITING_NOTE = "awaiting_note"
    AWAITING_PAYMENT_METHOD = "awaiting_payment_method"


@dataclass
class CartItem:
    product_id: str
    name: str
    unit_price_cents: int
    quantity: int = 1
    modifier_ids: list[str] = field(default_factory=list)
    notes: str | None = None


@dataclass
class Conversation:
    chat_id: str
    state: ConversationState = ConversationState.IDLE
    cart: list[CartItem] = field(default_factory=list)
    draft_name: str | None = None
    draft_phone: str | None = None
    note_index: int | None = None

    @property
    def cart_total_cents(self) -> int:
        return sum(item.unit_price_cents * item.quantity for item in self.cart)

    def reset_cart(self) -> None:
        self.cart = []
        self.note_index = None
        if self.state in (
            ConversationState.AWAITING_NOTE,
            ConversationState.AWAITING_PAYMENT_METHOD,
        ):
            self.state = ConversationState.IDLE

    def to_json(self) -> str:
        payload = asdict(self)
        payload["state"] = self.state.value
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> Conversation:
        payload = json.loads(raw)
        return cls(
            chat_id=str(payload["chat_id"]),
            state=ConversationState(payload.get("state", ConversationState.IDLE.value)),
            cart=[CartItem(**item) for item in payload.get("cart", [])],
            draft_name=payload.get("draft_name"),
            draft_phone=payload.get("draft_phone"),
            note_index=payload.get("note_index"),
        )


class ConversationStore:
    """Per-chat bot state kept in the cache with a sliding TTL."""

    def __init__(self, cache: CacheStore, ttl_seconds: int = 2 * 60 * 60) -> None:
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    def load(self, chat_id: str) -> Conversation:
        raw = self._cache.get(_key(chat_id))
        if raw is None:
            return Conversation(chat_id=chat_id)
        try:
            return Conversation.from_json(raw)
        except (ValueError, KeyError, TypeError):
            # unreadable state starts over
            return Conversation(chat_id=chat_id)

    def save(self, conversation: Conversation) -> None:
        self._cache.set(_key(conversation.chat_id), conversation.to_json(), self._ttl_seconds)

    def clear(self, chat_id: str) -> None:
        self._cache.delete(_key(chat_id))


def _key(chat_id: str) -> str:
    return f"telegram:conversation:{chat_id}"
