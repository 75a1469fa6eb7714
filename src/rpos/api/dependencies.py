from __future__ import annotations

from functools import lru_cache

from opentelemetry import trace

from rpos.api.middleware.request_id import get_request_id
from rpos.application.ports.notifier import CustomerNotifier, NullCustomerNotifier
from rpos.application.use_cases.context import BusinessSettings, TraceContext
from rpos.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork
from rpos.infrastructure.messaging.redis_publisher import RedisEventPublisher
from rpos.infrastructure.settings import load_business_settings, telegram_bot_token
from rpos.infrastructure.telegram.client import TelegramClient
from rpos.infrastructure.telegram.notifier import TelegramCustomerNotifier


def current_trace_context() -> TraceContext:
    span_context = trace.get_current_span().get_span_context()
    trace_id = format(span_context.trace_id, "032x") if span_context.is_valid else None
    return TraceContext(trace_id=trace_id, request_id=get_request_id())


@lru_cache(maxsize=1)
def business_settings() -> BusinessSettings:
    return load_business_settings()


def unit_of_work() -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(utc_offset_hours=business_settings().utc_offset_hours)


def event_publisher() -> RedisEventPublisher:
    return RedisEventPublisher()


@lru_cache(maxsize=1)
def telegram_client() -> TelegramClient | None:
    token = telegram_bot_token()
    if token is None:
        return None
    return TelegramClient(token)


@lru_cache(maxsize=1)
def customer_notifier() -> CustomerNotifier:
    client = telegram_client()
    if client is None:
        return NullCustomerNotifier()
    return TelegramCustomerNotifier(client)
