from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from rpos.api.dependencies import (
    business_settings,
    customer_notifier,
    event_publisher,
    telegram_client,
    unit_of_work,
)
from rpos.api.error_handling import register_exception_handlers
from rpos.api.middleware.request_id import RequestIDMiddleware
from rpos.api.routes.cash import router as cash_router
from rpos.api.routes.catalog import router as catalog_router
from rpos.api.routes.customers import router as customers_router
from rpos.api.routes.health import router as health_router
from rpos.api.routes.kitchen import router as kitchen_router
from rpos.api.routes.metrics import router as metrics_router
from rpos.api.routes.orders import router as orders_router
from rpos.api.routes.reports import router as reports_router
from rpos.api.routes.tables import router as tables_router
from rpos.api.routes.users import router as users_router
from rpos.bot.conversation import ConversationStore
from rpos.bot.handlers import BotDependencies, TelegramOrderBot
from rpos.bot.runner import run_polling
from rpos.infrastructure.cache.cache_store import RedisCacheStore
from rpos.infrastructure.observability.logging_config import configure_logging
from rpos.infrastructure.observability.otel import configure_otel
from rpos.infrastructure.settings import app_env, telegram_session_ttl_seconds
from rpos.infrastructure.telegram.notifier import TelegramCustomerNotifier

logger = logging.getLogger("rpos.api.access")

REQUEST_COUNT = Counter(
    "rpos_http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "rpos_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def _cors_allow_origins() -> list[str]:
    env = app_env()

    # Dev/test: unblock everything (no credentials allowed)
    if env in {"dev", "test"}:
        return ["*"]

    # Staging/prod: restrict to explicit allowlist
    default_value = "http://localhost:5173"
    raw_value = os.getenv("CORS_ALLOW_ORIGINS", default_value)
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        path = request.url.path
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            REQUEST_COUNT.labels(method=method, path=path, status_code="500").inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000)
            logger.exception(
                "request_error",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        # label by route template so ids do not blow up cardinality
        route = request.scope.get("route")
        path = getattr(route, "path", path)
        REQUEST_COUNT.labels(method=method, path=path, status_code=str(response.status_code)).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000)
        logger.info(
            "request_complete",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = telegram_client()
    bot_task: asyncio.Task[None] | None = None
    if client is not None:
        bot = TelegramOrderBot(
            client,
            BotDependencies(
                uow_factory=unit_of_work,
                publisher=event_publisher(),
                notifier=customer_notifier(),
                settings=business_settings(),
                store=ConversationStore(RedisCacheStore(), telegram_session_ttl_seconds()),
            ),
        )
        bot_task = asyncio.create_task(run_polling(client, bot))
    app.state.telegram_task = bot_task
    try:
        yield
    finally:
        if bot_task is not None:
            bot_task.cancel()
            with suppress(asyncio.CancelledError):
                await bot_task
        if client is not None:
            notifier = customer_notifier()
            if isinstance(notifier, TelegramCustomerNotifier):
                notifier.shutdown()
            client.close()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="rpos backend", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(catalog_router)
    app.include_router(tables_router)
    app.include_router(orders_router)
    app.include_router(kitchen_router)
    app.include_router(customers_router)
    app.include_router(users_router)
    app.include_router(cash_router)
    app.include_router(reports_router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    configure_otel(app)
    return app


app = create_app()
