from __future__ import annotations

import os

from rpos.application.use_cases.context import BusinessSettings


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def load_business_settings() -> BusinessSettings:
    return BusinessSettings(
        name=os.getenv("BUSINESS_NAME", "Malulos"),
        currency=os.getenv("BUSINESS_CURRENCY", "COP").upper(),
        tax_rate_bps=_int_env("BUSINESS_TAX_RATE_BPS", 0),
        utc_offset_hours=_int_env("BUSINESS_UTC_OFFSET_HOURS", -5),
    )


def telegram_bot_token() -> str | None:
    token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()
    return token or None


def telegram_session_ttl_seconds() -> int:
    return _int_env("TELEGRAM_SESSION_TTL_SECONDS", 2 * 60 * 60)


def app_env() -> str:
    return os.getenv("APP_ENV", "dev").lower()
