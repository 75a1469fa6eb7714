from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TraceContext:
    trace_id: str | None
    request_id: str | None


@dataclass(frozen=True)
class BusinessSettings:
    name: str = "Malulos"
    currency: str = "COP"
    tax_rate_bps: int = 0
    utc_offset_hours: int = -5
