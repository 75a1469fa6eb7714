from __future__ import annotations

from typing import Protocol

EVENTS_CHANNEL = "events:pos"


class EventPublisher(Protocol):
    def publish(self, channel: str, message: str) -> None: ...
