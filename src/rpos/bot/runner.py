from __future__ import annotations

import asyncio
import logging
from typing import Any

from rpos.bot.handlers import TelegramOrderBot
from rpos.infrastructure.telegram.client import TelegramApiError, TelegramClient

logger = logging.getLogger(__name__)


async def run_polling(
    client: TelegramClient,
    bot: TelegramOrderBot,
    poll_timeout: int = 25,
    retry_delay_seconds: float = 5.0,
) -> None:
    """Long-poll getUpdates until cancelled; each update is handled off the event loop."""
    offset: int | None = None
    logger.info("telegram polling started")
    while True:
        try:
            updates = await asyncio.to_thread(client.get_updates, offset, poll_timeout)
        except TelegramApiError:
            logger.warning("telegram getUpdates failed", exc_info=True)
            await asyncio.sleep(retry_delay_seconds)
            continue

        for update in updates:
            offset = int(update["update_id"]) + 1
            await asyncio.to_thread(_handle_safely, bot, update)


def _handle_safely(bot: TelegramOrderBot, update: dict[str, Any]) -> None:
    try:
        bot.handle_update(update)
    except Exception:
        # one bad update must not stop the poller
        logger.exception("telegram update failed", extra={"action": str(update.get("update_id"))})
