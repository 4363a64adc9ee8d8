# messenger.py
from __future__ import annotations

import asyncio
from typing import Iterable, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramRetryAfter
from loguru import logger

Notice = Tuple[int, str]  # (chat_id, text)


class Messenger:
    """Outbound text. Every send reports success as a bool and never raises."""

    def __init__(self, bot: Bot, throttle: float = 0.05):
        self.bot = bot
        self.throttle = throttle

    async def send(self, chat_id: int, text: str, **kwargs) -> bool:
        try:
            await self.bot.send_message(chat_id, text, **kwargs)
            return True
        except TelegramRetryAfter as e:
            logger.warning("Flood control for {}: retry after {}s", chat_id, e.retry_after)
            return False
        except TelegramAPIError as e:
            logger.warning("Could not send to {}: {!r}", chat_id, e)
            return False

    async def deliver(self, chat_id: int, text: str) -> bool:
        # relayed chat text: no markup, no previews, no forwarding
        return await self.send(
            chat_id,
            text,
            parse_mode=None,
            disable_web_page_preview=True,
            protect_content=True,
        )

    async def send_many(self, notices: Iterable[Notice], **kwargs) -> int:
        sent = 0
        for chat_id, text in notices:
            if await self.send(chat_id, text, **kwargs):
                sent += 1
        return sent

    async def broadcast(self, chat_ids: Iterable[int], text: str) -> int:
        sent = 0
        for chat_id in chat_ids:
            if await self.send(chat_id, text):
                sent += 1
            await asyncio.sleep(self.throttle)  # soft throttling
        return sent


__all__ = [
    "Messenger",
    "Notice",
]
