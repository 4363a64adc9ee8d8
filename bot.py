# bot.py
from __future__ import annotations

import asyncio
import sys

from aiogram import Bot, Dispatcher
from aiogram.types import ErrorEvent
from loguru import logger

import admin
import handlers
from chat import AnonChat
from config import Config, load_config, setup_logging
from errors import ConfigError
from messenger import Messenger
from state import ChatState
from storage import Persister, build_store


def build_dispatcher(config: Config, chat: AnonChat, messenger: Messenger, persister: Persister) -> Dispatcher:
    # workflow data: handlers ask for these by parameter name
    dp = Dispatcher(config=config, chat=chat, messenger=messenger, persister=persister)
    # admin commands first, the user router ends with the catch-all text relay
    dp.include_router(admin.router)
    dp.include_router(handlers.router)

    @dp.errors()
    async def on_error(event: ErrorEvent):
        logger.opt(exception=event.exception).error("Unhandled error for update {}", event.update.update_id)
        return True

    return dp


# ================== Entry ==================
async def main(config: Config) -> None:
    bot = Bot(config.bot_token)
    messenger = Messenger(bot)
    state = ChatState()
    chat = AnonChat(state, messenger.deliver, premium_hours=config.premium_hours)
    persister = Persister(state, build_store(config.storage_backend, config.data_file), config.autosave_seconds)
    await persister.restore()

    dp = build_dispatcher(config, chat, messenger, persister)

    async def request_shutdown() -> None:
        await dp.stop_polling()

    dp["request_shutdown"] = request_shutdown

    persister.start()
    logger.info("k-Anony started (data: {}, admins: {})", persister.store, len(config.admin_ids))
    try:
        await dp.start_polling(bot)
    finally:
        logger.info("Stopping, saving data")
        if not await persister.close():
            logger.error("Final save failed, the last changes may be lost")


def run() -> None:
    try:
        config = load_config()
    except ConfigError as e:
        setup_logging()
        logger.error("❌ {}", e)
        sys.exit(1)
    setup_logging(config.log_level)
    asyncio.run(main(config))


if __name__ == "__main__":
    run()
