"""Main entry point for the Telegram bot.

This module initializes and runs the bot with:
- Greeting and help commands
- A feedback dialog backed by FSM storage
- Private chat echo
"""
import logging
import os

import trio

from config import CONFIG_PATH_ENV, ConfigManager
from core.client import Bot, RequestsSession
from core.dispatcher import Dispatcher
from core.methods import DeleteWebhook
from core.middlewares.fsm_context import FSMContextMiddleware
from core.router import Router
from features import echo, feedback, start
from storage.fsm import BaseStorage, MemoryStorage, YAMLStorage

logger = logging.getLogger(__name__)


def build_storage(config_mgr: ConfigManager) -> BaseStorage:
    settings = config_mgr.fsm_settings()
    if settings.storage == "yaml":
        logger.info("Using YAML FSM storage at %s", settings.path)
        return YAMLStorage(settings.path)
    return MemoryStorage()


async def main() -> None:
    """Initialize and run the bot with all configured features."""
    # Load config
    config_path = os.environ.get(CONFIG_PATH_ENV, "config.yaml")
    config_mgr = ConfigManager(config_path)
    config_mgr.load()

    # Basic logging setup
    logging.basicConfig(
        level=config_mgr.log_level(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting telegram bot")

    bot_settings = config_mgr.bot_settings()
    session = RequestsSession(api_url=bot_settings.api_url, timeout=bot_settings.request_timeout)
    bot = Bot.from_env(bot_settings.token_env, session=session)

    # Log bot identity
    me = await bot.get_me()
    logger.info("Bot authenticated as: %s (username: %s, id: %s)", me.full_name, me.username, me.id)

    # Polling and webhooks are mutually exclusive
    await bot.send(DeleteWebhook())

    storage = build_storage(config_mgr)
    fsm_settings = config_mgr.fsm_settings()

    main_router = Router("main")
    main_router.update.outer_middleware.register(
        FSMContextMiddleware(storage, strategy=fsm_settings.strategy)
    )
    # echo last: it takes any private text
    main_router.include_routers(
        start.build_router(),
        feedback.build_router(),
        echo.build_router(),
    )

    @main_router.shutdown
    async def close_resources() -> None:
        await storage.close()

    polling = config_mgr.polling_settings()
    dispatcher = (
        Dispatcher.builder()
        .main_router(main_router)
        .bot(bot)
        .polling_timeout(polling.timeout)
        .limit(polling.limit)
        .backoff(
            initial=polling.backoff_initial,
            maximum=polling.backoff_max,
            factor=polling.backoff_factor,
        )
        .allowed_updates(polling.allowed_updates)
        .build()
    )

    try:
        await dispatcher.run_polling()
    finally:
        await bot.close()


def run() -> None:
    trio.run(main)


if __name__ == "__main__":
    run()
