import logging
from pathlib import Path
from typing import Optional

from telegram import BotCommand
from telegram.ext import Application, CommandHandler

from auragrow.clients import AuraClient
from auragrow.config import Settings
from auragrow.handlers.commands import CommandHandlers
from auragrow.services import PortfolioGateway
from auragrow.utils import JsonFileStore, MemoryStore, ResponseCache

logger = logging.getLogger(__name__)
COMMAND_MENU = [
    BotCommand("start", "Welcome message and command list"),
    BotCommand("help", "Quick reminder of available commands"),
    BotCommand("balance", "Load a wallet balance from AURA"),
    BotCommand("manual", "Use a manual starting amount"),
    BotCommand("project", "Simple vs compound growth projection"),
    BotCommand("strategies", "Yield strategy ideas by risk"),
    BotCommand("refresh", "Reload balance and strategies"),
    BotCommand("retry", "Retry the last balance lookup"),
    BotCommand("cacheinfo", "Show when data was last fetched"),
]


def build_cache(settings: Settings) -> ResponseCache:
    if not settings.cache_path:
        logger.info("CACHE_PATH is empty; responses are cached in memory only.")
        return ResponseCache(MemoryStore())
    return ResponseCache(JsonFileStore(Path(settings.cache_path)))


def build_gateway(settings: Settings, cache: Optional[ResponseCache] = None) -> PortfolioGateway:
    return PortfolioGateway(AuraClient(settings), cache if cache is not None else build_cache(settings))


def build_application(settings: Settings) -> Application:
    gateway = build_gateway(settings)
    command_handlers = CommandHandlers(gateway, settings)

    async def _post_init(application: Application) -> None:
        await application.bot.set_my_commands(COMMAND_MENU)

    application = (
        Application.builder()
        .token(settings.telegram_token)
        .post_init(_post_init)
        .build()
    )

    application.add_handler(CommandHandler("start", command_handlers.start))
    application.add_handler(CommandHandler("help", command_handlers.start))
    application.add_handler(CommandHandler("balance", command_handlers.balance))
    application.add_handler(CommandHandler("manual", command_handlers.manual))
    application.add_handler(CommandHandler("project", command_handlers.project))
    application.add_handler(CommandHandler("strategies", command_handlers.strategies))
    application.add_handler(CommandHandler("refresh", command_handlers.refresh))
    application.add_handler(CommandHandler("retry", command_handlers.retry))
    application.add_handler(CommandHandler("cacheinfo", command_handlers.cacheinfo))

    logger.info("Telegram application wired with command handlers.")
    return application
