import logging

from core.client import Bot
from core.filters.command import Command, CommandObject
from core.methods import SendMessage
from core.models import Message, User
from core.router import Router

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Available commands:\n"
    "/start - greeting\n"
    "/help - this message\n"
    "/feedback - send feedback to the bot owners\n"
    "/cancel - abort the current dialog\n"
    "Any other text in a private chat is echoed back."
)


def build_router() -> Router:
    """Greeting and help commands, available in every chat."""
    router = Router("start")

    @router.message(Command("start"))
    async def start(message: Message, bot: Bot, user: User, command: CommandObject) -> None:
        logger.info("User %s started the bot (args=%r)", user.id, command.args)
        await bot.send(
            SendMessage(
                chat_id=message.chat.id,
                text=f"Hello, {user.full_name}!",
                message_thread_id=message.message_thread_id,
            )
        )

    @router.message(Command("help"))
    async def help_(message: Message, bot: Bot) -> None:
        await bot.send(
            SendMessage(
                chat_id=message.chat.id,
                text=HELP_TEXT,
                message_thread_id=message.message_thread_id,
            )
        )

    return router
