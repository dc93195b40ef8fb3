from core.client import Bot
from core.enums import ChatType, ContentType
from core.filters.chat_type import ChatTypeFilter
from core.filters.content_type import ContentTypeFilter
from core.methods import SendMessage
from core.models import Message
from core.router import Router


def build_router() -> Router:
    """
    Echoes text messages back in private chats.
    Include it last: it accepts any private text.
    """
    router = Router("echo")
    router.message.filter(ChatTypeFilter(ChatType.PRIVATE))

    @router.message(ContentTypeFilter(ContentType.TEXT))
    async def echo(message: Message, bot: Bot) -> None:
        await bot.send(SendMessage(chat_id=message.chat.id, text=message.text or ""))

    return router
