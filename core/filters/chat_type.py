from typing import TYPE_CHECKING, FrozenSet, Union

from core.context import Context
from core.enums import ChatType
from core.filters.base import Filter
from core.models import Update

if TYPE_CHECKING:
    from core.client import Bot


class ChatTypeFilter(Filter):
    """Passes when the update's chat is of one of the given types.

    Updates without a chat (inline queries, polls...) never pass.
    """

    def __init__(self, *chat_types: Union[ChatType, str]) -> None:
        if not chat_types:
            raise ValueError("At least one chat type is required")
        self.chat_types: FrozenSet[ChatType] = frozenset(ChatType(t) for t in chat_types)

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        chat = update.chat
        if chat is None:
            return False
        try:
            return chat.chat_type in self.chat_types
        except ValueError:
            # Chat type this version doesn't know about
            return False

    def __repr__(self) -> str:
        return f"ChatTypeFilter({', '.join(sorted(t.value for t in self.chat_types))})"
