from typing import TYPE_CHECKING, FrozenSet, Union

from core.context import Context
from core.enums import ContentType
from core.filters.base import Filter
from core.models import Message, Update

if TYPE_CHECKING:
    from core.client import Bot


class ContentTypeFilter(Filter):
    """Passes for message-like events (messages, channel posts and their
    edits) whose content is one of the given types."""

    def __init__(self, *content_types: Union[ContentType, str]) -> None:
        if not content_types:
            raise ValueError("At least one content type is required")
        self.content_types: FrozenSet[ContentType] = frozenset(
            ContentType(t) for t in content_types
        )

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        if not isinstance(update.event, Message):
            return False
        return update.event.content_type in self.content_types

    def __repr__(self) -> str:
        return f"ContentTypeFilter({', '.join(sorted(t.value for t in self.content_types))})"
