"""Logical combinations of filters.

Usually built with operators: ``ChatTypeFilter("private") & ~Command("stop")``.
"""
from typing import TYPE_CHECKING, Any, List

from core.context import Context
from core.filters.base import Filter, as_filter
from core.models import Update

if TYPE_CHECKING:
    from core.client import Bot


class AndFilter(Filter):
    """Passes when every wrapped filter passes, evaluated in order."""

    def __init__(self, *filters: Filter) -> None:
        self.filters: List[Filter] = list(filters)

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        for f in self.filters:
            if not await f.check(bot, update, context):
                return False
        return True

    def __and__(self, other: Any) -> "AndFilter":
        # Flatten chains like a & b & c
        return AndFilter(*self.filters, as_filter(other))


class OrFilter(Filter):
    """Passes when any wrapped filter passes, evaluated in order."""

    def __init__(self, *filters: Filter) -> None:
        self.filters: List[Filter] = list(filters)

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        for f in self.filters:
            if await f.check(bot, update, context):
                return True
        return False

    def __or__(self, other: Any) -> "OrFilter":
        return OrFilter(*self.filters, as_filter(other))


class InvertFilter(Filter):
    def __init__(self, inner: Filter) -> None:
        self.inner = inner

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        return not await self.inner.check(bot, update, context)
