"""Filter interface.

A filter decides whether a handler (or a whole observer) applies to an
update. Filters can be combined with ``&``, ``|`` and ``~``; plain
callables with the same signature are wrapped in ``FilterFunc``.
"""
import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from core.context import Context
from core.models import Update

if TYPE_CHECKING:
    from core.client import Bot
    from core.filters.logical import AndFilter, InvertFilter, OrFilter

FilterCallable = Callable[["Bot", Update, Context], Union[bool, Awaitable[bool]]]


class Filter:
    """
    Interface for filters.
    """

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        """Check if the update passes this filter.

        Args:
            bot: Client handle the update was received with
            update: The incoming update
            context: Per-update context (read it, don't rely on writing it)

        Returns:
            True if the handler should be considered
        """
        raise NotImplementedError

    def __and__(self, other: Any) -> "AndFilter":
        from core.filters.logical import AndFilter  # pylint: disable=import-outside-toplevel

        return AndFilter(self, as_filter(other))

    def __or__(self, other: Any) -> "OrFilter":
        from core.filters.logical import OrFilter  # pylint: disable=import-outside-toplevel

        return OrFilter(self, as_filter(other))

    def __invert__(self) -> "InvertFilter":
        from core.filters.logical import InvertFilter  # pylint: disable=import-outside-toplevel

        return InvertFilter(self)


class FilterFunc(Filter):
    """Adapts a sync or async ``(bot, update, context) -> bool`` callable."""

    def __init__(self, func: FilterCallable) -> None:
        self.func = func

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        result = self.func(bot, update, context)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    def __repr__(self) -> str:
        return f"FilterFunc({getattr(self.func, '__qualname__', self.func)!r})"


def as_filter(obj: Union[Filter, FilterCallable]) -> Filter:
    """Return ``obj`` as a Filter, wrapping plain callables."""
    if isinstance(obj, Filter):
        return obj
    if callable(obj):
        return FilterFunc(obj)
    raise TypeError(f"{obj!r} is neither a Filter nor a callable")
