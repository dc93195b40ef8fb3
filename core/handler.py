"""Registered handlers.

A ``HandlerObject`` bundles a callback with its filters and the argument
binders resolved from its signature at registration time.
"""
import inspect
import logging
from typing import Any, Callable, Dict, Iterable, Tuple, Union

from core.bases import EventReturn, HandlerResponse, Request
from core.errors import HandlerError
from core.extractors import Binder, extract_arguments, resolve_binders
from core.filters.base import Filter, FilterCallable, as_filter

logger = logging.getLogger(__name__)

FilterLike = Union[Filter, FilterCallable]


class FilterObject:
    """A filter bound into the pipeline, checked against a ``Request``."""

    def __init__(self, filter_: FilterLike) -> None:
        self.filter = as_filter(filter_)

    async def check(self, request: Request) -> bool:
        return await self.filter.check(request.bot, request.update, request.context)

    def __repr__(self) -> str:
        return f"FilterObject({self.filter!r})"


def _callback_name(callback: Callable[..., Any]) -> str:
    return getattr(callback, "__qualname__", None) or type(callback).__name__


class HandlerObject:
    """
    A callback plus the filters guarding it.

    Attributes:
        callback: Sync or async handler function
        filters: Filters checked in order before calling
        binders: Parameter name to argument binder
        name: Printable callback name for logs
    """

    def __init__(self, callback: Callable[..., Any], filters: Iterable[FilterLike] = ()) -> None:
        self.callback = callback
        self.filters: Tuple[FilterObject, ...] = tuple(FilterObject(f) for f in filters)
        self.binders: Dict[str, Binder] = resolve_binders(callback)
        self.name = _callback_name(callback)

    async def check(self, request: Request) -> bool:
        """Evaluate the filters in order, stopping at the first failure."""
        for f in self.filters:
            if not await f.check(request):
                return False
        return True

    async def call(self, request: Request) -> HandlerResponse:
        """Extract the arguments and invoke the callback.

        Returns:
            HandlerResponse; ``error`` is set when the callback raised

        Raises:
            ExtractionError: An argument couldn't be extracted
        """
        kwargs = await extract_arguments(self.binders, request)
        try:
            result = self.callback(**kwargs)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:  # pylint: disable=broad-exception-caught
            # Reported through the response; the dispatcher logs it with the traceback
            error = HandlerError(self.name, e)
            error.__cause__ = e
            return HandlerResponse(request=request, event_return=EventReturn.FINISH, error=error)

        if isinstance(result, EventReturn):
            return HandlerResponse(request=request, event_return=result)
        return HandlerResponse(request=request, event_return=EventReturn.FINISH, value=result)

    def __repr__(self) -> str:
        return f"HandlerObject({self.name}, filters={len(self.filters)})"
