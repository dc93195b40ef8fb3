"""Event observers.

A ``TelegramObserver`` holds the handlers for one event kind of one router
and decides which of them processes an update. ``SimpleObserver`` holds
lifecycle callbacks (startup, shutdown).
"""
import inspect
import logging
from typing import Any, Callable, Iterable, List, Tuple

from core.bases import EventReturn, PropagateEventResult, Request
from core.errors import ExtractionError
from core.handler import FilterLike, FilterObject, HandlerObject
from core.middlewares.inner import InnerMiddlewareManager, InnerMiddlewareType
from core.middlewares.outer import OuterMiddlewareManager

logger = logging.getLogger(__name__)


class TelegramObserver:
    """Handlers, observer-wide filters and middlewares for one event kind.

    Attributes:
        event_name: Event kind, e.g. ``message``
        handlers: Handlers in registration order
        filters: Filters every handler of this observer requires
        inner_middleware: Middlewares wrapping each handler call
        outer_middleware: Middlewares run by the router before any filter
    """

    def __init__(self, event_name: str) -> None:
        self.event_name = event_name
        self.handlers: List[HandlerObject] = []
        self.filters: List[FilterObject] = []
        self.inner_middleware = InnerMiddlewareManager()
        self.outer_middleware = OuterMiddlewareManager()

    def register(self, callback: Callable[..., Any], *filters: FilterLike) -> Callable[..., Any]:
        """Register ``callback`` guarded by ``filters`` (all must pass).

        Raises:
            TypeError: A parameter of ``callback`` can't be extracted
        """
        self.handlers.append(HandlerObject(callback, filters))
        return callback

    def __call__(self, *filters: FilterLike) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``register``::

            @router.message(Command("start"))
            async def start(message: Message, bot: Bot) -> None: ...
        """

        def wrapper(callback: Callable[..., Any]) -> Callable[..., Any]:
            return self.register(callback, *filters)

        return wrapper

    def filter(self, *filters: FilterLike) -> None:
        """Add filters checked once per update before any handler filter."""
        self.filters.extend(FilterObject(f) for f in filters)

    async def check_filters(self, request: Request) -> bool:
        for f in self.filters:
            if not await f.check(request):
                return False
        return True

    async def trigger(
        self,
        request: Request,
        inherited_inner: Iterable[InnerMiddlewareType] = (),
    ) -> PropagateEventResult:
        """Find the handler that processes the update.

        Candidates are tried in registration order; a handler returning SKIP
        (or one whose arguments can't be extracted) passes the update to the
        next candidate.

        Args:
            request: The request to process
            inherited_inner: Inner middlewares of parent routers, outermost first

        Returns:
            HANDLED with the response, REJECTED when a handler returned
            CANCEL, UNHANDLED when no handler applied

        Raises:
            MiddlewareError: An inner middleware raised
        """
        if not self.handlers:
            return PropagateEventResult.unhandled()
        if not await self.check_filters(request):
            return PropagateEventResult.unhandled()

        inherited: Tuple[InnerMiddlewareType, ...] = tuple(inherited_inner)
        for handler in self.handlers:
            if not await handler.check(request):
                continue

            try:
                response = await self.inner_middleware.wrap(handler, inherited)(request)
            except ExtractionError as e:
                logger.warning(
                    "Handler %s skipped for %s update %s: %s",
                    handler.name,
                    self.event_name,
                    request.update.id,
                    e,
                )
                continue

            if response.event_return is EventReturn.SKIP:
                continue
            if response.event_return is EventReturn.CANCEL:
                return PropagateEventResult.rejected()
            return PropagateEventResult.handled(response)

        return PropagateEventResult.unhandled()

    def __repr__(self) -> str:
        return f"TelegramObserver({self.event_name}, handlers={len(self.handlers)})"


class SimpleObserver:
    """Lifecycle callbacks.

    Callbacks receive, as keyword arguments, whichever of the offered
    values they declare (or all of them with ``**kwargs``).
    """

    def __init__(self, event_name: str) -> None:
        self.event_name = event_name
        self.handlers: List[Callable[..., Any]] = []

    def register(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        self.handlers.append(callback)
        return callback

    def __call__(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        return self.register(callback)

    @staticmethod
    def _select_kwargs(callback: Callable[..., Any], offered: dict) -> dict:
        params = inspect.signature(callback).parameters
        if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values()):
            return dict(offered)
        return {name: value for name, value in offered.items() if name in params}

    async def trigger(self, **kwargs: Any) -> None:
        """Call every callback in order. Errors propagate."""
        for callback in self.handlers:
            logger.debug("Running %s callback %s", self.event_name, callback)
            result = callback(**self._select_kwargs(callback, kwargs))
            if inspect.isawaitable(result):
                await result
