"""Inner middleware: wraps the handler call.

An inner middleware receives the request and a ``next_`` callable::

    class Timing(InnerMiddleware):
        async def __call__(self, request, next_):
            started = trio.current_time()
            response = await next_(request)
            logger.info("took %.3fs", trio.current_time() - started)
            return response

Skipping ``next_`` short-circuits the handler; the middleware then returns
its own ``HandlerResponse``. Inner middleware only runs for handlers whose
filters passed.
"""
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Tuple, Union

from core.bases import HandlerResponse, Request
from core.errors import ExtractionError, MiddlewareError
from core.middlewares.manager import MiddlewareManager, middleware_name

if TYPE_CHECKING:
    from core.handler import HandlerObject

logger = logging.getLogger(__name__)


class InnerMiddleware:
    """
    Interface for inner middlewares.
    Plain ``async def mw(request, next_)`` functions work as well.
    """

    async def __call__(self, request: Request, next_: "Next") -> HandlerResponse:
        raise NotImplementedError


InnerMiddlewareType = Union[
    InnerMiddleware, Callable[[Request, "Next"], Awaitable[HandlerResponse]]
]


class Next:
    """Continuation of the inner chain.

    Attributes:
        handler: Handler at the end of the chain
        middlewares: Whole chain, outermost first
        index: Position of the middleware this continuation calls
    """

    def __init__(
        self,
        handler: "HandlerObject",
        middlewares: Tuple[InnerMiddlewareType, ...],
        index: int = 0,
    ) -> None:
        self.handler = handler
        self.middlewares = middlewares
        self.index = index
        # Set when the handler's arguments couldn't be extracted further down the chain
        self.extraction_error: Optional[ExtractionError] = None

    async def __call__(self, request: Request) -> HandlerResponse:
        if self.index >= len(self.middlewares):
            try:
                return await self.handler.call(request)
            except ExtractionError as e:
                self.extraction_error = e
                raise

        middleware = self.middlewares[self.index]
        next_ = Next(self.handler, self.middlewares, self.index + 1)
        try:
            return await middleware(request, next_)
        except MiddlewareError:
            raise
        except ExtractionError as e:
            if e is not next_.extraction_error:
                raise MiddlewareError(middleware_name(middleware), e) from e
            self.extraction_error = e
            raise
        except Exception as e:
            raise MiddlewareError(middleware_name(middleware), e) from e


class InnerMiddlewareManager(MiddlewareManager):
    def wrap(
        self,
        handler: "HandlerObject",
        inherited: Tuple[InnerMiddlewareType, ...] = (),
    ) -> Next:
        """Build the chain for ``handler``: ``inherited`` first, then own middlewares."""
        return Next(handler, tuple(inherited) + self.middlewares)
