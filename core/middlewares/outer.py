"""Outer middleware: runs before filters, at router granularity.

An outer middleware receives the request and returns it (possibly a
modified copy) together with an ``EventReturn``:

* FINISH: keep going with the returned request
* SKIP: the router doesn't apply, siblings are tried
* CANCEL: stop processing the update altogether
"""
import logging
from typing import Awaitable, Callable, Tuple, Union

from core.bases import EventReturn, Request
from core.errors import MiddlewareError
from core.middlewares.manager import MiddlewareManager, middleware_name

logger = logging.getLogger(__name__)

OuterResult = Tuple[Request, EventReturn]


class OuterMiddleware:
    """
    Interface for outer middlewares.
    Plain ``async def mw(request)`` functions work as well.
    """

    async def __call__(self, request: Request) -> OuterResult:
        raise NotImplementedError


OuterMiddlewareType = Union[OuterMiddleware, Callable[[Request], Awaitable[OuterResult]]]


class OuterMiddlewareManager(MiddlewareManager):
    async def run(self, request: Request) -> OuterResult:
        """Run the middlewares in registration order.

        Returns:
            The last request and FINISH, or the request and signal of the
            first middleware that returned SKIP or CANCEL

        Raises:
            MiddlewareError: A middleware raised
        """
        for middleware in self.middlewares:
            name = middleware_name(middleware)
            try:
                request, event_return = await middleware(request)
            except Exception as e:
                raise MiddlewareError(name, e) from e
            if event_return is not EventReturn.FINISH:
                logger.debug("Outer middleware %s returned %s", name, event_return.name)
                return request, event_return
        return request, EventReturn.FINISH
