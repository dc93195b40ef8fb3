import logging

import trio

from core.bases import HandlerResponse, Request
from core.middlewares.inner import InnerMiddleware, Next

logger = logging.getLogger(__name__)


class LoggingMiddleware(InnerMiddleware):
    """Logs which handler processed an update, its outcome and how long it took."""

    async def __call__(self, request: Request, next_: Next) -> HandlerResponse:
        started = trio.current_time()
        response = await next_(request)
        elapsed = trio.current_time() - started

        if response.error is not None:
            logger.warning(
                "Update %s: handler %s failed after %.3fs",
                request.update.id,
                next_.handler.name,
                elapsed,
            )
        else:
            logger.info(
                "Update %s (%s) processed by %s in %.3fs: %s",
                request.update.id,
                request.update.type.value,
                next_.handler.name,
                elapsed,
                response.event_return.name,
            )
        return response
