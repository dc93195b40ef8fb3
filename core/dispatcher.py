"""Update dispatching and long polling.

The ``Dispatcher`` owns the root router and the bots. Updates come in
either one at a time (``feed_update``, e.g. from a webhook) or through
``run_polling``, which runs, inside one trio nursery:

1. a listener per bot calling ``getUpdates`` with a moving offset and
   backing off exponentially while the API is unreachable,
2. a consumer reading updates from a bounded memory channel and starting
   one task per update, so a slow or failing handler never blocks the rest.
"""
import logging
import signal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import trio

from core.bases import PropagateEventResult, Request
from core.client import Bot
from core.context import Context
from core.errors import MiddlewareError, RetryAfterError, SessionError, UnknownUpdateTypeError
from core.methods import GetUpdates
from core.middlewares.logging import LoggingMiddleware
from core.middlewares.manager import MiddlewareManager
from core.middlewares.user_context import UserContextMiddleware
from core.models import Update, parse_update
from core.router import Router

logger = logging.getLogger(__name__)

DEFAULT_POLLING_TIMEOUT = 30
DEFAULT_LIMIT = 100
# Extra seconds on top of the long-poll timeout before the HTTP request gives up
REQUEST_TIMEOUT_MARGIN = 10

_MALFORMED_UPDATE = (UnknownUpdateTypeError, TypeError, ValueError, KeyError, AttributeError)


def _has_middleware(manager: MiddlewareManager, kind: type) -> bool:
    return any(isinstance(middleware, kind) for middleware in manager)


@dataclass
class BackoffConfig:
    """Delays between failed ``getUpdates`` calls.

    Attributes:
        initial: First delay in seconds
        maximum: Upper bound for the delay
        factor: Multiplier applied after each consecutive failure
    """
    initial: float = 1.0
    maximum: float = 30.0
    factor: float = 2.0

    def next_delay(self, current: float) -> float:
        return min(current * self.factor, self.maximum)


class Dispatcher:
    """Feeds updates from one or more bots into a router tree.

    Attributes:
        main_router: Root of the router tree
        bots: Bots polled by ``run_polling``
        polling_timeout: Long-poll timeout passed to ``getUpdates``
        limit: Maximum number of updates per ``getUpdates`` call
        backoff: Delays applied while ``getUpdates`` keeps failing
        allowed_updates: Kinds to request; derived from the router tree when None
    """

    def __init__(
        self,
        main_router: Optional[Router] = None,
        bots: Sequence[Bot] = (),
        polling_timeout: int = DEFAULT_POLLING_TIMEOUT,
        limit: int = DEFAULT_LIMIT,
        backoff: Optional[BackoffConfig] = None,
        allowed_updates: Optional[List[str]] = None,
        queue_size: int = 100,
    ) -> None:
        if not 1 <= limit <= 100:
            raise ValueError("limit must be between 1 and 100")
        if polling_timeout < 0:
            raise ValueError("polling_timeout can't be negative")
        self.main_router = main_router if main_router is not None else Router("main")
        self.bots: List[Bot] = list(bots)
        self.polling_timeout = polling_timeout
        self.limit = limit
        self.backoff = backoff if backoff is not None else BackoffConfig()
        self.allowed_updates = allowed_updates
        self.queue_size = queue_size
        self._polling_scope: Optional[trio.CancelScope] = None

    @staticmethod
    def builder() -> "DispatcherBuilder":
        return DispatcherBuilder()

    @property
    def is_polling(self) -> bool:
        return self._polling_scope is not None

    async def feed_update(
        self, bot: Bot, update: Update, context: Optional[Context] = None
    ) -> PropagateEventResult:
        """Propagate one update through the router tree.

        Args:
            bot: Bot the update was received with
            update: The update
            context: Context to use; a fresh one is created when omitted

        Returns:
            Result of the propagation. Handler errors are logged and carried
            in ``result.response.error``.

        Raises:
            MiddlewareError: A middleware raised
        """
        if context is None:
            context = Context()
        context.insert(self, Dispatcher)
        request = Request(bot=bot, update=update, context=context)

        started = trio.current_time()
        try:
            result = await self.main_router.propagate(request)
        except MiddlewareError:
            logger.exception("Middleware failed on update %s (%s)", update.id, update.type.value)
            raise
        elapsed = trio.current_time() - started

        if result.is_handled and result.response is not None and result.response.error is not None:
            error = result.response.error
            logger.error("Update %s: %s", update.id, error, exc_info=error.error)
        elif result.is_handled:
            logger.debug("Update %s handled in %.3fs", update.id, elapsed)
        elif result.is_rejected:
            logger.debug("Update %s rejected in %.3fs", update.id, elapsed)
        else:
            logger.debug("Update %s (%s) is not handled", update.id, update.type.value)
        return result

    async def feed_raw_update(self, bot: Bot, data: Dict[str, Any]) -> PropagateEventResult:
        """Parse a raw update dictionary (e.g. a webhook body) and feed it.

        Raises:
            UnknownUpdateTypeError: The dictionary holds no known event kind
        """
        return await self.feed_update(bot, parse_update(data))

    async def run_polling(self, handle_signals: bool = True) -> None:
        """Poll all bots until ``stop_polling`` is called (or SIGINT/SIGTERM).

        Startup callbacks run before polling starts, shutdown callbacks
        after it stopped and in-flight updates finished.

        Args:
            handle_signals: Stop on SIGINT/SIGTERM. Only possible from the
                main thread.
        """
        if not self.bots:
            raise RuntimeError("No bots to poll, pass at least one")
        if self._polling_scope is not None:
            raise RuntimeError("Polling is already running")

        workflow = {"dispatcher": self, "bots": self.bots, "bot": self.bots[0]}
        await self.main_router.emit_startup(**workflow)
        logger.info("Start polling for %d bot(s)", len(self.bots))
        try:
            async with trio.open_nursery() as workers:
                async with trio.open_nursery() as nursery:
                    self._polling_scope = nursery.cancel_scope
                    if handle_signals:
                        nursery.start_soon(self._watch_signals)
                    send_channel, receive_channel = trio.open_memory_channel(self.queue_size)
                    async with send_channel:
                        for bot in self.bots:
                            nursery.start_soon(self._listen_updates, bot, send_channel.clone())
                    nursery.start_soon(self._process_updates, receive_channel, workers)
        finally:
            self._polling_scope = None
            logger.info("Polling stopped")
            with trio.CancelScope(shield=True):
                await self.main_router.emit_shutdown(**workflow)

    def stop_polling(self) -> None:
        """Stop polling. In-flight updates are allowed to finish."""
        if self._polling_scope is None:
            logger.warning("stop_polling called while not polling")
            return
        self._polling_scope.cancel()

    async def _watch_signals(self) -> None:
        with trio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                logger.info("Received %s, stopping polling", signal.Signals(signum).name)
                self.stop_polling()
                return

    async def _listen_updates(self, bot: Bot, send_channel: trio.MemorySendChannel) -> None:
        """Long-poll ``bot`` and push ``(bot, update)`` pairs into the channel."""
        allowed_updates = self.allowed_updates
        if allowed_updates is None:
            allowed_updates = self.main_router.resolve_used_update_types()
        offset: Optional[int] = None
        delay = self.backoff.initial
        failed = False

        async with send_channel:
            while True:
                method = GetUpdates(
                    offset=offset,
                    limit=self.limit,
                    timeout=self.polling_timeout,
                    allowed_updates=allowed_updates,
                )
                try:
                    raw_updates = await bot.request(
                        method, timeout=self.polling_timeout + REQUEST_TIMEOUT_MARGIN
                    )
                except RetryAfterError as e:
                    logger.warning(
                        "Flood control for bot %s, retrying in %ss", bot.bot_id, e.retry_after
                    )
                    await trio.sleep(e.retry_after)
                    continue
                except SessionError as e:
                    logger.error(
                        "Failed to fetch updates for bot %s: %s (retrying in %.1fs)",
                        bot.bot_id,
                        e,
                        delay,
                    )
                    failed = True
                    await trio.sleep(delay)
                    delay = self.backoff.next_delay(delay)
                    continue

                if failed:
                    logger.info("Connection for bot %s restored", bot.bot_id)
                    failed = False
                delay = self.backoff.initial

                if not isinstance(raw_updates, list):
                    logger.error("Unexpected getUpdates result for bot %s: %r", bot.bot_id, raw_updates)
                    await trio.sleep(delay)
                    continue

                for raw in raw_updates:
                    update_id = raw.get("update_id") if isinstance(raw, dict) else None
                    if isinstance(update_id, int):
                        offset = max(offset or 0, update_id + 1)
                    try:
                        update = parse_update(raw)
                    except _MALFORMED_UPDATE as e:
                        logger.warning("Skipping update %s: %s", update_id, e)
                        continue
                    await send_channel.send((bot, update))

    async def _process_updates(
        self, receive_channel: trio.MemoryReceiveChannel, workers: trio.Nursery
    ) -> None:
        async with receive_channel:
            async for bot, update in receive_channel:
                workers.start_soon(self._process_update, bot, update)

    async def _process_update(self, bot: Bot, update: Update) -> None:
        try:
            await self.feed_update(bot, update)
        except Exception:  # pylint: disable=broad-exception-caught
            # Intentionally catch all exceptions to prevent one update
            # from stopping the polling loop
            logger.exception("Error while processing update %s", update.id)


class DispatcherBuilder:
    """Step-by-step ``Dispatcher`` construction::

        dispatcher = (
            Dispatcher.builder()
            .main_router(router)
            .bot(bot)
            .polling_timeout(25)
            .build()
        )
    """

    def __init__(self) -> None:
        self._main_router: Optional[Router] = None
        self._bots: List[Bot] = []
        self._polling_timeout = DEFAULT_POLLING_TIMEOUT
        self._limit = DEFAULT_LIMIT
        self._backoff = BackoffConfig()
        self._allowed_updates: Optional[List[str]] = None
        self._default_middlewares = True

    def main_router(self, router: Router) -> "DispatcherBuilder":
        self._main_router = router
        return self

    def bot(self, bot: Bot) -> "DispatcherBuilder":
        self._bots.append(bot)
        return self

    def bots(self, bots: Sequence[Bot]) -> "DispatcherBuilder":
        self._bots.extend(bots)
        return self

    def polling_timeout(self, seconds: int) -> "DispatcherBuilder":
        self._polling_timeout = seconds
        return self

    def limit(self, limit: int) -> "DispatcherBuilder":
        self._limit = limit
        return self

    def backoff(
        self,
        initial: Optional[float] = None,
        maximum: Optional[float] = None,
        factor: Optional[float] = None,
    ) -> "DispatcherBuilder":
        if initial is not None:
            self._backoff.initial = initial
        if maximum is not None:
            self._backoff.maximum = maximum
        if factor is not None:
            self._backoff.factor = factor
        return self

    def allowed_updates(self, kinds: Optional[Sequence[str]]) -> "DispatcherBuilder":
        """Kinds to request when polling. None derives them from the router tree."""
        self._allowed_updates = list(kinds) if kinds is not None else None
        return self

    def default_middlewares(self, enabled: bool) -> "DispatcherBuilder":
        """Whether ``build`` installs UserContextMiddleware and LoggingMiddleware.

        Already installed ones are kept, so building twice from one router is safe.
        """
        self._default_middlewares = enabled
        return self

    def build(self) -> Dispatcher:
        router = self._main_router if self._main_router is not None else Router("main")
        if self._default_middlewares:
            # First in line: later middlewares may rely on User/Chat being set
            if not _has_middleware(router.update.outer_middleware, UserContextMiddleware):
                router.update.outer_middleware.insert(0, UserContextMiddleware())
            if not _has_middleware(router.update.inner_middleware, LoggingMiddleware):
                router.update.inner_middleware.insert(0, LoggingMiddleware())
        return Dispatcher(
            main_router=router,
            bots=self._bots,
            polling_timeout=self._polling_timeout,
            limit=self._limit,
            backoff=self._backoff,
            allowed_updates=self._allowed_updates,
        )
