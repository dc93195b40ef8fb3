"""Router tree.

Routers group observers (one per event kind) and can include child
routers. An update travels down the tree until some router handles or
rejects it::

    root = Router("root")
    admin = root.include_router(Router("admin"))

    @admin.message(Command("ban"))
    async def ban(message: Message) -> None: ...
"""
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from core.bases import EventReturn, PropagateEventResult, Request
from core.enums import UpdateType
from core.middlewares.inner import InnerMiddlewareType
from core.observer import SimpleObserver, TelegramObserver

logger = logging.getLogger(__name__)


class Router:
    """
    A node of the handler tree.

    Middlewares registered on ``router.update`` apply to every event kind
    handled by this router (and, for inner middlewares, its children);
    middlewares registered on a kind's observer only apply to that kind.

    Attributes:
        name: Router name, unique among its siblings
        parent: Router this one is included in
        children: Included routers, in inclusion order
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name or f"router-{id(self):x}"
        self.parent: Optional["Router"] = None
        self.children: List["Router"] = []

        self.message = TelegramObserver(UpdateType.MESSAGE.value)
        self.edited_message = TelegramObserver(UpdateType.EDITED_MESSAGE.value)
        self.channel_post = TelegramObserver(UpdateType.CHANNEL_POST.value)
        self.edited_channel_post = TelegramObserver(UpdateType.EDITED_CHANNEL_POST.value)
        self.inline_query = TelegramObserver(UpdateType.INLINE_QUERY.value)
        self.chosen_inline_result = TelegramObserver(UpdateType.CHOSEN_INLINE_RESULT.value)
        self.callback_query = TelegramObserver(UpdateType.CALLBACK_QUERY.value)
        self.shipping_query = TelegramObserver(UpdateType.SHIPPING_QUERY.value)
        self.pre_checkout_query = TelegramObserver(UpdateType.PRE_CHECKOUT_QUERY.value)
        self.poll = TelegramObserver(UpdateType.POLL.value)
        self.poll_answer = TelegramObserver(UpdateType.POLL_ANSWER.value)
        self.my_chat_member = TelegramObserver(UpdateType.MY_CHAT_MEMBER.value)
        self.chat_member = TelegramObserver(UpdateType.CHAT_MEMBER.value)
        self.chat_join_request = TelegramObserver(UpdateType.CHAT_JOIN_REQUEST.value)

        # Catch-all for any kind, tried after the kind's own observer
        self.update = TelegramObserver("update")

        self.startup = SimpleObserver("startup")
        self.shutdown = SimpleObserver("shutdown")

        self.observers: Dict[UpdateType, TelegramObserver] = {
            kind: getattr(self, kind.value) for kind in UpdateType
        }

    def include_router(self, router: "Router") -> "Router":
        """Attach ``router`` as the last child.

        Returns:
            The included router, for chaining

        Raises:
            ValueError: A child with the same name already exists
            RuntimeError: ``router`` already has a parent or would create a cycle
        """
        if not isinstance(router, Router):
            raise TypeError(f"Expected a Router, got {type(router).__name__}")
        if router is self or router in self.chain_head:
            raise RuntimeError(f"Router {router.name} can't include itself or its ancestors")
        if router.parent is not None:
            raise RuntimeError(
                f"Router {router.name} is already included in {router.parent.name}"
            )
        if any(child.name == router.name for child in self.children):
            raise ValueError(f"Router {self.name} already has a child named {router.name}")

        router.parent = self
        self.children.append(router)
        logger.debug("Router %s included in %s", router.name, self.name)
        return router

    def include_routers(self, *routers: "Router") -> None:
        for router in routers:
            self.include_router(router)

    @property
    def chain_head(self) -> Iterator["Router"]:
        """This router and its ancestors, up to the root."""
        router: Optional[Router] = self
        while router is not None:
            yield router
            router = router.parent

    @property
    def chain_tail(self) -> Iterator["Router"]:
        """This router and all its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.chain_tail

    async def propagate(
        self,
        request: Request,
        inherited_inner: Sequence[InnerMiddlewareType] = (),
    ) -> PropagateEventResult:
        """Offer the update to this router's observers, then to its children.

        Args:
            request: The request to process
            inherited_inner: Inner middlewares of parent routers for this
                event kind, outermost first

        Returns:
            The first HANDLED or REJECTED result, or UNHANDLED

        Raises:
            MiddlewareError: A middleware raised
        """
        observer = self.observers[request.update.type]

        for manager in (self.update.outer_middleware, observer.outer_middleware):
            request, event_return = await manager.run(request)
            if event_return is EventReturn.SKIP:
                return PropagateEventResult.unhandled()
            if event_return is EventReturn.CANCEL:
                return PropagateEventResult.rejected()

        router_inner: Tuple[InnerMiddlewareType, ...] = (
            tuple(inherited_inner) + self.update.inner_middleware.middlewares
        )

        result = await observer.trigger(request, router_inner)
        if not result.is_unhandled:
            return result

        if self.update.handlers:
            result = await self.update.trigger(request, inherited_inner)
            if not result.is_unhandled:
                return result

        children_inner = router_inner + observer.inner_middleware.middlewares
        for child in self.children:
            result = await child.propagate(request, children_inner)
            if not result.is_unhandled:
                logger.debug(
                    "Update %s %s by router %s",
                    request.update.id,
                    result.status.value,
                    child.name,
                )
                return result

        return PropagateEventResult.unhandled()

    async def emit_startup(self, **kwargs: Any) -> None:
        """Run startup callbacks of this router, then of its children."""
        for router in self.chain_tail:
            await router.startup.trigger(**kwargs)

    async def emit_shutdown(self, **kwargs: Any) -> None:
        for router in self.chain_tail:
            await router.shutdown.trigger(**kwargs)

    def resolve_used_update_types(self, skip: Iterable[str] = ()) -> List[str]:
        """Event kinds with at least one handler anywhere in the tree.

        A handler on the ``update`` catch-all observer counts for every kind.

        Args:
            skip: Kinds to leave out

        Returns:
            Kind names in canonical order, ready for ``allowed_updates``
        """
        used = set()
        for router in self.chain_tail:
            if router.update.handlers:
                used.update(UpdateType)
            for kind, observer in router.observers.items():
                if observer.handlers:
                    used.add(kind)
        skipped = set(skip)
        return [kind.value for kind in UpdateType if kind in used and kind.value not in skipped]

    def __repr__(self) -> str:
        return f"Router({self.name!r}, children={len(self.children)})"
