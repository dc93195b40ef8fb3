import dataclasses

import pytest

from core.bases import EventReturn, HandlerResponse, Request
from core.context import Context
from core.errors import MiddlewareError, MissingContextKeyError
from core.middlewares.fsm_context import FSMContextMiddleware
from core.middlewares.inner import InnerMiddleware
from core.middlewares.logging import LoggingMiddleware
from core.middlewares.outer import OuterMiddlewareManager
from core.middlewares.user_context import THREAD_ID_KEY, UserContextMiddleware
from core.models import CallbackQuery, Chat, Message, User
from core.observer import TelegramObserver
from core.router import Router
from storage.fsm import BaseStorage, FSMContext, MemoryStorage, Strategy
from tests.helpers import make_message


def make_request(bot, update=None):
    return Request(bot=bot, update=update or make_message("hi"), context=Context())


class Recorder(InnerMiddleware):
    def __init__(self, name, log):
        self.name = name
        self.log = log

    async def __call__(self, request, next_):
        self.log.append(f"{self.name}-pre")
        response = await next_(request)
        self.log.append(f"{self.name}-post")
        return response


async def test_inner_chain_order(bot):
    log = []
    observer = TelegramObserver("message")
    observer.inner_middleware.register(Recorder("A", log))
    observer.inner_middleware.register(Recorder("B", log))
    observer.register(lambda: log.append("H"))

    await observer.trigger(make_request(bot))

    assert log == ["A-pre", "B-pre", "H", "B-post", "A-post"]


async def test_inner_middleware_can_short_circuit(bot):
    calls = []
    observer = TelegramObserver("message")

    @observer.inner_middleware
    async def deny(request, next_):
        return HandlerResponse(request=request, event_return=EventReturn.CANCEL)

    observer.register(lambda: calls.append("H"))

    result = await observer.trigger(make_request(bot))

    assert result.is_rejected
    assert calls == []


async def test_inner_middleware_can_enrich_context(bot):
    observer = TelegramObserver("message")

    @observer.inner_middleware
    async def add_locale(request, next_):
        request.context.insert("de", "locale")
        return await next_(request)

    observer.register(lambda locale: locale)

    result = await observer.trigger(make_request(bot))

    assert result.response.value == "de"


async def test_inner_middleware_only_runs_for_matching_handlers(bot):
    log = []
    observer = TelegramObserver("message")
    observer.inner_middleware.register(Recorder("A", log))
    observer.register(lambda: None, lambda bot, update, context: False)

    await observer.trigger(make_request(bot))

    assert log == []


async def test_inner_middleware_missing_context_value_aborts(bot):
    observer = TelegramObserver("message")
    calls = []

    @observer.inner_middleware
    async def needs_db(request, next_):
        request.context.require("db_session")
        return await next_(request)

    observer.register(lambda: calls.append("first"))
    observer.register(lambda: calls.append("second"))

    with pytest.raises(MiddlewareError) as exc_info:
        await observer.trigger(make_request(bot))

    assert isinstance(exc_info.value.__cause__, MissingContextKeyError)
    assert calls == []


async def test_handler_extraction_failure_passes_through_inner_middleware(bot):
    log = []
    observer = TelegramObserver("message")
    observer.inner_middleware.register(Recorder("A", log))
    observer.inner_middleware.register(Recorder("B", log))

    @observer()
    async def wants_callback(query: CallbackQuery):
        return "wrong"

    @observer()
    async def wants_message(message: Message):
        return "right"

    result = await observer.trigger(make_request(bot))

    assert result.response.value == "right"
    assert log == ["A-pre", "B-pre", "A-pre", "B-pre", "B-post", "A-post"]


async def test_outer_manager_stops_on_first_veto(bot):
    manager = OuterMiddlewareManager()
    calls = []

    async def first(request):
        calls.append("first")
        return request, EventReturn.SKIP

    async def second(request):
        calls.append("second")
        return request, EventReturn.FINISH

    manager.register(first)
    manager.register(second)

    _, event_return = await manager.run(make_request(bot))

    assert event_return is EventReturn.SKIP
    assert calls == ["first"]


async def test_outer_manager_passes_modified_request(bot):
    manager = OuterMiddlewareManager()
    other = make_message("replaced", update_id=77)

    async def swap(request):
        return dataclasses.replace(request, update=other), EventReturn.FINISH

    manager.register(swap)
    request, event_return = await manager.run(make_request(bot))

    assert request.update is other
    assert event_return is EventReturn.FINISH


async def test_outer_manager_wraps_errors(bot):
    manager = OuterMiddlewareManager()

    async def broken(request):
        raise KeyError("x")

    manager.register(broken)

    with pytest.raises(MiddlewareError):
        await manager.run(make_request(bot))


async def test_outer_runs_once_before_filters_and_inner(bot):
    log = []
    router = Router("root")

    @router.update.outer_middleware
    async def outer(request):
        log.append("outer")
        return request, EventReturn.FINISH

    def tracking_filter(bot, update, context):
        log.append("filter")
        return True

    router.message.inner_middleware.register(Recorder("inner", log))
    router.message.register(lambda: EventReturn.SKIP, tracking_filter)
    router.message.register(lambda: log.append("H"), tracking_filter)

    result = await router.propagate(make_request(bot))

    assert result.is_handled
    assert log.count("outer") == 1
    assert log[0] == "outer"
    assert log == [
        "outer",
        "filter", "inner-pre", "inner-post",
        "filter", "inner-pre", "H", "inner-post",
    ]


async def test_user_context_middleware(bot):
    request = make_request(bot, make_message("hi", message_thread_id=9, is_topic_message=True))

    request, event_return = await UserContextMiddleware()(request)

    assert event_return is EventReturn.FINISH
    assert request.context[User].id == 100
    assert request.context[Chat].id == 100
    assert request.context[THREAD_ID_KEY] == 9


async def test_fsm_context_middleware(bot):
    storage = MemoryStorage()
    middleware = FSMContextMiddleware(storage, strategy=Strategy.CHAT)
    request = make_request(bot, make_message("hi", user_id=5, chat_id=-10, chat_type="group"))

    await middleware(request)

    fsm = request.context[FSMContext]
    assert request.context[BaseStorage] is storage
    assert fsm.key.bot_id == 42
    assert fsm.key.chat_id == -10
    assert fsm.key.user_id == -10


async def test_logging_middleware_logs_outcome(bot, caplog):
    observer = TelegramObserver("message")
    observer.inner_middleware.register(LoggingMiddleware())

    def greet():
        return "ok"

    observer.register(greet)

    with caplog.at_level("INFO", logger="core.middlewares.logging"):
        result = await observer.trigger(make_request(bot))

    assert result.response.value == "ok"
    assert "greet" in caplog.text
    assert "FINISH" in caplog.text
