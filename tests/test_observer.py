import pytest

from core.bases import EventReturn, PropagateStatus, Request
from core.context import Context
from core.errors import HandlerError, MiddlewareError
from core.filters.chat_type import ChatTypeFilter
from core.models import CallbackQuery, Message
from core.observer import SimpleObserver, TelegramObserver
from tests.helpers import make_message


def make_request(bot, update=None):
    return Request(bot=bot, update=update or make_message("hi"), context=Context())


def always(bot, update, context):
    return True


def never(bot, update, context):
    return False


async def test_first_finish_handler_wins(bot):
    observer = TelegramObserver("message")
    calls = []

    observer.register(lambda: calls.append("first") or EventReturn.FINISH, never)
    observer.register(lambda: calls.append("second") or "done", always)
    observer.register(lambda: calls.append("third"), always)

    result = await observer.trigger(make_request(bot))

    assert result.status is PropagateStatus.HANDLED
    assert result.response.value == "done"
    assert calls == ["second"]


async def test_all_filters_fail_is_unhandled(bot):
    observer = TelegramObserver("message")
    observer.register(lambda: None, never)

    result = await observer.trigger(make_request(bot))

    assert result.is_unhandled


async def test_all_skip_is_unhandled(bot):
    observer = TelegramObserver("message")
    observer.register(lambda: EventReturn.SKIP)
    observer.register(lambda: EventReturn.SKIP)

    assert (await observer.trigger(make_request(bot))).is_unhandled


async def test_cancel_rejects_even_if_later_handlers_match(bot):
    observer = TelegramObserver("message")
    calls = []
    observer.register(lambda: EventReturn.CANCEL)
    observer.register(lambda: calls.append("late"))

    result = await observer.trigger(make_request(bot))

    assert result.is_rejected
    assert calls == []


async def test_private_skip_then_fallback(bot):
    observer = TelegramObserver("message")

    @observer(ChatTypeFilter("private"))
    async def private_only(message: Message):
        return EventReturn.SKIP

    @observer(always)
    async def fallback(message: Message):
        return "fallback"

    result = await observer.trigger(make_request(bot))

    assert result.is_handled
    assert result.response.value == "fallback"


async def test_observer_filters_fail_is_unhandled(bot):
    observer = TelegramObserver("message")
    observer.filter(never)
    observer.register(lambda: "never called")

    assert (await observer.trigger(make_request(bot))).is_unhandled


async def test_extraction_failure_tries_next_candidate(bot):
    observer = TelegramObserver("message")

    @observer()
    async def wants_callback(query: CallbackQuery):
        return "wrong"

    @observer()
    async def wants_message(message: Message):
        return "right"

    result = await observer.trigger(make_request(bot))

    assert result.response.value == "right"


async def test_handler_error_is_reported_not_raised(bot):
    observer = TelegramObserver("message")
    calls = []

    @observer()
    async def broken():
        raise ZeroDivisionError("boom")

    observer.register(lambda: calls.append("next"))

    result = await observer.trigger(make_request(bot))

    assert result.is_handled
    assert isinstance(result.response.error, HandlerError)
    assert isinstance(result.response.error.__cause__, ZeroDivisionError)
    assert not result.response.ok
    assert calls == []


async def test_middleware_error_propagates(bot):
    observer = TelegramObserver("message")

    async def failing(request, next_):
        raise RuntimeError("middleware broke")

    observer.inner_middleware.register(failing)
    observer.register(lambda: None)

    with pytest.raises(MiddlewareError) as exc_info:
        await observer.trigger(make_request(bot))

    assert exc_info.value.middleware_name.endswith("failing")


async def test_simple_observer_passes_declared_kwargs():
    observer = SimpleObserver("startup")
    seen = {}

    @observer
    async def on_startup(dispatcher):
        seen["first"] = dispatcher

    @observer
    def on_startup_all(**kwargs):
        seen["second"] = sorted(kwargs)

    await observer.trigger(dispatcher="dp", bots=[])

    assert seen == {"first": "dp", "second": ["bots", "dispatcher"]}
