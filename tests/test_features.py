import pytest

from core.dispatcher import Dispatcher
from core.middlewares.fsm_context import FSMContextMiddleware
from core.models import parse_update
from core.router import Router
from features import echo, feedback, start
from storage.fsm import MemoryStorage
from tests.helpers import make_message, raw_message


@pytest.fixture
def dispatcher():
    router = Router("main")
    router.update.outer_middleware.register(FSMContextMiddleware(MemoryStorage()))
    router.include_routers(start.build_router(), feedback.build_router(), echo.build_router())
    return Dispatcher.builder().main_router(router).build()


def replies(session):
    return [m.text for m in session.sent("sendMessage")]


async def test_start_greets_user(dispatcher, bot, session):
    result = await dispatcher.feed_update(bot, make_message("/start"))

    assert result.is_handled
    assert replies(session) == ["Hello, Alice!"]


async def test_help_lists_commands(dispatcher, bot, session):
    await dispatcher.feed_update(bot, make_message("/help"))

    assert "/feedback" in replies(session)[0]


async def test_echo_only_in_private_chats(dispatcher, bot, session):
    private = await dispatcher.feed_update(bot, make_message("ping"))
    group = await dispatcher.feed_update(bot, make_message("ping", chat_id=-5, chat_type="group"))

    assert private.is_handled
    assert group.is_unhandled
    assert replies(session) == ["ping"]


async def test_feedback_dialog(dispatcher, bot, session):
    await dispatcher.feed_update(bot, make_message("/feedback", update_id=1))
    await dispatcher.feed_update(bot, make_message("Great bot", update_id=2))
    await dispatcher.feed_update(bot, make_message("echo me", update_id=3))

    assert replies(session) == [
        "What would you like to tell us? Send /cancel to abort.",
        "Thanks, your feedback was recorded.",
        "echo me",
    ]


async def test_feedback_waits_through_stickers(dispatcher, bot, session):
    await dispatcher.feed_update(bot, make_message("/feedback", update_id=1))
    sticker = parse_update(raw_message(None, update_id=2, sticker={"file_id": "s"}))
    result = await dispatcher.feed_update(bot, sticker)

    assert result.is_unhandled
    await dispatcher.feed_update(bot, make_message("/cancel", update_id=3))
    assert replies(session)[-1] == "Cancelled."


async def test_cancel_without_dialog(dispatcher, bot, session):
    await dispatcher.feed_update(bot, make_message("/cancel"))

    assert replies(session) == ["Nothing to cancel."]
