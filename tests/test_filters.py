import re

import pytest

from core.context import Context
from core.enums import ChatType, ContentType
from core.filters.base import FilterFunc, as_filter
from core.filters.chat_type import ChatTypeFilter
from core.filters.command import Command, CommandObject, parse_command
from core.filters.content_type import ContentTypeFilter
from core.filters.logical import AndFilter, InvertFilter, OrFilter
from core.filters.state import StateFilter
from core.filters.text import TextFilter
from core.filters.user import UserFilter
from core.models import BotCommand, parse_update
from storage.fsm import FSMContext, MemoryStorage, StorageKey
from tests.helpers import make_callback, make_message, raw_message


async def check(filter_, bot, update, context=None):
    return await filter_.check(bot, update, context if context is not None else Context())


async def test_command_start_scenario(bot):
    command = Command("start")

    assert await check(command, bot, make_message("/start"))
    assert not await check(command, bot, make_message("/stop"))
    assert not await check(command, bot, make_message("hello"))


async def test_command_object_stored_in_context(bot):
    ctx = Context()

    assert await check(Command("start"), bot, make_message("/start@test_bot ref 42"), ctx)

    obj = ctx[CommandObject]
    assert obj.command == "start"
    assert obj.prefix == "/"
    assert obj.mention == "test_bot"
    assert obj.args == "ref 42"


async def test_command_mention_of_another_bot(bot):
    update = make_message("/start@other_bot")

    assert not await check(Command("start"), bot, update)
    assert await check(Command("start", ignore_mention=True), bot, update)


async def test_command_mention_is_case_insensitive(bot):
    assert await check(Command("start"), bot, make_message("/start@Test_Bot"))


async def test_command_prefix_and_case(bot):
    assert await check(Command("ban", prefix="!/"), bot, make_message("!ban 5"))
    assert not await check(Command("ban"), bot, make_message("!ban 5"))
    assert not await check(Command("ban"), bot, make_message("/BAN"))
    assert await check(Command("ban", ignore_case=True), bot, make_message("/BAN"))


async def test_command_patterns(bot):
    ctx = Context()
    assert await check(Command(BotCommand(command="help")), bot, make_message("/help"))
    assert await check(Command(re.compile(r"item_(\d+)")), bot, make_message("/item_12"), ctx)
    assert ctx[CommandObject].regexp_match.group(1) == "12"


async def test_command_without_text(bot):
    assert not await check(Command("start"), bot, make_message(None, sticker={"file_id": "s"}))


def test_parse_command():
    assert parse_command("/") is None
    assert parse_command("/@bot") is None
    assert parse_command("/start").args is None
    assert parse_command("/start  a  b").args == "a  b"


def test_command_requires_patterns():
    with pytest.raises(ValueError):
        Command()


async def test_chat_type_filter(bot):
    private = ChatTypeFilter(ChatType.PRIVATE)

    assert await check(private, bot, make_message("hi"))
    assert not await check(private, bot, make_message("hi", chat_id=-1, chat_type="group"))
    group = make_message("hi", chat_id=-1, chat_type="group")
    assert await check(ChatTypeFilter("group", "supergroup"), bot, group)


async def test_chat_type_filter_without_chat(bot):
    update = parse_update(
        {"update_id": 1, "inline_query": {"id": "q", "from": {"id": 1}, "query": "x"}}
    )

    assert not await check(ChatTypeFilter("private"), bot, update)


async def test_content_type_filter(bot):
    photo = parse_update(raw_message(None, photo=[{"file_id": "p"}]))

    assert await check(ContentTypeFilter(ContentType.TEXT), bot, make_message("hi"))
    assert not await check(ContentTypeFilter(ContentType.TEXT), bot, photo)
    assert await check(ContentTypeFilter("photo", "video"), bot, photo)
    assert not await check(ContentTypeFilter("text"), bot, make_callback())


@pytest.mark.parametrize(
    "kwargs, text, expected",
    [
        ({"equals": "hello"}, "hello", True),
        ({"equals": "hello"}, "Hello", False),
        ({"equals": "hello", "ignore_case": True}, "  HeLLo ", True),
        ({"contains": ["foo", "bar"]}, "a bar b", True),
        ({"starts_with": "buy"}, "buy milk", True),
        ({"ends_with": "!", "starts_with": "x"}, "wow!", True),
        ({"ends_with": "!"}, "wow", False),
        ({"contains": "MILK", "ignore_case": True}, "buy milk", True),
        ({"regex": r"\d{3}"}, "code 123 ok", True),
        ({"regex": r"^\d+$"}, "12a", False),
    ],
)
async def test_text_filter(bot, kwargs, text, expected):
    assert await check(TextFilter(**kwargs), bot, make_message(text)) is expected


async def test_text_filter_reads_callback_data(bot):
    assert await check(TextFilter(equals="yes"), bot, make_callback("yes"))


def test_text_filter_requires_criterion():
    with pytest.raises(ValueError):
        TextFilter()


async def test_user_filter(bot):
    update = make_message("hi", user_id=7, username="Alice")

    assert await check(UserFilter(ids=7), bot, update)
    assert await check(UserFilter(usernames="@alice"), bot, update)
    assert await check(UserFilter(ids=[1, 2], first_names="Alice"), bot, update)
    assert not await check(UserFilter(ids=[1, 2], usernames="bob"), bot, update)


async def test_state_filter(bot):
    storage = MemoryStorage()
    fsm = FSMContext(storage, StorageKey(bot_id=42, chat_id=1, user_id=1))
    ctx = Context()
    ctx.insert(fsm)
    update = make_message("hi")

    assert await check(StateFilter.none(), bot, update, ctx)
    assert await check(StateFilter.any(), bot, update, ctx)
    assert not await check(StateFilter("form:name"), bot, update, ctx)

    await fsm.set_state("form:name")

    assert await check(StateFilter("form:name", "form:age"), bot, update, ctx)
    assert not await check(StateFilter.none(), bot, update, ctx)


async def test_state_filter_without_fsm_context(bot):
    assert await check(StateFilter(None), bot, make_message("hi"))
    assert not await check(StateFilter("form:name"), bot, make_message("hi"))


async def test_logical_operators(bot):
    yes = FilterFunc(lambda bot, update, context: True)
    no = as_filter(lambda bot, update, context: False)
    update = make_message("hi")

    assert isinstance(yes & no, AndFilter)
    assert isinstance(yes | no, OrFilter)
    assert isinstance(~no, InvertFilter)
    assert not await check(yes & no, bot, update)
    assert await check(yes | no, bot, update)
    assert await check(~no, bot, update)
    assert await check(yes & ~no & yes, bot, update)
    assert len((yes & no & yes).filters) == 3


async def test_chained_operators_accept_plain_callables(bot):
    yes = FilterFunc(lambda bot, update, context: True)
    no = FilterFunc(lambda bot, update, context: False)
    update = make_message("hi")

    both = (yes & yes) & (lambda bot, update, context: True)
    either = (no | no) | (lambda bot, update, context: True)

    assert isinstance(both.filters[-1], FilterFunc)
    assert isinstance(either.filters[-1], FilterFunc)
    assert len(both.filters) == 3
    assert await check(both, bot, update)
    assert await check(either, bot, update)


async def test_filter_func_accepts_async_callables(bot):
    async def is_long(bot, update, context):
        return len(update.text or "") > 3

    assert await check(as_filter(is_long), bot, make_message("hello"))
    assert not await check(as_filter(is_long), bot, make_message("hi"))


def test_as_filter_rejects_non_callables():
    with pytest.raises(TypeError):
        as_filter(42)
