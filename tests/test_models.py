import pytest

from core.enums import ChatType, ContentType, UpdateType
from core.errors import ConvertToTypeError, UnknownUpdateTypeError
from core.models import CallbackQuery, Message, parse_update
from tests.helpers import make_callback, make_message, raw_message


def test_parse_message_update():
    update = make_message("hi", update_id=10, user_id=5, chat_id=-100, chat_type="supergroup")

    assert update.id == 10
    assert update.type is UpdateType.MESSAGE
    assert isinstance(update.message, Message)
    assert update.callback_query is None
    assert update.from_user.id == 5
    assert update.from_user.username == "alice"
    assert update.chat.id == -100
    assert update.chat.chat_type is ChatType.SUPERGROUP
    assert update.text == "hi"


def test_event_as():
    update = make_message("hi")

    assert update.event_as(Message) is update.message
    with pytest.raises(ConvertToTypeError):
        update.event_as(CallbackQuery)


def test_unknown_update_kind():
    with pytest.raises(UnknownUpdateTypeError):
        parse_update({"update_id": 3, "business_message": {}})


def test_callback_query_accessors():
    update = make_callback("buy")

    assert update.type is UpdateType.CALLBACK_QUERY
    assert update.text == "buy"
    assert update.chat.id == 100
    assert update.message_thread_id is None


def test_content_type_and_caption():
    update = parse_update(raw_message(None, photo=[{"file_id": "x"}], caption="look"))

    assert update.message.content_type is ContentType.PHOTO
    assert update.text == "look"


def test_thread_id_only_for_topic_messages():
    plain = make_message("hi", message_thread_id=7)
    topic = make_message("hi", message_thread_id=7, is_topic_message=True)

    assert plain.message_thread_id is None
    assert topic.message_thread_id == 7


def test_to_dict_restores_api_names():
    data = raw_message("hi", update_id=4)
    update = parse_update(data)

    dumped = update.to_dict()
    assert dumped["update_id"] == 4
    assert dumped["message"]["from"]["id"] == 100
    assert "from_user" not in dumped["message"]
