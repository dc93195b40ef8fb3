"""Data models for Telegram Bot API objects.

Defines dataclasses for the API objects the dispatcher works with and
parsing utilities turning raw update dictionaries into an ``Update`` that
carries exactly one concrete event.
"""
import dataclasses
import functools
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from core.enums import ChatType, ContentType, UpdateType
from core.errors import ConvertToTypeError, UnknownUpdateTypeError

T = TypeVar("T", bound="TelegramObject")

# API keys that clash with Python keywords
_RENAMED_FIELDS = {"from": "from_user"}
_API_FIELDS = {v: k for k, v in _RENAMED_FIELDS.items()}


@functools.lru_cache(maxsize=None)
def _field_hints(cls: type) -> Dict[str, Any]:
    names = {f.name for f in dataclasses.fields(cls)}
    return {k: v for k, v in get_type_hints(cls).items() if k in names}


def _convert(hint: Any, value: Any) -> Any:
    """Convert a raw JSON value according to a dataclass field annotation."""
    if value is None:
        return None
    origin = get_origin(hint)
    if origin is Union:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return _convert(args[0], value)
        return value
    if origin is list:
        args = get_args(hint)
        item_hint = args[0] if args else Any
        return [_convert(item_hint, v) for v in value]
    if isinstance(hint, type) and issubclass(hint, TelegramObject) and isinstance(value, dict):
        return hint.from_dict(value)
    return value


def _dump(value: Any) -> Any:
    if isinstance(value, TelegramObject):
        return value.to_dict()
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


@dataclass
class TelegramObject:
    """Base class for API objects with dict conversion helpers."""

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Build the object from an API dictionary, ignoring unknown keys.

        Args:
            data: Raw dictionary as returned by the Bot API

        Returns:
            Instance of ``cls`` with nested objects converted as well
        """
        hints = _field_hints(cls)
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _RENAMED_FIELDS.get(key, key)
            if name in hints:
                kwargs[name] = _convert(hints[name], value)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Dump the object back to an API dictionary, skipping empty fields."""
        result: Dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            result[_API_FIELDS.get(f.name, f.name)] = _dump(value)
        return result


@dataclass
class User(TelegramObject):
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None

    @property
    def full_name(self) -> str:
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name


@dataclass
class Chat(TelegramObject):
    id: int
    type: str = ChatType.PRIVATE.value
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_forum: Optional[bool] = None

    @property
    def chat_type(self) -> ChatType:
        return ChatType(self.type)


@dataclass
class BotCommand(TelegramObject):
    command: str
    description: str = ""


@dataclass
class MessageEntity(TelegramObject):
    type: str
    offset: int
    length: int
    url: Optional[str] = None
    user: Optional[User] = None
    language: Optional[str] = None


@dataclass
class PollOption(TelegramObject):
    text: str
    voter_count: int = 0


@dataclass
class Poll(TelegramObject):
    id: str
    question: str = ""
    options: List[PollOption] = field(default_factory=list)
    total_voter_count: int = 0
    is_closed: bool = False
    is_anonymous: bool = True
    type: str = "regular"
    allows_multiple_answers: bool = False


# Checked in order; the first populated field decides the content type
_CONTENT_FIELDS = (
    ("text", ContentType.TEXT),
    ("animation", ContentType.ANIMATION),
    ("audio", ContentType.AUDIO),
    ("document", ContentType.DOCUMENT),
    ("photo", ContentType.PHOTO),
    ("sticker", ContentType.STICKER),
    ("video", ContentType.VIDEO),
    ("video_note", ContentType.VIDEO_NOTE),
    ("voice", ContentType.VOICE),
    ("contact", ContentType.CONTACT),
    ("dice", ContentType.DICE),
    ("game", ContentType.GAME),
    ("poll", ContentType.POLL),
    ("venue", ContentType.VENUE),
    ("location", ContentType.LOCATION),
    ("new_chat_members", ContentType.NEW_CHAT_MEMBERS),
    ("left_chat_member", ContentType.LEFT_CHAT_MEMBER),
    ("new_chat_title", ContentType.NEW_CHAT_TITLE),
    ("pinned_message", ContentType.PINNED_MESSAGE),
)


@dataclass
class Message(TelegramObject):  # pylint: disable=too-many-instance-attributes
    """A message of any kind.

    Media payloads are kept as raw dictionaries: the dispatcher only needs
    to know which kind of content is present.
    """
    message_id: int
    date: int
    chat: Chat
    from_user: Optional[User] = None
    sender_chat: Optional[Chat] = None
    message_thread_id: Optional[int] = None
    is_topic_message: Optional[bool] = None
    reply_to_message: Optional["Message"] = None
    text: Optional[str] = None
    entities: Optional[List[MessageEntity]] = None
    caption: Optional[str] = None
    animation: Optional[Dict[str, Any]] = None
    audio: Optional[Dict[str, Any]] = None
    document: Optional[Dict[str, Any]] = None
    photo: Optional[List[Dict[str, Any]]] = None
    sticker: Optional[Dict[str, Any]] = None
    video: Optional[Dict[str, Any]] = None
    video_note: Optional[Dict[str, Any]] = None
    voice: Optional[Dict[str, Any]] = None
    contact: Optional[Dict[str, Any]] = None
    dice: Optional[Dict[str, Any]] = None
    game: Optional[Dict[str, Any]] = None
    poll: Optional[Poll] = None
    venue: Optional[Dict[str, Any]] = None
    location: Optional[Dict[str, Any]] = None
    new_chat_members: Optional[List[User]] = None
    left_chat_member: Optional[User] = None
    new_chat_title: Optional[str] = None
    pinned_message: Optional["Message"] = None

    @property
    def content_type(self) -> ContentType:
        for name, content_type in _CONTENT_FIELDS:
            if getattr(self, name) is not None:
                return content_type
        return ContentType.UNKNOWN

    @property
    def text_or_caption(self) -> Optional[str]:
        return self.text if self.text is not None else self.caption


@dataclass
class CallbackQuery(TelegramObject):
    id: str
    from_user: User
    chat_instance: str = ""
    message: Optional[Message] = None
    inline_message_id: Optional[str] = None
    data: Optional[str] = None
    game_short_name: Optional[str] = None


@dataclass
class InlineQuery(TelegramObject):
    id: str
    from_user: User
    query: str = ""
    offset: str = ""
    chat_type: Optional[str] = None
    location: Optional[Dict[str, Any]] = None


@dataclass
class ChosenInlineResult(TelegramObject):
    result_id: str
    from_user: User
    query: str = ""
    inline_message_id: Optional[str] = None
    location: Optional[Dict[str, Any]] = None


@dataclass
class ShippingQuery(TelegramObject):
    id: str
    from_user: User
    invoice_payload: str = ""
    shipping_address: Optional[Dict[str, Any]] = None


@dataclass
class PreCheckoutQuery(TelegramObject):
    id: str
    from_user: User
    currency: str = ""
    total_amount: int = 0
    invoice_payload: str = ""
    shipping_option_id: Optional[str] = None
    order_info: Optional[Dict[str, Any]] = None


@dataclass
class PollAnswer(TelegramObject):
    poll_id: str
    option_ids: List[int] = field(default_factory=list)
    user: Optional[User] = None
    voter_chat: Optional[Chat] = None


@dataclass
class ChatMemberUpdated(TelegramObject):
    chat: Chat
    from_user: User
    date: int = 0
    old_chat_member: Dict[str, Any] = field(default_factory=dict)
    new_chat_member: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatJoinRequest(TelegramObject):
    chat: Chat
    from_user: User
    user_chat_id: int = 0
    date: int = 0
    bio: Optional[str] = None


EVENT_TYPES: Dict[UpdateType, Type[TelegramObject]] = {
    UpdateType.MESSAGE: Message,
    UpdateType.EDITED_MESSAGE: Message,
    UpdateType.CHANNEL_POST: Message,
    UpdateType.EDITED_CHANNEL_POST: Message,
    UpdateType.INLINE_QUERY: InlineQuery,
    UpdateType.CHOSEN_INLINE_RESULT: ChosenInlineResult,
    UpdateType.CALLBACK_QUERY: CallbackQuery,
    UpdateType.SHIPPING_QUERY: ShippingQuery,
    UpdateType.PRE_CHECKOUT_QUERY: PreCheckoutQuery,
    UpdateType.POLL: Poll,
    UpdateType.POLL_ANSWER: PollAnswer,
    UpdateType.MY_CHAT_MEMBER: ChatMemberUpdated,
    UpdateType.CHAT_MEMBER: ChatMemberUpdated,
    UpdateType.CHAT_JOIN_REQUEST: ChatJoinRequest,
}


def _event_property(kind: UpdateType) -> property:
    def getter(self: "Update") -> Any:
        return self.event if self.type is kind else None

    getter.__doc__ = f"The {kind.value} carried by this update, or None."
    return property(getter)


@dataclass
class Update(TelegramObject):
    """One inbound event.

    Attributes:
        id: Update identifier used as polling offset
        type: Which kind of event the update carries
        event: The concrete event object
    """
    id: int
    type: UpdateType
    event: TelegramObject

    message = _event_property(UpdateType.MESSAGE)
    edited_message = _event_property(UpdateType.EDITED_MESSAGE)
    channel_post = _event_property(UpdateType.CHANNEL_POST)
    edited_channel_post = _event_property(UpdateType.EDITED_CHANNEL_POST)
    inline_query = _event_property(UpdateType.INLINE_QUERY)
    chosen_inline_result = _event_property(UpdateType.CHOSEN_INLINE_RESULT)
    callback_query = _event_property(UpdateType.CALLBACK_QUERY)
    shipping_query = _event_property(UpdateType.SHIPPING_QUERY)
    pre_checkout_query = _event_property(UpdateType.PRE_CHECKOUT_QUERY)
    poll = _event_property(UpdateType.POLL)
    poll_answer = _event_property(UpdateType.POLL_ANSWER)
    my_chat_member = _event_property(UpdateType.MY_CHAT_MEMBER)
    chat_member = _event_property(UpdateType.CHAT_MEMBER)
    chat_join_request = _event_property(UpdateType.CHAT_JOIN_REQUEST)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Update":
        return parse_update(data)

    def to_dict(self) -> Dict[str, Any]:
        return {"update_id": self.id, self.type.value: self.event.to_dict()}

    def event_as(self, event_cls: Type[T]) -> T:
        """Return the event if it is an instance of ``event_cls``.

        Raises:
            ConvertToTypeError: The update carries another kind of event
        """
        if isinstance(self.event, event_cls):
            return self.event
        raise ConvertToTypeError(self.type.value, event_cls.__name__)

    @property
    def from_user(self) -> Optional[User]:
        """Sender of the event, when the event kind has one."""
        user = getattr(self.event, "from_user", None)
        if user is None and isinstance(self.event, PollAnswer):
            user = self.event.user
        return user

    @property
    def chat(self) -> Optional[Chat]:
        event = self.event
        if isinstance(event, CallbackQuery):
            return event.message.chat if event.message else None
        if isinstance(event, PollAnswer):
            return event.voter_chat
        return getattr(event, "chat", None)

    @property
    def message_thread_id(self) -> Optional[int]:
        """Forum topic id for messages (or callback messages) sent in a topic."""
        message: Optional[Message] = None
        if isinstance(self.event, Message):
            message = self.event
        elif isinstance(self.event, CallbackQuery):
            message = self.event.message
        if message is not None and message.is_topic_message:
            return message.message_thread_id
        return None

    @property
    def text(self) -> Optional[str]:
        """Text-like payload: message text or caption, callback data, inline query."""
        event = self.event
        if isinstance(event, Message):
            return event.text_or_caption
        if isinstance(event, CallbackQuery):
            return event.data
        if isinstance(event, (InlineQuery, ChosenInlineResult)):
            return event.query
        return None


def parse_update(data: Dict[str, Any]) -> Update:
    """Parse a raw update dictionary into an ``Update``.

    Args:
        data: Raw update dictionary from the Bot API

    Returns:
        Update carrying the first known event kind found in ``data``

    Raises:
        UnknownUpdateTypeError: No known event kind is present
    """
    update_id = data.get("update_id")
    for kind, event_cls in EVENT_TYPES.items():
        raw_event = data.get(kind.value)
        if raw_event is not None:
            return Update(id=update_id, type=kind, event=event_cls.from_dict(raw_event))
    raise UnknownUpdateTypeError(update_id, sorted(data))
