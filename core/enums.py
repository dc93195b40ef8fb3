"""Enumerations shared by the models, filters and dispatcher.

Values match the strings used by the Telegram Bot API so they can be passed
straight into request payloads (e.g. ``allowed_updates``).
"""
from enum import Enum


class UpdateType(str, Enum):
    """Kinds of events an incoming update can carry."""

    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    INLINE_QUERY = "inline_query"
    CHOSEN_INLINE_RESULT = "chosen_inline_result"
    CALLBACK_QUERY = "callback_query"
    SHIPPING_QUERY = "shipping_query"
    PRE_CHECKOUT_QUERY = "pre_checkout_query"
    POLL = "poll"
    POLL_ANSWER = "poll_answer"
    MY_CHAT_MEMBER = "my_chat_member"
    CHAT_MEMBER = "chat_member"
    CHAT_JOIN_REQUEST = "chat_join_request"

    def __str__(self) -> str:
        return self.value


class ChatType(str, Enum):
    PRIVATE = "private"
    GROUP = "group"
    SUPERGROUP = "supergroup"
    CHANNEL = "channel"
    # Only reported in inline queries sent from a secret chat
    SENDER = "sender"

    def __str__(self) -> str:
        return self.value


class ContentType(str, Enum):
    """Content kinds a message can carry, resolved by ``Message.content_type``."""

    TEXT = "text"
    ANIMATION = "animation"
    AUDIO = "audio"
    DOCUMENT = "document"
    PHOTO = "photo"
    STICKER = "sticker"
    VIDEO = "video"
    VIDEO_NOTE = "video_note"
    VOICE = "voice"
    CONTACT = "contact"
    DICE = "dice"
    GAME = "game"
    POLL = "poll"
    VENUE = "venue"
    LOCATION = "location"
    NEW_CHAT_MEMBERS = "new_chat_members"
    LEFT_CHAT_MEMBER = "left_chat_member"
    NEW_CHAT_TITLE = "new_chat_title"
    PINNED_MESSAGE = "pinned_message"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value
