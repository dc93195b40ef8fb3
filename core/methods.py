"""Typed Bot API methods.

Each method is a dataclass naming its API endpoint, serialising its fields
into the request payload and turning the raw ``result`` back into a typed
value. Only the methods the dispatcher and the bundled features need are
defined here.
"""
import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from core.models import Message, TelegramObject, Update, User, parse_update


def _serialize(value: Any) -> Any:
    if isinstance(value, TelegramObject):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


@dataclass
class TelegramMethod:
    """Base class for API methods.

    Attributes:
        api_method: Endpoint name, e.g. ``sendMessage``
    """
    api_method: ClassVar[str] = ""

    def build_params(self) -> Dict[str, Any]:
        """Request payload with unset (None) fields left out."""
        params: Dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is not None:
                params[f.name] = _serialize(value)
        return params

    def build_result(self, raw: Any) -> Any:
        """Convert the ``result`` field of a successful response."""
        return raw


@dataclass
class GetMe(TelegramMethod):
    api_method: ClassVar[str] = "getMe"

    def build_result(self, raw: Any) -> User:
        return User.from_dict(raw)


@dataclass
class GetUpdates(TelegramMethod):
    api_method: ClassVar[str] = "getUpdates"

    offset: Optional[int] = None
    limit: Optional[int] = None
    timeout: Optional[int] = None
    allowed_updates: Optional[List[str]] = None

    def build_result(self, raw: Any) -> List[Update]:
        return [parse_update(item) for item in raw]


@dataclass
class SendMessage(TelegramMethod):
    api_method: ClassVar[str] = "sendMessage"

    chat_id: Union[int, str]
    text: str
    message_thread_id: Optional[int] = None
    parse_mode: Optional[str] = None
    disable_notification: Optional[bool] = None
    reply_to_message_id: Optional[int] = None
    reply_markup: Optional[Dict[str, Any]] = None

    def build_result(self, raw: Any) -> Message:
        return Message.from_dict(raw)


@dataclass
class AnswerCallbackQuery(TelegramMethod):
    api_method: ClassVar[str] = "answerCallbackQuery"

    callback_query_id: str
    text: Optional[str] = None
    show_alert: Optional[bool] = None
    url: Optional[str] = None
    cache_time: Optional[int] = None

    def build_result(self, raw: Any) -> bool:
        return bool(raw)


@dataclass
class DeleteWebhook(TelegramMethod):
    api_method: ClassVar[str] = "deleteWebhook"

    drop_pending_updates: Optional[bool] = None

    def build_result(self, raw: Any) -> bool:
        return bool(raw)
