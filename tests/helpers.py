import json
from collections import defaultdict
from typing import Any, Dict, List, Optional

import trio

from core.client import BaseSession, ClientResponse
from core.methods import TelegramMethod
from core.models import Update, parse_update

BOT_TOKEN = "42:TEST-token"


class FakeSession(BaseSession):
    """Records sent methods and replays queued responses.

    Without a queued response ``getUpdates`` waits a second and returns no
    updates (so polling tests can run on the autojump clock), ``sendMessage``
    echoes a message built from the request and everything else returns True.
    """

    def __init__(self) -> None:
        super().__init__(api_url="https://api.test")
        self.requests: List[TelegramMethod] = []
        self.timeouts: List[Optional[float]] = []
        self.times: List[float] = []
        self.responses: Dict[str, List[ClientResponse]] = defaultdict(list)
        self.closed = False

    def add_result(self, api_method: str, result: Any) -> None:
        self.responses[api_method].append(
            ClientResponse(status_code=200, content=json.dumps({"ok": True, "result": result}))
        )

    def add_error(
        self,
        api_method: str,
        status_code: int,
        description: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload: Dict[str, Any] = {"ok": False, "error_code": status_code, "description": description}
        if parameters:
            payload["parameters"] = parameters
        self.responses[api_method].append(
            ClientResponse(status_code=status_code, content=json.dumps(payload))
        )

    def add_raw(self, api_method: str, status_code: int, content: str) -> None:
        self.responses[api_method].append(ClientResponse(status_code=status_code, content=content))

    def sent(self, api_method: str) -> List[TelegramMethod]:
        return [m for m in self.requests if m.api_method == api_method]

    async def send_request(self, bot, method, timeout=None):
        self.requests.append(method)
        self.timeouts.append(timeout)
        self.times.append(trio.current_time())
        queue = self.responses.get(method.api_method)
        if queue:
            return queue.pop(0)
        if method.api_method == "getUpdates":
            await trio.sleep(1)
            result: Any = []
        elif method.api_method == "sendMessage":
            params = method.build_params()
            result = {
                "message_id": len(self.requests),
                "date": 0,
                "chat": {"id": params["chat_id"], "type": "private"},
                "text": params["text"],
            }
        else:
            result = True
        return ClientResponse(status_code=200, content=json.dumps({"ok": True, "result": result}))

    async def close(self) -> None:
        self.closed = True


def raw_message(
    text: Optional[str] = "hello",
    update_id: int = 1,
    user_id: int = 100,
    chat_id: Optional[int] = None,
    chat_type: str = "private",
    username: Optional[str] = "alice",
    **extra: Any,
) -> Dict[str, Any]:
    """Raw ``message`` update as the Bot API sends it."""
    message: Dict[str, Any] = {
        "message_id": update_id,
        "date": 1700000000,
        "chat": {"id": chat_id if chat_id is not None else user_id, "type": chat_type},
        "from": {"id": user_id, "is_bot": False, "first_name": "Alice", "username": username},
    }
    if text is not None:
        message["text"] = text
    message.update(extra)
    return {"update_id": update_id, "message": message}


def make_message(text: Optional[str] = "hello", **kwargs: Any) -> Update:
    return parse_update(raw_message(text, **kwargs))


def make_callback(data: str = "yes", update_id: int = 1, user_id: int = 100) -> Update:
    return parse_update(
        {
            "update_id": update_id,
            "callback_query": {
                "id": "cb1",
                "from": {"id": user_id, "first_name": "Alice"},
                "chat_instance": "ci",
                "data": data,
                "message": {
                    "message_id": 5,
                    "date": 0,
                    "chat": {"id": user_id, "type": "private"},
                    "text": "pick one",
                },
            },
        }
    )
