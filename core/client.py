"""Trio-friendly client for the Telegram Bot API.

The ``Bot`` is the client handle passed through the dispatch pipeline. It
owns the token and delegates transport to a session object:

1. ``BaseSession`` decodes API responses and maps error responses onto the
   ``TelegramAPIError`` family (rate limiting, auth, not found, conflict,
   payload too large, server errors...).

2. ``RequestsSession`` sends requests with a pooled ``requests.Session``,
   running the blocking calls on worker threads via
   ``trio.to_thread.run_sync``. One session is safely shared by every
   update being processed concurrently.

No retry happens here: a rate-limited request raises ``RetryAfterError``
carrying the delay and the caller decides what to do with it.
"""
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

import requests
import trio

from core.errors import (
    BadRequestError,
    ConflictError,
    DecodeError,
    EntityTooLargeError,
    ForbiddenError,
    MigrateToChatError,
    NetworkError,
    NotFoundError,
    RestartingTelegramError,
    RetryAfterError,
    ServerError,
    TelegramAPIError,
    UnauthorizedError,
    UnknownAPIError,
)
from core.methods import GetMe, TelegramMethod
from core.models import User
from utils.token import extract_bot_id, hide_token

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT = 60.0

_STATUS_ERRORS: Dict[int, Type[TelegramAPIError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    413: EntityTooLargeError,
}


@dataclass
class ClientResponse:
    """Raw HTTP response as seen by a session.

    Attributes:
        status_code: HTTP status code
        content: Response body text
    """
    status_code: int
    content: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code <= 226


class BaseSession:
    """
    Transport used by ``Bot``.
    Subclasses only implement ``send_request``.
    """

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def method_url(self, token: str, api_method: str) -> str:
        return f"{self.api_url}/bot{token}/{api_method}"

    async def send_request(
        self, bot: "Bot", method: TelegramMethod, timeout: Optional[float] = None
    ) -> ClientResponse:
        """Send ``method`` for ``bot`` and return the raw response.

        Raises:
            NetworkError: The request couldn't be completed
        """
        raise NotImplementedError

    def decode_response(self, method: TelegramMethod, response: ClientResponse) -> Dict[str, Any]:
        try:
            payload = json.loads(response.content)
        except ValueError as e:
            logger.error("Cannot parse response of %s: %s", method.api_method, e)
            raise DecodeError(f"Invalid JSON in {method.api_method} response", response.content) from e
        if not isinstance(payload, dict):
            raise DecodeError(f"Unexpected {method.api_method} response shape", response.content)
        return payload

    def check_response(
        self, method: TelegramMethod, payload: Dict[str, Any], status_code: int
    ) -> Any:
        """Return the ``result`` of a successful response or raise the matching API error.

        Args:
            method: Method the response belongs to
            payload: Decoded response body
            status_code: HTTP status code

        Returns:
            The raw ``result`` field

        Raises:
            DecodeError: The response violates the API contract
            TelegramAPIError: The API rejected the request
        """
        name = method.api_method
        if 200 <= status_code <= 226 and payload.get("ok"):
            if "result" not in payload:
                raise DecodeError("Contract violation: result is empty in success response")
            return payload["result"]

        description = payload.get("description")
        if description is None:
            logger.error(
                "Contract violation: description is empty in error response "
                "(error_code=%s, parameters=%s)",
                payload.get("error_code"),
                payload.get("parameters"),
            )
            raise DecodeError("Contract violation: description is empty in error response")

        parameters = payload.get("parameters") or {}
        if parameters.get("retry_after") is not None:
            raise RetryAfterError(name, description, int(parameters["retry_after"]))
        if parameters.get("migrate_to_chat_id") is not None:
            raise MigrateToChatError(name, description, int(parameters["migrate_to_chat_id"]))

        error_cls = _STATUS_ERRORS.get(status_code)
        if error_cls is not None:
            raise error_cls(name, description)
        if status_code == 500:
            if "restart" in description:
                raise RestartingTelegramError(name, description)
            raise ServerError(name, description)

        logger.error("Unknown status code %s from %s", status_code, name)
        raise UnknownAPIError(name, description, status_code)

    async def make_request(
        self, bot: "Bot", method: TelegramMethod, timeout: Optional[float] = None
    ) -> Any:
        """Send, decode and check one request, returning the raw ``result``."""
        response = await self.send_request(bot, method, timeout)
        logger.debug("Got %s response for %s", response.status_code, method.api_method)
        payload = self.decode_response(method, response)
        try:
            return self.check_response(method, payload, response.status_code)
        except TelegramAPIError as e:
            logger.warning("Request %s failed: %s", method.api_method, e.message)
            raise

    async def close(self) -> None:
        """Release transport resources. Nothing to do by default."""


class RequestsSession(BaseSession):
    """Session backed by a pooled ``requests.Session``.
    Uses trio.to_thread.run_sync for the blocking calls.
    """

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(api_url=api_url, timeout=timeout)
        self._http = requests.Session()

    async def send_request(
        self, bot: "Bot", method: TelegramMethod, timeout: Optional[float] = None
    ) -> ClientResponse:
        url = self.method_url(bot.token, method.api_method)
        params = method.build_params()

        def _post() -> requests.Response:
            return self._http.post(url, json=params, timeout=timeout or self.timeout)

        try:
            res = await trio.to_thread.run_sync(_post)
        except requests.RequestException as e:
            # Exception text may contain the URL, hence the token
            message = str(e).replace(bot.token, bot.hidden_token)
            logger.error("Cannot send %s request: %s", method.api_method, message)
            raise NetworkError(f"Cannot send {method.api_method} request: {message}") from None
        return ClientResponse(status_code=res.status_code, content=res.text)

    async def close(self) -> None:
        await trio.to_thread.run_sync(self._http.close)


class Bot:
    """
    Client handle for one bot account.
    Holds the token and sends typed methods through its session.
    """

    def __init__(
        self,
        token: str,
        session: Optional[BaseSession] = None,
        username: Optional[str] = None,
    ) -> None:
        self.bot_id = extract_bot_id(token)
        self.token = token
        self.hidden_token = hide_token(token)
        self.session = session if session is not None else RequestsSession()
        self.username = username

    @classmethod
    def from_env(
        cls,
        env_var: str = "TELEGRAM_BOT_TOKEN",
        session: Optional[BaseSession] = None,
    ) -> "Bot":
        """Create a Bot with the token read from an environment variable."""
        token = os.environ.get(env_var)
        if not token:
            raise RuntimeError(f"Environment variable {env_var} with the bot token is not set")
        return cls(token, session=session)

    async def request(self, method: TelegramMethod, timeout: Optional[float] = None) -> Any:
        """Send ``method`` and return the undecoded ``result`` field."""
        logger.debug("Sending %s (bot_id=%s)", method.api_method, self.bot_id)
        return await self.session.make_request(self, method, timeout)

    async def send(self, method: TelegramMethod, timeout: Optional[float] = None) -> Any:
        """Send ``method`` and return its typed result.

        Raises:
            SessionError: Network, decoding or API-level failure
        """
        raw = await self.request(method, timeout)
        try:
            return method.build_result(raw)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise DecodeError(f"Cannot build {method.api_method} result: {e}", repr(raw)) from e

    async def get_me(self) -> User:
        """Fetch the bot's own user and remember its username."""
        me = await self.send(GetMe())
        self.username = me.username
        return me

    async def close(self) -> None:
        await self.session.close()

    def __repr__(self) -> str:
        return f"Bot(bot_id={self.bot_id}, token={self.hidden_token})"
