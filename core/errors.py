"""Error taxonomy for the dispatch core and the API client.

Extraction errors are recovered locally by observers (the next handler is
tried). Handler errors are carried back in the handler response, middleware
errors abort the current update only. Session errors describe failures when
talking to the Telegram Bot API; the core never retries them.
"""
from typing import Optional


class BotFrameworkError(Exception):
    """Base class for every error raised by this package."""


class ExtractionError(BotFrameworkError):
    """A handler argument could not be produced from the event and context."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Extraction error: {self.message}"


class MissingContextKeyError(ExtractionError):
    """Requested context slot is absent."""

    def __init__(self, key: object) -> None:
        self.key = key
        name = key.__name__ if isinstance(key, type) else repr(key)
        super().__init__(f"context has no value for key {name}")


class ConvertToTypeError(ExtractionError):
    """The update carries another kind of event than the one requested."""

    def __init__(self, from_type: str, to_type: str) -> None:
        self.from_type = from_type
        self.to_type = to_type
        super().__init__(f"can't convert from `{from_type}` to `{to_type}`")


class UnknownUpdateTypeError(BotFrameworkError):
    """Raw update payload doesn't contain any known event kind."""

    def __init__(self, update_id: Optional[int], keys: list) -> None:
        self.update_id = update_id
        self.keys = keys
        super().__init__(f"Unknown update type in update {update_id}, keys: {keys}")


class HandlerError(BotFrameworkError):
    """User handler body failed. The original exception is ``__cause__``."""

    def __init__(self, handler_name: str, error: BaseException) -> None:
        super().__init__(f"Handler {handler_name} failed: {error!r}")
        self.handler_name = handler_name
        self.error = error


class MiddlewareError(BotFrameworkError):
    """A middleware's own logic failed while processing an update."""

    def __init__(self, middleware_name: str, error: BaseException) -> None:
        super().__init__(f"Middleware {middleware_name} failed: {error!r}")
        self.middleware_name = middleware_name
        self.error = error


class SessionError(BotFrameworkError):
    """Base class for failures when communicating with the Bot API."""


class NetworkError(SessionError):
    """Request couldn't be sent or the connection broke."""


class DecodeError(SessionError):
    """Response body isn't a valid API response."""

    def __init__(self, message: str, content: str = "") -> None:
        super().__init__(message)
        self.content = content


class TelegramAPIError(SessionError):
    """The API explicitly rejected a request.

    Attributes:
        method: API method name that failed
        message: Description returned by the API
    """

    url: Optional[str] = None

    def __init__(self, method: str, message: str) -> None:
        super().__init__(message)
        self.method = method
        self.message = message

    def __str__(self) -> str:
        text = f"Telegram server says - {self.message}"
        if self.url:
            text += f"\n(background on this error at: {self.url})"
        return text


class RetryAfterError(TelegramAPIError):
    url = "https://core.telegram.org/bots/faq#my-bot-is-hitting-limits-how-do-i-avoid-this"

    def __init__(self, method: str, message: str, retry_after: int) -> None:
        super().__init__(method, message)
        self.retry_after = retry_after

    def __str__(self) -> str:
        return f"{super().__str__()}\nRetry after {self.retry_after} seconds"


class MigrateToChatError(TelegramAPIError):
    url = "https://core.telegram.org/bots/api#responseparameters"

    def __init__(self, method: str, message: str, migrate_to_chat_id: int) -> None:
        super().__init__(method, message)
        self.migrate_to_chat_id = migrate_to_chat_id


class BadRequestError(TelegramAPIError):
    pass


class UnauthorizedError(TelegramAPIError):
    pass


class ForbiddenError(TelegramAPIError):
    pass


class NotFoundError(TelegramAPIError):
    pass


class ConflictError(TelegramAPIError):
    pass


class EntityTooLargeError(TelegramAPIError):
    url = "https://core.telegram.org/bots/api#sending-files"


class ServerError(TelegramAPIError):
    pass


class RestartingTelegramError(ServerError):
    pass


class UnknownAPIError(TelegramAPIError):
    """Error response with a status code the client doesn't map."""

    def __init__(self, method: str, message: str, status_code: int) -> None:
        super().__init__(method, message)
        self.status_code = status_code
