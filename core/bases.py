"""Values flowing through the dispatch pipeline.

``Request`` is what middlewares, filters and handlers receive,
``EventReturn`` is how handlers and middlewares steer processing and
``PropagateEventResult`` is what observers and routers report back.
"""
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from core.context import Context
from core.errors import HandlerError
from core.models import Update

if TYPE_CHECKING:
    from core.client import Bot


class EventReturn(Enum):
    """Signal returned by handlers and outer middlewares.

    SKIP: declined, try the next candidate
    CANCEL: stop processing this update
    FINISH: done (default for handlers returning anything else)
    """
    SKIP = "skip"
    CANCEL = "cancel"
    FINISH = "finish"


@dataclass(frozen=True)
class Request:
    """Everything one update's processing step needs.

    Attributes:
        bot: Client handle the update was received with
        update: The incoming update
        context: Shared per-update context
    """
    bot: "Bot"
    update: Update
    context: Context


@dataclass
class HandlerResponse:
    """Outcome of one handler invocation.

    Attributes:
        request: Request the handler was called with
        event_return: How the pipeline should continue
        value: Whatever the handler returned when it wasn't an EventReturn
        error: Set when the handler body raised
    """
    request: Request
    event_return: EventReturn = EventReturn.FINISH
    value: Any = None
    error: Optional[HandlerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PropagateStatus(Enum):
    REJECTED = "rejected"
    UNHANDLED = "unhandled"
    HANDLED = "handled"


@dataclass(frozen=True)
class PropagateEventResult:
    """Result of trying an update against an observer or a router subtree.

    REJECTED means processing was vetoed, UNHANDLED means nothing in the
    subtree applied and HANDLED carries the terminal handler's response.
    """
    status: PropagateStatus
    response: Optional[HandlerResponse] = None

    @classmethod
    def rejected(cls) -> "PropagateEventResult":
        return cls(PropagateStatus.REJECTED)

    @classmethod
    def unhandled(cls) -> "PropagateEventResult":
        return cls(PropagateStatus.UNHANDLED)

    @classmethod
    def handled(cls, response: HandlerResponse) -> "PropagateEventResult":
        return cls(PropagateStatus.HANDLED, response)

    @property
    def is_handled(self) -> bool:
        return self.status is PropagateStatus.HANDLED

    @property
    def is_rejected(self) -> bool:
        return self.status is PropagateStatus.REJECTED

    @property
    def is_unhandled(self) -> bool:
        return self.status is PropagateStatus.UNHANDLED
