import logging
from typing import Optional

from core.bases import EventReturn, Request
from core.middlewares.outer import OuterMiddleware, OuterResult
from core.middlewares.user_context import THREAD_ID_KEY
from core.models import Chat, User
from storage.fsm import DEFAULT_DESTINY, BaseStorage, FSMContext, StorageKey, Strategy

logger = logging.getLogger(__name__)


class FSMContextMiddleware(OuterMiddleware):
    """Puts an ``FSMContext`` for the current conversation into the context.

    Updates without a sender (channel posts, polls...) get no FSMContext.

    Args:
        storage: Where states and data live
        strategy: How the conversation key is scoped
        destiny: Key namespace, lets several independent machines coexist
    """

    def __init__(
        self,
        storage: BaseStorage,
        strategy: Strategy = Strategy.USER_IN_CHAT,
        destiny: str = DEFAULT_DESTINY,
    ) -> None:
        self.storage = storage
        self.strategy = strategy
        self.destiny = destiny

    def resolve_key(self, request: Request) -> Optional[StorageKey]:
        context = request.context
        user: Optional[User] = context.get(User) or request.update.from_user
        if user is None:
            return None
        chat: Optional[Chat] = context.get(Chat) or request.update.chat
        thread_id = context.get(THREAD_ID_KEY, request.update.message_thread_id)

        chat_id, user_id, thread_id = self.strategy.apply(
            chat.id if chat is not None else user.id, user.id, thread_id
        )
        return StorageKey(
            bot_id=request.bot.bot_id,
            chat_id=chat_id,
            user_id=user_id,
            thread_id=thread_id,
            destiny=self.destiny,
        )

    async def __call__(self, request: Request) -> OuterResult:
        request.context.insert(self.storage, BaseStorage)
        key = self.resolve_key(request)
        if key is None:
            logger.debug("Update %s has no user, no FSM context", request.update.id)
        else:
            request.context.insert(FSMContext(self.storage, key))
        return request, EventReturn.FINISH
