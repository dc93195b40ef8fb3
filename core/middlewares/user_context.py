from core.bases import EventReturn, Request
from core.middlewares.outer import OuterMiddleware, OuterResult

THREAD_ID_KEY = "event_message_thread_id"


class UserContextMiddleware(OuterMiddleware):
    """Stores the update's sender (``User``), chat (``Chat``) and forum
    topic id (``"event_message_thread_id"``) in the context."""

    async def __call__(self, request: Request) -> OuterResult:
        update = request.update
        context = request.context
        user = update.from_user
        if user is not None:
            context.insert(user)
        chat = update.chat
        if chat is not None:
            context.insert(chat)
        thread_id = update.message_thread_id
        if thread_id is not None:
            context.insert(thread_id, THREAD_ID_KEY)
        return request, EventReturn.FINISH
