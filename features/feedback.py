"""Two-step feedback dialog.

``/feedback`` asks for a message, the next text from the same user in the
same chat is stored (in the FSM data) and acknowledged. ``/cancel`` aborts.
"""
import logging

from core.bases import EventReturn
from core.client import Bot
from core.filters.command import Command
from core.filters.state import StateFilter
from core.methods import SendMessage
from core.models import Message
from core.router import Router
from storage.fsm import FSMContext

logger = logging.getLogger(__name__)

WAITING_FOR_FEEDBACK = "feedback:waiting"


async def _reply(bot: Bot, message: Message, text: str) -> None:
    await bot.send(
        SendMessage(chat_id=message.chat.id, text=text, message_thread_id=message.message_thread_id)
    )


def build_router() -> Router:
    router = Router("feedback")

    @router.message(Command("cancel"), StateFilter.any())
    async def cancel(message: Message, bot: Bot, state: FSMContext) -> None:
        if await state.get_state() is None:
            await _reply(bot, message, "Nothing to cancel.")
            return
        await state.clear()
        await _reply(bot, message, "Cancelled.")

    @router.message(Command("feedback"))
    async def ask_feedback(message: Message, bot: Bot, state: FSMContext) -> None:
        await state.set_state(WAITING_FOR_FEEDBACK)
        await _reply(bot, message, "What would you like to tell us? Send /cancel to abort.")

    @router.message(StateFilter(WAITING_FOR_FEEDBACK))
    async def receive_feedback(message: Message, bot: Bot, state: FSMContext):
        if not message.text:
            # Stickers, photos... keep waiting, let other routers have a go
            return EventReturn.SKIP
        data = await state.update_data(text=message.text, date=message.date)
        logger.info("Feedback from chat %s: %r", message.chat.id, data["text"])
        await state.set_state(None)
        await _reply(bot, message, "Thanks, your feedback was recorded.")
        return EventReturn.FINISH

    return router
