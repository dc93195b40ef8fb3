from typing import TYPE_CHECKING, Optional, Tuple

from core.context import Context
from core.filters.base import Filter
from core.models import Update
from storage.fsm import FSMContext

if TYPE_CHECKING:
    from core.client import Bot

ANY_STATE = "*"


class StateFilter(Filter):
    """Passes when the conversation's current FSM state is one of ``states``.

    ``None`` stands for "no state set" and ``"*"`` for any state at all.
    Without an ``FSMContext`` in the context the state counts as ``None``.
    """

    def __init__(self, *states: Optional[str]) -> None:
        if not states:
            raise ValueError("At least one state is required, use StateFilter.any() for any")
        self.states: Tuple[Optional[str], ...] = states

    @classmethod
    def any(cls) -> "StateFilter":
        return cls(ANY_STATE)

    @classmethod
    def none(cls) -> "StateFilter":
        return cls(None)

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        if ANY_STATE in self.states:
            return True
        fsm: Optional[FSMContext] = context.get(FSMContext)
        current = await fsm.get_state() if fsm is not None else None
        return current in self.states

    def __repr__(self) -> str:
        return f"StateFilter({', '.join(repr(s) for s in self.states)})"
