import re
from typing import TYPE_CHECKING, Iterable, Optional, Pattern, Tuple, Union

from core.context import Context
from core.filters.base import Filter
from core.models import Update
from utils.matching import fold_case, normalize_phrase

if TYPE_CHECKING:
    from core.client import Bot

TextArg = Union[str, Iterable[str], None]


def _as_tuple(value: TextArg) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class TextFilter(Filter):
    """Matches the update's text (message text or caption, callback data,
    inline query).

    Any satisfied criterion is enough. With ``ignore_case`` the ``equals``
    comparison also ignores surrounding whitespace.
    """

    def __init__(
        self,
        equals: TextArg = None,
        contains: TextArg = None,
        starts_with: TextArg = None,
        ends_with: TextArg = None,
        regex: Union[str, Pattern[str], None] = None,
        ignore_case: bool = False,
    ) -> None:
        self.equals = _as_tuple(equals)
        self.contains = _as_tuple(contains)
        self.starts_with = _as_tuple(starts_with)
        self.ends_with = _as_tuple(ends_with)
        self.regex: Optional[Pattern[str]] = None
        if regex is not None:
            flags = re.IGNORECASE if ignore_case else 0
            self.regex = regex if isinstance(regex, re.Pattern) else re.compile(regex, flags)
        self.ignore_case = ignore_case
        if not (self.equals or self.contains or self.starts_with or self.ends_with or self.regex):
            raise ValueError("TextFilter needs at least one criterion")

    def match(self, text: str) -> bool:
        if self.regex is not None and self.regex.search(text):
            return True

        if self.ignore_case:
            if normalize_phrase(text) in {normalize_phrase(e) for e in self.equals}:
                return True
            folded = fold_case(text)
            return (
                any(fold_case(c) in folded for c in self.contains)
                or any(folded.startswith(fold_case(p)) for p in self.starts_with)
                or any(folded.endswith(fold_case(s)) for s in self.ends_with)
            )

        return (
            text in self.equals
            or any(c in text for c in self.contains)
            or text.startswith(self.starts_with)
            or text.endswith(self.ends_with)
        )

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        text = update.text
        if text is None:
            return False
        return self.match(text)
