from typing import TYPE_CHECKING, FrozenSet, Iterable, Optional, Union

from core.context import Context
from core.filters.base import Filter
from core.models import Update, User

if TYPE_CHECKING:
    from core.client import Bot


def _frozen(values: Union[str, int, Iterable, None], fold: bool = False) -> FrozenSet:
    if values is None:
        return frozenset()
    if isinstance(values, (str, int)):
        values = [values]
    if fold:
        return frozenset(str(v).casefold() for v in values)
    return frozenset(values)


class UserFilter(Filter):
    """Passes when the sender matches any of the given criteria.

    Usernames are compared case-insensitively and without a leading ``@``.
    """

    def __init__(
        self,
        ids: Union[int, Iterable[int], None] = None,
        usernames: Union[str, Iterable[str], None] = None,
        first_names: Union[str, Iterable[str], None] = None,
        last_names: Union[str, Iterable[str], None] = None,
        language_codes: Union[str, Iterable[str], None] = None,
    ) -> None:
        self.ids = _frozen(ids)
        if isinstance(usernames, str):
            usernames = [usernames]
        self.usernames = _frozen([u.lstrip("@") for u in usernames or ()], fold=True)
        self.first_names = _frozen(first_names)
        self.last_names = _frozen(last_names)
        self.language_codes = _frozen(language_codes)
        if not (
            self.ids or self.usernames or self.first_names or self.last_names or self.language_codes
        ):
            raise ValueError("UserFilter needs at least one criterion")

    def match(self, user: User) -> bool:
        return (
            user.id in self.ids
            or (user.username is not None and user.username.casefold() in self.usernames)
            or user.first_name in self.first_names
            or (user.last_name is not None and user.last_name in self.last_names)
            or (user.language_code is not None and user.language_code in self.language_codes)
        )

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        user: Optional[User] = context.get(User) or update.from_user
        if user is None:
            return False
        return self.match(user)
