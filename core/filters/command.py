"""Command filter.

Matches messages like ``/start``, ``/start@my_bot`` or ``!ban 42`` and
stores the parsed ``CommandObject`` in the context so handlers can ask for
it by type.
"""
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Pattern, Sequence, Union

from core.context import Context
from core.filters.base import Filter
from core.models import BotCommand, Update

if TYPE_CHECKING:
    from core.client import Bot

logger = logging.getLogger(__name__)

CommandPattern = Union[str, BotCommand, Pattern[str]]


@dataclass(frozen=True)
class CommandObject:
    """A parsed command.

    Attributes:
        command: Command name without prefix or mention
        prefix: Prefix character the command was sent with
        mention: Bot username after ``@``, if any
        args: Everything after the first whitespace, if anything
        regexp_match: Match object when a regex pattern matched
    """
    command: str
    prefix: str = "/"
    mention: Optional[str] = None
    args: Optional[str] = None
    regexp_match: Optional["re.Match[str]"] = None

    @property
    def text(self) -> str:
        line = self.prefix + self.command
        if self.mention:
            line += "@" + self.mention
        if self.args:
            line += " " + self.args
        return line


def parse_command(text: str) -> Optional[CommandObject]:
    """Split ``text`` into prefix, command, mention and args.

    Returns:
        CommandObject, or None when ``text`` is too short to be a command
    """
    parts = text.split(maxsplit=1)
    if not parts or len(parts[0]) < 2:
        return None
    full_command = parts[0]
    command, _, mention = full_command[1:].partition("@")
    if not command:
        return None
    return CommandObject(
        command=command,
        prefix=full_command[0],
        mention=mention or None,
        args=parts[1] if len(parts) > 1 else None,
    )


class Command(Filter):
    """Passes for text commands matching one of the given patterns.

    Args:
        commands: Command names (without prefix), ``BotCommand`` objects or
            compiled regular expressions matched against the command name
        prefix: Characters accepted as command prefix
        ignore_case: Compare command names case-insensitively
        ignore_mention: Accept commands addressed to other bots
    """

    def __init__(
        self,
        *commands: CommandPattern,
        prefix: str = "/",
        ignore_case: bool = False,
        ignore_mention: bool = False,
    ) -> None:
        if not commands:
            raise ValueError("At least one command is required")
        if not prefix:
            raise ValueError("Command prefix can't be empty")
        self.prefix = prefix
        self.ignore_case = ignore_case
        self.ignore_mention = ignore_mention
        self.commands: List[Union[str, Pattern[str]]] = []
        for cmd in commands:
            if isinstance(cmd, BotCommand):
                cmd = cmd.command
            if isinstance(cmd, str):
                if cmd[:1] in prefix:
                    cmd = cmd[1:]
                if ignore_case:
                    cmd = cmd.casefold()
            elif not isinstance(cmd, re.Pattern):
                raise TypeError(f"Unsupported command pattern: {cmd!r}")
            self.commands.append(cmd)

    def _check_mention(self, command: CommandObject, bot: "Bot") -> bool:
        if self.ignore_mention or not command.mention:
            return True
        if not bot.username:
            return False
        return command.mention.lower() == bot.username.lower()

    def _match_command(self, command: CommandObject) -> Optional[CommandObject]:
        name = command.command.casefold() if self.ignore_case else command.command
        for pattern in self.commands:
            if isinstance(pattern, re.Pattern):
                match = pattern.match(command.command)
                if match:
                    return CommandObject(
                        command=command.command,
                        prefix=command.prefix,
                        mention=command.mention,
                        args=command.args,
                        regexp_match=match,
                    )
            elif name == pattern:
                return command
        return None

    async def check(self, bot: "Bot", update: Update, context: Context) -> bool:
        text = update.text
        if not text:
            return False
        command = parse_command(text)
        if command is None or command.prefix not in self.prefix:
            return False
        if not self._check_mention(command, bot):
            logger.debug("Command %s is addressed to another bot", command.text)
            return False
        matched = self._match_command(command)
        if matched is None:
            return False
        context.insert(matched)
        return True

    def __repr__(self) -> str:
        names: Sequence[str] = [c if isinstance(c, str) else c.pattern for c in self.commands]
        return f"Command({', '.join(names)}, prefix={self.prefix!r})"
