"""Bot token helpers.

Tokens look like ``<bot id>:<secret>``. The secret must never reach the
logs, so anything printable should go through ``hide_token``.
"""


class InvalidTokenError(ValueError):
    """Token is not in ``<bot id>:<secret>`` form."""


def validate_token(token: str) -> bool:
    """
    Check token shape:
    - no whitespace anywhere
    - numeric bot id before the first colon
    - non-empty secret after it
    """
    if any(ch.isspace() for ch in token):
        return False
    left, sep, right = token.partition(":")
    if not sep or not left or not right:
        return False
    return left.isdigit()


def extract_bot_id(token: str) -> int:
    """Return the numeric bot id embedded in ``token``.

    Raises:
        InvalidTokenError: Token is malformed
    """
    if not validate_token(token):
        raise InvalidTokenError("Bot token is invalid, please check it")
    return int(token.split(":", 1)[0])


def hide_token(token: str) -> str:
    """Mask all but the first and last two characters."""
    if len(token) <= 4:
        return "*" * 8
    return f"{token[:2]}{'*' * 8}{token[-2:]}"
