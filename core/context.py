"""Per-update context shared by middlewares, filters and handlers.

A ``Context`` is created for every incoming update and passed to each
processing step. Values are keyed by their type (one slot per type, last
write wins) or by an explicit string slot name.
"""
from typing import Any, Dict, Iterator, MutableMapping, Optional, Union

from core.errors import ExtractionError, MissingContextKeyError

ContextKey = Union[type, str]


class Context(MutableMapping):
    """Heterogeneous store mapping a type or a slot name to a value."""

    def __init__(self, data: Optional[Dict[ContextKey, Any]] = None) -> None:
        self._data: Dict[ContextKey, Any] = dict(data or {})

    def insert(self, value: Any, key: Optional[ContextKey] = None) -> None:
        """Store ``value`` under ``key``, or under ``type(value)`` when omitted.

        Args:
            value: Value to store
            key: Explicit type or slot name
        """
        self._data[key if key is not None else type(value)] = value

    def require(self, key: ContextKey, expected_type: Optional[type] = None) -> Any:
        """Return the value stored under ``key`` or fail with an extraction error.

        Args:
            key: Type or slot name to look up
            expected_type: Type the value must be an instance of. Defaults to
                ``key`` itself when ``key`` is a type.

        Raises:
            MissingContextKeyError: Nothing is stored under ``key``
            ExtractionError: The stored value has an unexpected type
        """
        try:
            value = self._data[key]
        except KeyError:
            raise MissingContextKeyError(key) from None

        if expected_type is None and isinstance(key, type):
            expected_type = key
        if expected_type is not None and not isinstance(value, expected_type):
            raise ExtractionError(
                f"context value for {key!r} is {type(value).__name__}, "
                f"expected {expected_type.__name__}"
            )
        return value

    def copy(self) -> "Context":
        """Shallow clone for isolated processing."""
        return Context(self._data)

    def __getitem__(self, key: ContextKey) -> Any:
        return self._data[key]

    def __setitem__(self, key: ContextKey, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: ContextKey) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[ContextKey]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        keys = ", ".join(k.__name__ if isinstance(k, type) else repr(k) for k in self._data)
        return f"Context({keys})"
