"""Handler argument extraction.

Handlers declare what they need through their signature::

    async def on_start(message: Message, bot: Bot, command: CommandObject) -> None: ...

When a handler is registered, every parameter gets a *binder*: an async
function producing the value from the current ``Request``. Binders are
resolved once from the annotations:

* pipeline objects (``Bot``, ``Update``, ``Context``, ``Request``) and
  ``User`` / ``Chat`` come from the extractor registry,
* event classes (``Message``, ``CallbackQuery``...) come from the update,
* classes with a ``from_event_and_context(request)`` classmethod build
  themselves,
* anything else is looked up in the context by type,
* ``Optional[T]`` yields ``None`` instead of failing,
* ``Union[T, ExtractionError]`` yields the error instead of failing,
* ``Annotated[T, FromContext("key")]`` reads a named context slot.

Unannotated parameters are bound by name: pipeline objects, ``event``, an
event kind (``message``, ``callback_query``...) or a named context slot.
"""
import inspect
import logging
import types
from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from core.bases import Request
from core.client import Bot
from core.context import Context
from core.enums import UpdateType
from core.errors import ConvertToTypeError, ExtractionError
from core.models import EVENT_TYPES, Chat, Update, User

logger = logging.getLogger(__name__)

Binder = Callable[[Request], Awaitable[Any]]
ExtractorFunc = Callable[[Request], Any]

_NONE_TYPE = type(None)
_UNION_TYPES = (Union, getattr(types, "UnionType", Union))
_EVENT_CLASSES = frozenset(EVENT_TYPES.values())
_EVENT_KINDS = frozenset(kind.value for kind in UpdateType)


@dataclass(frozen=True)
class FromContext:
    """``Annotated`` marker binding a parameter to a named context slot."""
    key: str


def _extract_user(request: Request) -> User:
    user = request.context.get(User) or request.update.from_user
    if user is None:
        raise ExtractionError(f"{request.update.type.value} update has no user")
    return user


def _extract_chat(request: Request) -> Chat:
    chat = request.context.get(Chat) or request.update.chat
    if chat is None:
        raise ExtractionError(f"{request.update.type.value} update has no chat")
    return chat


_EXTRACTORS: Dict[type, ExtractorFunc] = {
    Bot: lambda request: request.bot,
    Update: lambda request: request.update,
    Context: lambda request: request.context,
    Request: lambda request: request,
    User: _extract_user,
    Chat: _extract_chat,
}

_BY_NAME: Dict[str, ExtractorFunc] = {
    "bot": lambda request: request.bot,
    "update": lambda request: request.update,
    "context": lambda request: request.context,
    "request": lambda request: request,
    "event": lambda request: request.update.event,
}


def register_extractor(tp: type, func: ExtractorFunc) -> None:
    """Teach the extractor how to produce ``tp`` values.

    Args:
        tp: Parameter type handled by ``func`` (and its subclasses)
        func: Sync or async callable taking the ``Request``; it should raise
            ``ExtractionError`` when the value can't be produced
    """
    _EXTRACTORS[tp] = func


def _lookup_extractor(tp: type) -> Optional[ExtractorFunc]:
    for klass in getattr(tp, "__mro__", (tp,)):
        func = _EXTRACTORS.get(klass)
        if func is not None:
            return func
    return None


def _from_func(func: ExtractorFunc) -> Binder:
    async def binder(request: Request) -> Any:
        value = func(request)
        if inspect.isawaitable(value):
            value = await value
        return value

    return binder


def _optional(inner: Binder) -> Binder:
    async def binder(request: Request) -> Any:
        try:
            return await inner(request)
        except ExtractionError:
            return None

    return binder


def _result(inner: Binder) -> Binder:
    async def binder(request: Request) -> Any:
        try:
            return await inner(request)
        except ExtractionError as e:
            return e

    return binder


def _with_default(inner: Binder, default: Any) -> Binder:
    async def binder(request: Request) -> Any:
        try:
            return await inner(request)
        except ExtractionError:
            return default

    return binder


def _first_of(binders: List[Binder], description: str) -> Binder:
    async def binder(request: Request) -> Any:
        errors = []
        for candidate in binders:
            try:
                return await candidate(request)
            except ExtractionError as e:
                errors.append(str(e))
        raise ExtractionError(f"none of {description} could be extracted ({'; '.join(errors)})")

    return binder


def _context_slot(key: str, expected_type: Optional[type]) -> Binder:
    async def binder(request: Request) -> Any:
        return request.context.require(key, expected_type)

    return binder


def _event_by_kind(kind: str) -> ExtractorFunc:
    def extract(request: Request) -> Any:
        event = getattr(request.update, kind)
        if event is None:
            raise ConvertToTypeError(request.update.type.value, kind)
        return event

    return extract


def _by_name(name: str) -> Binder:
    func = _BY_NAME.get(name)
    if func is not None:
        return _from_func(func)
    if name in _EVENT_KINDS:
        return _from_func(_event_by_kind(name))
    return _context_slot(name, None)


def _is_error_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, ExtractionError)


def build_binder(hint: Any, name: str = "") -> Binder:
    """Build the binder for one annotation.

    Args:
        hint: Parameter annotation (with ``Annotated`` extras kept)
        name: Parameter name, used when the annotation says nothing useful

    Raises:
        TypeError: The annotation can't be extracted
    """
    if hint is Any or hint is inspect.Parameter.empty:
        return _by_name(name)

    origin = get_origin(hint)
    if origin is Annotated:
        base, *extras = get_args(hint)
        for marker in extras:
            if isinstance(marker, FromContext):
                optional = get_origin(base) in _UNION_TYPES and _NONE_TYPE in get_args(base)
                if optional:
                    args = [a for a in get_args(base) if a is not _NONE_TYPE]
                    expected = args[0] if len(args) == 1 and isinstance(args[0], type) else None
                    return _optional(_context_slot(marker.key, expected))
                expected = base if isinstance(base, type) else None
                return _context_slot(marker.key, expected)
        return build_binder(base, name)

    if origin in _UNION_TYPES:
        args = get_args(hint)
        values = [a for a in args if a is not _NONE_TYPE and not _is_error_type(a)]
        if not values:
            raise TypeError(f"Cannot extract {hint!r}")
        if len(values) == 1:
            inner = build_binder(values[0], name)
        else:
            inner = _first_of([build_binder(v, name) for v in values], repr(values))
        if any(_is_error_type(a) for a in args):
            return _result(inner)
        if _NONE_TYPE in args:
            return _optional(inner)
        return inner

    if origin is not None or not isinstance(hint, type):
        raise TypeError(f"Cannot extract parameter {name!r} annotated as {hint!r}")

    func = _lookup_extractor(hint)
    if func is not None:
        return _from_func(func)

    factory = getattr(hint, "from_event_and_context", None)
    if callable(factory):
        return _from_func(factory)

    if hint in _EVENT_CLASSES:
        event_cls = hint
        return _from_func(lambda request: request.update.event_as(event_cls))

    return _context_slot_by_type(hint)


def _context_slot_by_type(tp: type) -> Binder:
    async def binder(request: Request) -> Any:
        return request.context.require(tp)

    return binder


def resolve_binders(callback: Callable[..., Any]) -> Dict[str, Binder]:
    """Build binders for every named parameter of ``callback``.

    ``*args`` and ``**kwargs`` parameters are ignored.

    Raises:
        TypeError: A parameter can't be extracted
    """
    signature = inspect.signature(callback)
    target = callback if inspect.isroutine(callback) else getattr(callback, "__call__", callback)
    try:
        hints = get_type_hints(target, include_extras=True)
    except TypeError:
        # e.g. functools.partial objects
        hints = {}

    binders: Dict[str, Binder] = {}
    for name, param in signature.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        binder = build_binder(hints.get(name, inspect.Parameter.empty), name)
        if param.default is not inspect.Parameter.empty:
            binder = _with_default(binder, param.default)
        binders[name] = binder
    return binders


async def extract_arguments(binders: Dict[str, Binder], request: Request) -> Dict[str, Any]:
    """Produce keyword arguments for a handler call.

    Raises:
        ExtractionError: A required argument couldn't be extracted
    """
    kwargs: Dict[str, Any] = {}
    for name, binder in binders.items():
        try:
            kwargs[name] = await binder(request)
        except ExtractionError as e:
            logger.debug("Cannot extract %r: %s", name, e)
            raise
    return kwargs
