from typing import Any, Iterator, List, Optional, Tuple


def middleware_name(middleware: Any) -> str:
    return getattr(middleware, "__qualname__", None) or type(middleware).__name__


class MiddlewareManager:
    """Ordered middleware registry of one observer.

    Can be used directly or as a decorator::

        router.message.outer_middleware(my_middleware)

        @router.message.inner_middleware
        async def timing(request, next_): ...
    """

    def __init__(self) -> None:
        self._middlewares: List[Any] = []

    def register(self, middleware: Any) -> Any:
        self._middlewares.append(middleware)
        return middleware

    def insert(self, index: int, middleware: Any) -> Any:
        self._middlewares.insert(index, middleware)
        return middleware

    def unregister(self, middleware: Any) -> None:
        self._middlewares.remove(middleware)

    def __call__(self, middleware: Optional[Any] = None) -> Any:
        if middleware is None:
            return self.register
        return self.register(middleware)

    @property
    def middlewares(self) -> Tuple[Any, ...]:
        return tuple(self._middlewares)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)
