"""Finite-state-machine storage.

Conversations keep a current state name and a free-form data mapping per
``StorageKey``. Which chat/user ids make up the key is decided by the
``Strategy``; ``FSMContext`` binds a storage to one key and is what
handlers receive.
"""
import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import trio

from storage.file_store import YAMLFileStore

logger = logging.getLogger(__name__)

DEFAULT_DESTINY = "default"


class Strategy(str, Enum):
    """How conversation keys are scoped.

    USER_IN_CHAT: one conversation per user in each chat
    CHAT: one conversation per chat, shared by all its users
    GLOBAL_USER: one conversation per user across all chats
    USER_IN_THREAD: one conversation per user in each forum topic
    """
    USER_IN_CHAT = "user_in_chat"
    CHAT = "chat"
    GLOBAL_USER = "global_user"
    USER_IN_THREAD = "user_in_thread"

    def apply(
        self, chat_id: int, user_id: int, thread_id: Optional[int] = None
    ) -> Tuple[int, int, Optional[int]]:
        """Map event ids to the ``(chat_id, user_id, thread_id)`` a key is built from."""
        if self is Strategy.CHAT:
            return chat_id, chat_id, None
        if self is Strategy.GLOBAL_USER:
            return user_id, user_id, None
        if self is Strategy.USER_IN_THREAD:
            return chat_id, user_id, thread_id
        return chat_id, user_id, None


@dataclass(frozen=True)
class StorageKey:
    bot_id: int
    chat_id: int
    user_id: int
    thread_id: Optional[int] = None
    destiny: str = DEFAULT_DESTINY

    def __str__(self) -> str:
        # Fixed number of id parts so a ":" in destiny can't collide
        thread = "-" if self.thread_id is None else str(self.thread_id)
        parts = [str(self.bot_id), str(self.chat_id), thread, str(self.user_id), self.destiny]
        return ":".join(parts)


class BaseStorage:
    """
    Async storage interface.
    Subclasses implement the raw state/data accessors, the rest is shared.
    """

    async def set_state(self, key: StorageKey, state: Optional[str]) -> None:
        raise NotImplementedError

    async def get_state(self, key: StorageKey) -> Optional[str]:
        raise NotImplementedError

    async def set_data(self, key: StorageKey, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def get_data(self, key: StorageKey) -> Dict[str, Any]:
        raise NotImplementedError

    async def remove_state(self, key: StorageKey) -> None:
        await self.set_state(key, None)

    async def remove_data(self, key: StorageKey) -> None:
        await self.set_data(key, {})

    async def update_data(self, key: StorageKey, data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``data`` into the stored mapping and return the result."""
        current = await self.get_data(key)
        current.update(data)
        await self.set_data(key, current)
        return current

    async def get_value(self, key: StorageKey, name: str, default: Any = None) -> Any:
        data = await self.get_data(key)
        return data.get(name, default)

    async def close(self) -> None:
        """Release resources held by the storage."""


class MemoryStorage(BaseStorage):
    """Keeps everything in process memory. Lost on restart."""

    def __init__(self) -> None:
        self._states: Dict[StorageKey, str] = {}
        self._data: Dict[StorageKey, Dict[str, Any]] = {}
        self._lock = trio.Lock()

    async def set_state(self, key: StorageKey, state: Optional[str]) -> None:
        async with self._lock:
            if state is None:
                self._states.pop(key, None)
            else:
                self._states[key] = state

    async def get_state(self, key: StorageKey) -> Optional[str]:
        async with self._lock:
            return self._states.get(key)

    async def set_data(self, key: StorageKey, data: Dict[str, Any]) -> None:
        async with self._lock:
            if data:
                self._data[key] = copy.deepcopy(data)
            else:
                self._data.pop(key, None)

    async def get_data(self, key: StorageKey) -> Dict[str, Any]:
        async with self._lock:
            return copy.deepcopy(self._data.get(key, {}))

    async def update_data(self, key: StorageKey, data: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            current = self._data.setdefault(key, {})
            current.update(copy.deepcopy(data))
            return copy.deepcopy(current)

    async def close(self) -> None:
        async with self._lock:
            self._states.clear()
            self._data.clear()


class YAMLStorage(BaseStorage):
    """Persists states and data to a YAML file.

    The whole file is loaded once and rewritten after every change, which is
    fine for small bots. Values must be plain YAML types.

    Attributes:
        store: Underlying file store
    """

    def __init__(self, path: str) -> None:
        self.store = YAMLFileStore(path)
        self._records: Optional[Dict[str, Dict[str, Any]]] = None
        self._lock = trio.Lock()

    async def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._records is None:
            raw = await trio.to_thread.run_sync(self.store.read)
            self._records = {
                "states": dict(raw.get("states") or {}),
                "data": dict(raw.get("data") or {}),
            }
            logger.debug(
                "Loaded %d FSM states from %s", len(self._records["states"]), self.store.path
            )
        return self._records

    async def _save(self) -> None:
        snapshot = copy.deepcopy(self._records)
        await trio.to_thread.run_sync(self.store.write, snapshot)

    async def set_state(self, key: StorageKey, state: Optional[str]) -> None:
        async with self._lock:
            records = await self._load()
            if state is None:
                records["states"].pop(str(key), None)
            else:
                records["states"][str(key)] = state
            await self._save()

    async def get_state(self, key: StorageKey) -> Optional[str]:
        async with self._lock:
            records = await self._load()
            return records["states"].get(str(key))

    async def set_data(self, key: StorageKey, data: Dict[str, Any]) -> None:
        async with self._lock:
            records = await self._load()
            if data:
                records["data"][str(key)] = copy.deepcopy(data)
            else:
                records["data"].pop(str(key), None)
            await self._save()

    async def get_data(self, key: StorageKey) -> Dict[str, Any]:
        async with self._lock:
            records = await self._load()
            return copy.deepcopy(records["data"].get(str(key), {}))

    async def update_data(self, key: StorageKey, data: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            records = await self._load()
            current = records["data"].setdefault(str(key), {})
            current.update(copy.deepcopy(data))
            await self._save()
            return copy.deepcopy(current)


class FSMContext:
    """Storage operations bound to a single conversation key."""

    def __init__(self, storage: BaseStorage, key: StorageKey) -> None:
        self.storage = storage
        self.key = key

    async def set_state(self, state: Optional[str] = None) -> None:
        await self.storage.set_state(self.key, state)

    async def get_state(self) -> Optional[str]:
        return await self.storage.get_state(self.key)

    async def remove_state(self) -> None:
        await self.storage.remove_state(self.key)

    async def set_data(self, data: Dict[str, Any]) -> None:
        await self.storage.set_data(self.key, data)

    async def get_data(self) -> Dict[str, Any]:
        return await self.storage.get_data(self.key)

    async def update_data(self, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Dict[str, Any]:
        merged = dict(data or {})
        merged.update(kwargs)
        return await self.storage.update_data(self.key, merged)

    async def get_value(self, name: str, default: Any = None) -> Any:
        return await self.storage.get_value(self.key, name, default)

    async def remove_data(self) -> None:
        await self.storage.remove_data(self.key)

    async def clear(self) -> None:
        """Forget both the state and the data."""
        await self.remove_state()
        await self.remove_data()

    def __repr__(self) -> str:
        return f"FSMContext(key={self.key})"
