import pytest

from storage.fsm import FSMContext, MemoryStorage, StorageKey, Strategy, YAMLStorage
from storage.file_store import YAMLFileStore

KEY = StorageKey(bot_id=42, chat_id=-10, user_id=5)


@pytest.fixture(params=["memory", "yaml"])
def storage(request, tmp_path):
    if request.param == "memory":
        return MemoryStorage()
    return YAMLStorage(str(tmp_path / "fsm.yaml"))


def test_strategies():
    assert Strategy.USER_IN_CHAT.apply(-10, 5, 3) == (-10, 5, None)
    assert Strategy.CHAT.apply(-10, 5) == (-10, -10, None)
    assert Strategy.GLOBAL_USER.apply(-10, 5) == (5, 5, None)
    assert Strategy.USER_IN_THREAD.apply(-10, 5, 3) == (-10, 5, 3)


def test_storage_key_str():
    assert str(KEY) == "42:-10:-:5:default"
    assert str(StorageKey(1, 2, 3, thread_id=9, destiny="quiz")) == "1:2:9:3:quiz"


def test_storage_key_str_is_unambiguous():
    with_thread = StorageKey(1, 2, 3, thread_id=4, destiny="x")
    tricky = StorageKey(1, 2, 4, destiny="3:x")

    assert str(tricky) == "1:2:-:4:3:x"
    assert str(with_thread) != str(tricky)


async def test_state_roundtrip(storage):
    assert await storage.get_state(KEY) is None

    await storage.set_state(KEY, "form:name")
    assert await storage.get_state(KEY) == "form:name"

    await storage.remove_state(KEY)
    assert await storage.get_state(KEY) is None


async def test_data_operations(storage):
    assert await storage.get_data(KEY) == {}

    await storage.set_data(KEY, {"name": "Alice"})
    merged = await storage.update_data(KEY, {"age": 30})

    assert merged == {"name": "Alice", "age": 30}
    assert await storage.get_value(KEY, "age") == 30
    assert await storage.get_value(KEY, "missing", "dflt") == "dflt"

    await storage.remove_data(KEY)
    assert await storage.get_data(KEY) == {}


async def test_returned_data_is_a_copy(storage):
    await storage.set_data(KEY, {"items": [1]})
    data = await storage.get_data(KEY)
    data["items"].append(2)

    assert await storage.get_data(KEY) == {"items": [1]}


async def test_keys_are_independent(storage):
    other = StorageKey(bot_id=42, chat_id=-10, user_id=6)
    await storage.set_state(KEY, "a")

    assert await storage.get_state(other) is None


async def test_yaml_storage_persists(tmp_path):
    path = str(tmp_path / "fsm.yaml")
    first = YAMLStorage(path)
    await first.set_state(KEY, "form:age")
    await first.update_data(KEY, {"name": "Alice"})

    second = YAMLStorage(path)

    assert await second.get_state(KEY) == "form:age"
    assert await second.get_data(KEY) == {"name": "Alice"}
    assert YAMLFileStore(path).read()["states"] == {"42:-10:-:5:default": "form:age"}


async def test_fsm_context_binds_key():
    storage = MemoryStorage()
    fsm = FSMContext(storage, KEY)

    await fsm.set_state("quiz:q1")
    await fsm.update_data(score=1)
    await fsm.update_data({"score": 2}, answered=["q1"])

    assert await storage.get_state(KEY) == "quiz:q1"
    assert await fsm.get_data() == {"score": 2, "answered": ["q1"]}

    await fsm.clear()
    assert await fsm.get_state() is None
    assert await fsm.get_data() == {}
