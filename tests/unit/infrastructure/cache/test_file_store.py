import os
import pickle
import stat
import threading
import time
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from filelock import FileLock

from kvstash.domain.exceptions import (
    BackendUnavailableError,
    InvalidArgumentError,
    InvalidKeyError,
    SerializationError,
)
from kvstash.domain.models.entry import CacheEntry
from kvstash.infrastructure.cache.file_store import FileMarker, FileStore

SERIALIZE_METHODS = ["native", "msgpack", "json"]


@pytest.fixture
def store(cache_file: Path, clock) -> FileStore:
    return FileStore(cache_file, clock=clock)


def write_records(path: Path, records: dict) -> None:
    path.write_bytes(pickle.dumps(records))


# --- Construction ---

@pytest.mark.parametrize("method", SERIALIZE_METHODS)
def test_creates_missing_file_empty(cache_file: Path, method: str):
    assert not cache_file.exists()
    FileStore(cache_file, serialize_method=method)
    assert cache_file.exists()
    assert cache_file.read_bytes() == b""


def test_default_serializer_is_native(cache_file: Path):
    assert FileStore(cache_file).serializer.method == "native"


def test_creates_parent_directories(tmp_path: Path):
    path = tmp_path / "nested" / "dir" / "cache-file"
    FileStore(path)
    assert path.exists()


def test_existing_file_is_kept(cache_file: Path):
    write_records(cache_file, {"kept": {"ttl": 0, "value": "yes"}})
    assert FileStore(cache_file).get("kept") == "yes"


def test_invalid_serializer_raises(cache_file: Path):
    with pytest.raises(InvalidArgumentError):
        FileStore(cache_file, serialize_method="invalid")


def test_uncreatable_file_raises(cache_file: Path, monkeypatch):
    def refuse(self, *args, **kwargs):
        raise PermissionError("read-only directory")

    monkeypatch.setattr(Path, "touch", refuse)
    with pytest.raises(BackendUnavailableError):
        FileStore(cache_file)


def test_unwritable_file_raises(cache_file: Path, monkeypatch):
    cache_file.touch()
    monkeypatch.setattr(os, "access", lambda path, mode: False)
    with pytest.raises(BackendUnavailableError):
        FileStore(cache_file)


def test_unwritable_directory_raises(cache_file: Path, monkeypatch):
    cache_file.touch()
    real_access = os.access

    def access(path, mode):
        if Path(path) == cache_file.parent:
            return False
        return real_access(path, mode)

    monkeypatch.setattr(os, "access", access)
    with pytest.raises(BackendUnavailableError, match="directory"):
        FileStore(cache_file)


def test_directory_path_raises(tmp_path: Path):
    with pytest.raises(BackendUnavailableError):
        FileStore(tmp_path)


# --- Reads and writes ---

def test_scenario_set_expire_and_delete(store: FileStore):
    assert store.set("a", 1)
    assert store.get("a") == 1

    assert store.set("b", 2, -5)
    assert store.has("b") is False
    assert store.get("b", "d") == "d"

    assert store.delete_multiple(["a", "missing"])
    assert store.get("a", "gone") == "gone"


@pytest.mark.parametrize("method", SERIALIZE_METHODS)
@pytest.mark.parametrize("value", [
    "test-value",
    42,
    12.5,
    True,
    None,
    [1, "two", 3.0],
    {"nested": {"list": [1, 2], "flag": False}},
])
def test_round_trip(cache_file: Path, method: str, value):
    store = FileStore(cache_file, serialize_method=method)
    assert store.set("key", value)
    assert store.get("key", "default") == value

    # A fresh instance decodes the persisted file
    assert FileStore(cache_file, serialize_method=method).get("key", "default") == value


def test_native_preserves_python_types(store: FileStore):
    value = {"when": datetime(2024, 1, 2, 3, 4, 5), "pair": (1, 2), "tags": {"a", "b"}}
    assert store.set("rich", value)
    assert store.get("rich") == value


def test_json_turns_tuples_into_lists(cache_file: Path):
    store = FileStore(cache_file, serialize_method="json")
    store.set("pair", (1, 2))
    assert FileStore(cache_file, serialize_method="json").get("pair") == [1, 2]


def test_get_missing_returns_default(store: FileStore):
    assert store.get("missing") is None
    assert store.get("missing", "test content") == "test content"


def test_get_reads_externally_written_file(store: FileStore, cache_file: Path):
    assert store.get("missing", "test content") == "test content"

    write_records(cache_file, {
        "test-key": {"ttl": 0, "value": "test-value"},
        "expired-key": {"ttl": -10, "value": "test-value"},
    })

    assert store.get("test-key", "test content") == "test-value"
    assert store.get("expired-key", "test content") == "test content"


def test_has(store: FileStore, cache_file: Path):
    assert store.has("missing") is False

    write_records(cache_file, {
        "test-key": {"ttl": 0, "value": "test-value"},
        "expired-key": {"ttl": -10, "value": "test-value"},
    })

    assert store.has("test-key") is True
    assert store.has("expired-key") is False


def test_has_is_true_for_falsy_values(store: FileStore):
    store.set("zero", 0)
    assert store.has("zero") is True


def test_file_layout(store: FileStore, cache_file: Path, clock):
    store.set("forever", "x")
    store.set("short", "y", ttl=30)

    records = pickle.loads(cache_file.read_bytes())
    assert records == {
        "forever": {"ttl": 0, "value": "x"},
        "short": {"ttl": clock.now() + 30, "value": "y"},
    }


# --- Expiration ---

def test_ttl_expires_after_duration(store: FileStore, clock):
    store.set("key", "value", ttl=10)

    clock.advance(10)
    assert store.get("key") == "value"

    clock.advance(1)
    assert store.get("key", "expired") == "expired"
    assert store.has("key") is False


def test_timedelta_ttl(store: FileStore, clock):
    assert store.set("test-interval", "test-value-2", timedelta(days=1))
    assert store.get("test-interval", "default?") == "test-value-2"

    clock.advance(2 * 24 * 3600)
    assert store.get("test-interval", "default?") == "default?"


def test_very_long_timedelta_ttl(store: FileStore, clock):
    assert store.set("key", "value", timedelta(days=3_000_000))
    assert store.entries()["key"].expires_at == clock.now() + 3_000_000 * 86400
    assert store.get("key") == "value"


def test_stale_entries_are_not_removed_on_read(store: FileStore):
    store.set("old", "value", ttl=-1)
    assert store.get("old") is None
    assert "old" in store.entries()


def test_invalid_ttl_type_raises(store: FileStore, cache_file: Path):
    with pytest.raises(InvalidArgumentError):
        store.set("key", "value", ttl="10")
    assert cache_file.read_bytes() == b""


def test_overwrite_replaces_ttl(store: FileStore, clock):
    store.set("key", "first", ttl=5)
    store.set("key", "second")

    clock.advance(100)
    assert store.get("key") == "second"


# --- Batches ---

def test_get_multiple(store: FileStore):
    result = store.get_multiple(["key1", "key2"], "default-value")
    assert result == {"key1": "default-value", "key2": "default-value"}

    assert store.set("key1", "some-value")
    assert store.set("key2", "other-value", -10)

    result = store.get_multiple(["key1", "key2"], "default-value")
    assert result == {"key1": "some-value", "key2": "default-value"}


def test_get_multiple_accepts_generators(store: FileStore):
    store.set("a", 1)
    assert store.get_multiple(key for key in ["a", "b"]) == {"a": 1, "b": None}


def test_set_multiple(store: FileStore):
    assert store.set_multiple({"key1": "value1", "key2": "value2"})
    assert store.set_multiple({"key3": "value3", "key4": "value4"}, timedelta(days=1))

    assert store.get("key1") == "value1"
    assert store.get("key2") == "value2"
    assert store.get("key3") == "value3"
    assert store.get("key4") == "value4"


def test_set_multiple_accepts_pairs(store: FileStore):
    assert store.set_multiple([("a", 1), ("b", 2)])
    assert store.get_multiple(["a", "b"]) == {"a": 1, "b": 2}


def test_set_multiple_shares_one_ttl(store: FileStore, clock):
    store.set_multiple({"a": 1, "b": 2, "c": 3}, ttl=60)

    entries = store.entries()
    assert {entry.expires_at for entry in entries.values()} == {clock.now() + 60}

    clock.advance(61)
    assert store.get_multiple(["a", "b", "c"], "gone") == {"a": "gone", "b": "gone", "c": "gone"}


def test_set_multiple_is_one_write(store: FileStore, mocker):
    replace = mocker.spy(store, "_replace_file")
    store.set_multiple({"a": 1, "b": 2, "c": 3})
    assert replace.call_count == 1


def test_delete(store: FileStore):
    assert store.delete("some-key")

    assert store.set("other-key", "value")
    assert store.delete("other-key")
    assert store.get("other-key") is None


def test_delete_multiple(store: FileStore):
    assert store.set_multiple({"key1": "value1", "key2": "value2"})
    assert store.delete_multiple(["key1", "key3"])
    assert store.get("key1", "default") == "default"
    assert store.get("key2", "default") == "value2"


def test_delete_missing_key_does_not_rewrite_file(store: FileStore, cache_file: Path):
    store.set("kept", 1)
    before = FileMarker.of(cache_file)

    assert store.delete_multiple(["missing", "also-missing"])
    assert FileMarker.of(cache_file) == before


def test_clear(store: FileStore):
    assert store.clear()

    store.set_multiple({"a": 1, "b": 2})
    assert store.clear()
    assert store.get("a", "default") == "default"
    assert store.get("b", "default") == "default"
    assert store.entries() == {}


# --- Argument validation ---

@pytest.mark.parametrize("bad_key", ["!@#%$", "with space", "", "key#1", "50%"])
def test_invalid_key_raises(store: FileStore, bad_key: str):
    with pytest.raises(InvalidKeyError):
        store.get(bad_key)
    with pytest.raises(InvalidKeyError):
        store.set(bad_key, "value")
    with pytest.raises(InvalidKeyError):
        store.has(bad_key)
    with pytest.raises(InvalidKeyError):
        store.delete(bad_key)


def test_invalid_key_in_batch_changes_nothing(store: FileStore, cache_file: Path):
    store.set("existing", "value")
    before = cache_file.read_bytes()

    with pytest.raises(InvalidArgumentError):
        store.set_multiple({"fine": 1, "bad@key": 2})
    with pytest.raises(InvalidArgumentError):
        store.delete_multiple(["existing", "bad#key"])
    with pytest.raises(InvalidArgumentError):
        store.get_multiple(["existing", "bad%key"])

    assert cache_file.read_bytes() == before
    assert store.get("fine") is None
    assert store.get("existing") == "value"


@pytest.mark.parametrize("argument", ["invalid", 42, None, b"bytes"])
def test_non_iterable_batch_raises(store: FileStore, argument):
    with pytest.raises(InvalidArgumentError):
        store.get_multiple(argument)
    with pytest.raises(InvalidArgumentError):
        store.set_multiple(argument)
    with pytest.raises(InvalidArgumentError):
        store.delete_multiple(argument)


# --- Snapshot freshness ---

def test_snapshot_is_reused_while_file_is_unchanged(store: FileStore, mocker):
    store.set("a", 1)
    deserialize = mocker.spy(store.serializer, "deserialize")

    store.get("a")
    store.get("a")
    store.has("a")
    store.get_multiple(["a", "b"])

    assert deserialize.call_count == 0


def test_own_write_does_not_force_reload(cache_file: Path, mocker):
    store = FileStore(cache_file)
    store.get("warm-up")
    read_bytes = mocker.spy(Path, "read_bytes")

    store.set("a", 1)
    store.set("b", 2)
    assert store.get_multiple(["a", "b"]) == {"a": 1, "b": 2}
    assert read_bytes.call_count == 0


def test_same_size_rewrite_with_restored_mtime_is_detected(store: FileStore, cache_file: Path):
    write_records(cache_file, {"k": {"ttl": 0, "value": "v1"}})
    assert store.get("k") == "v1"
    st = os.stat(cache_file)
    # Let the ctime move on even with a coarse timestamp clock
    time.sleep(0.05)

    with open(cache_file, "r+b") as f:
        f.write(pickle.dumps({"k": {"ttl": 0, "value": "v2"}}))
    os.utime(cache_file, ns=(st.st_atime_ns, st.st_mtime_ns))
    assert os.stat(cache_file).st_size == st.st_size

    assert store.get("k") == "v2"


# --- Isolation from caller objects ---

def test_changing_value_after_set_does_not_change_cache(store: FileStore, cache_file: Path):
    value = {"n": 1, "items": [1, 2]}
    store.set("k", value)
    value["n"] = 99
    value["items"].append(3)

    assert store.get("k") == {"n": 1, "items": [1, 2]}
    assert FileStore(cache_file).get("k") == {"n": 1, "items": [1, 2]}


def test_changing_returned_value_does_not_change_cache(store: FileStore, cache_file: Path):
    store.set("k", {"n": 1})

    store.get("k")["n"] = 7
    store.get_multiple(["k"])["k"]["n"] = 8
    store.entries()["k"].value["n"] = 9
    assert store.get("k") == {"n": 1}

    store.set("other", 1)
    assert FileStore(cache_file).get("k") == {"n": 1}


def test_json_store_returns_what_other_processes_read(cache_file: Path):
    store = FileStore(cache_file, serialize_method="json")
    store.set("pair", (1, 2))

    assert store.get("pair") == [1, 2]
    assert store.get("pair") == FileStore(cache_file, serialize_method="json").get("pair")


def test_second_instance_sees_changes(cache_file: Path):
    first = FileStore(cache_file)
    second = FileStore(cache_file)
    assert second.get("x") is None

    first.set("x", "from-first")
    assert second.get("x") == "from-first"

    second.set("y", "from-second")
    assert first.get("y") == "from-second"
    assert first.get("x") == "from-first"


def test_write_keeps_external_changes(cache_file: Path):
    first = FileStore(cache_file)
    second = FileStore(cache_file)
    first.get("warm-up")

    second.set("external", 1)
    first.set("local", 2)

    assert FileStore(cache_file).get_multiple(["external", "local"]) == {"external": 1, "local": 2}


def test_in_place_change_with_same_mtime_is_detected(store: FileStore, cache_file: Path):
    write_records(cache_file, {"k": {"ttl": 0, "value": "v1"}})
    assert store.get("k") == "v1"
    st = os.stat(cache_file)

    write_records(cache_file, {"k": {"ttl": 0, "value": "a longer second value"}})
    os.utime(cache_file, ns=(st.st_atime_ns, st.st_mtime_ns))

    assert store.get("k") == "a longer second value"


def test_deleted_backing_file_reads_empty(store: FileStore, cache_file: Path):
    store.set("a", 1)
    cache_file.unlink()

    assert store.get("a", "default") == "default"
    assert store.set("b", 2)
    assert cache_file.exists()
    assert FileStore(cache_file).get("b") == 2


# --- Failures ---

def test_corrupt_file_raises_and_store_recovers(store: FileStore, cache_file: Path):
    cache_file.write_bytes(b"definitely not a pickle")
    with pytest.raises(SerializationError):
        store.get("a")

    write_records(cache_file, {"a": {"ttl": 0, "value": 1}})
    assert store.get("a") == 1


def test_file_without_mapping_raises(cache_file: Path):
    cache_file.write_bytes(b"[1, 2, 3]")
    store = FileStore(cache_file, serialize_method="json")
    with pytest.raises(SerializationError):
        store.get("a")


def test_malformed_record_raises(cache_file: Path):
    cache_file.write_bytes(b'{"a": {"value": 1}}')
    store = FileStore(cache_file, serialize_method="json")
    with pytest.raises(SerializationError):
        store.get("a")


def test_file_written_with_other_serializer_raises(cache_file: Path):
    FileStore(cache_file, serialize_method="native").set("a", 1)
    with pytest.raises(SerializationError):
        FileStore(cache_file, serialize_method="json").get("a")


def test_unserializable_value_raises_and_keeps_snapshot(store: FileStore, cache_file: Path):
    store.set("kept", "value")
    before = cache_file.read_bytes()

    with pytest.raises(SerializationError):
        store.set("lock", threading.Lock())

    assert store.get("lock") is None
    assert store.get("kept") == "value"
    assert cache_file.read_bytes() == before


def test_json_rejects_sets(cache_file: Path):
    store = FileStore(cache_file, serialize_method="json")
    with pytest.raises(SerializationError):
        store.set("tags", {"a", "b"})


def test_write_failure_returns_false_and_rolls_back(store: FileStore, mocker):
    store.set("key", "old")
    mocker.patch.object(store, "_replace_file", side_effect=OSError("No space left on device"))

    assert store.set("key", "new") is False
    assert store.set_multiple({"other": 1}) is False
    assert store.delete("key") is False
    assert store.clear() is False

    assert store.get("key") == "old"
    assert store.get("other") is None


def test_write_failure_leaves_no_temporary_file(store: FileStore, cache_file: Path, mocker):
    mocker.patch("kvstash.infrastructure.cache.file_store.os.replace", side_effect=OSError("boom"))

    assert store.set("key", "value") is False
    leftovers = [p.name for p in cache_file.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_lock_timeout_returns_false(cache_file: Path):
    store = FileStore(cache_file, lock_timeout=0.05)
    other = FileLock(f"{cache_file}.lock")
    other.acquire()
    try:
        assert store.set("key", "value") is False
    finally:
        other.release()

    assert store.set("key", "value") is True


def test_permissions_are_preserved(store: FileStore, cache_file: Path):
    os.chmod(cache_file, 0o640)
    store.set("key", "value")
    assert stat.S_IMODE(os.stat(cache_file).st_mode) == 0o640


def test_entries_returns_copy(store: FileStore, clock):
    store.set("a", 1, ttl=5)
    entries = store.entries()
    entries["b"] = CacheEntry(value=2)

    assert store.entries() == {"a": CacheEntry(value=1, expires_at=clock.now() + 5)}
