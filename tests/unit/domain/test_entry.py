import pytest

from kvstash.domain.exceptions import SerializationError
from kvstash.domain.models.entry import CacheEntry


def test_never_expiring_entry_is_always_live():
    entry = CacheEntry(value="v")
    assert entry.expires_at == 0
    assert entry.is_live(0)
    assert entry.is_live(10 ** 12)


def test_entry_is_live_through_its_expiration_second():
    entry = CacheEntry(value="v", expires_at=100)
    assert entry.is_live(99)
    assert entry.is_live(100)
    assert not entry.is_live(101)


def test_negative_expiration_is_stale():
    assert not CacheEntry(value="v", expires_at=-10).is_live(0)


def test_record_round_trip():
    entry = CacheEntry(value={"a": [1, 2]}, expires_at=1234)
    assert entry.to_record() == {"ttl": 1234, "value": {"a": [1, 2]}}
    assert CacheEntry.from_record(entry.to_record()) == entry


@pytest.mark.parametrize("record", [
    None,
    "string",
    [0, "value"],
    {"value": 1},
    {"ttl": 0},
    {"ttl": "0", "value": 1},
    {"ttl": True, "value": 1},
    {"ttl": 1.5, "value": 1},
])
def test_malformed_records(record):
    with pytest.raises(SerializationError):
        CacheEntry.from_record(record)
