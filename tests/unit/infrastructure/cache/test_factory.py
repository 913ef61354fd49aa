from unittest.mock import MagicMock

import pytest
import redis

from kvstash.domain.exceptions import InvalidArgumentError
from kvstash.infrastructure.cache.factory import create_store
from kvstash.infrastructure.cache.file_store import FileStore
from kvstash.infrastructure.cache.redis_store import RedisStore


def test_creates_file_store(cache_file):
    store = create_store("file", file_path=cache_file, serialize_method="json")
    assert isinstance(store, FileStore)
    assert store.serializer.method == "json"


def test_creates_redis_store():
    client = MagicMock(spec=redis.Redis)
    client.ping.return_value = True
    store = create_store("redis", client=client, serialize_method="msgpack")
    assert isinstance(store, RedisStore)
    assert store.client is client


def test_unknown_backend_raises():
    with pytest.raises(InvalidArgumentError):
        create_store("memcached")
