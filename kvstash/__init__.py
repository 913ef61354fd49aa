"""kvstash: key/value caching with interchangeable file and Redis backends.

Typical usage:

    from kvstash import FileStore

    store = FileStore("/tmp/app.cache", serialize_method="json")
    store.set("user:1", {"name": "Ada"}, ttl=60)
    store.get("user:1")
"""

from kvstash.domain.exceptions import (
    BackendUnavailableError,
    CacheError,
    InvalidArgumentError,
    InvalidKeyError,
    SerializationError,
)
from kvstash.domain.interfaces.cache import CacheStore
from kvstash.infrastructure.cache.factory import create_store
from kvstash.infrastructure.cache.file_store import FileStore
from kvstash.infrastructure.cache.redis_store import RedisStore

__version__ = "0.3.0"

__all__ = [
    "CacheStore",
    "FileStore",
    "RedisStore",
    "create_store",
    "CacheError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "BackendUnavailableError",
    "SerializationError",
]
