"""Builds a CacheStore from a backend name, as used by the CLI and configuration."""

import logging
from typing import Any, Callable, Dict

from kvstash.domain.exceptions import InvalidArgumentError
from kvstash.domain.interfaces.cache import CacheStore
from kvstash.domain.models.common import BackendName
from kvstash.infrastructure.cache.file_store import FileStore
from kvstash.infrastructure.cache.redis_store import RedisStore

logger = logging.getLogger(__name__)

BACKEND_FILE = BackendName("file")
BACKEND_REDIS = BackendName("redis")

_BACKENDS: Dict[str, Callable[..., CacheStore]] = {
    BACKEND_FILE: FileStore,
    BACKEND_REDIS: RedisStore,
}

BACKENDS = tuple(_BACKENDS)


def create_store(backend: str, **options: Any) -> CacheStore:
    """Instantiates the store for `backend` with backend-specific options.

    Example:
        >>> store = create_store("file", file_path="/tmp/app.cache", serialize_method="json")

    Raises:
        InvalidArgumentError: If the backend name is unknown.
        BackendUnavailableError: If the backend cannot be used.
    """
    try:
        store_cls = _BACKENDS[backend]
    except KeyError as e:
        raise InvalidArgumentError(
            f"Unknown cache backend {backend!r}, expected one of {', '.join(BACKENDS)}"
        ) from e

    logger.debug(f"Creating {backend} cache store with options: {sorted(options)}")
    return store_cls(**options)
