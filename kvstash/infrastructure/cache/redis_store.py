"""Redis implementation of the CacheStore interface.

Every operation is a round trip to the server, which is the single source
of truth; there is no client-side snapshot. Expiration is delegated to
Redis key TTLs.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import redis

from kvstash.core.keys import validate_items, validate_key, validate_keys
from kvstash.core.ttl import ttl_to_seconds
from kvstash.domain.exceptions import BackendUnavailableError
from kvstash.domain.interfaces.cache import CacheStore
from kvstash.domain.interfaces.clock import Clock
from kvstash.domain.models.common import TTL
from kvstash.infrastructure.clock import SystemClock
from kvstash.infrastructure.serializers.serializers import METHOD_NATIVE, create_serializer

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379
DEFAULT_TIMEOUT_SECONDS = 3.0


class RedisStore(CacheStore):
    """Cache stored in a Redis database."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        timeout: Optional[float] = None,
        serialize_method: Optional[str] = METHOD_NATIVE,
        client: Optional[redis.Redis] = None,
        clock: Optional[Clock] = None,
    ):
        """Connects to the Redis server.

        Args:
            host: Hostname of the server (127.0.0.1 by default).
            port: Port number (6379 by default).
            timeout: Seconds after which connecting gives up (3.0 by default).
            serialize_method: 'native', 'msgpack' or 'json'.
            client: Pre-built client, e.g. for decorating or mocking.
            clock: Time source used to resolve timedelta TTLs.

        Raises:
            InvalidArgumentError: If the serialization method is unknown.
            BackendUnavailableError: If no connection could be established.
        """
        self.host = host or DEFAULT_HOST
        self.port = port or DEFAULT_PORT
        self.timeout = timeout if timeout is not None else DEFAULT_TIMEOUT_SECONDS
        self.serializer = create_serializer(serialize_method)
        self.clock = clock or SystemClock()
        self.client = self._connect(client)

        logger.info(f"RedisStore initialized. server={self.host}:{self.port}, serializer={self.serializer.method}")

    def _connect(self, client: Optional[redis.Redis]) -> redis.Redis:
        """Checks the given client first, then falls back to a fresh connection."""
        if client is not None and self._ping(client):
            return client

        logger.debug(f"Opening a new connection to Redis at {self.host}:{self.port}")
        fresh_client = redis.Redis(
            host=self.host,
            port=self.port,
            socket_connect_timeout=self.timeout,
            socket_timeout=self.timeout,
        )
        try:
            if fresh_client.ping():
                return fresh_client
        except redis.RedisError as e:
            raise BackendUnavailableError(
                f"Could not connect to Redis server at {self.host}:{self.port}: {e}"
            ) from e
        raise BackendUnavailableError(f"Could not connect to Redis server at {self.host}:{self.port}")

    @staticmethod
    def _ping(client: redis.Redis) -> bool:
        try:
            return bool(client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis liveness check failed: {e}")
            return False

    def _ttl_seconds(self, ttl: TTL) -> Optional[int]:
        return ttl_to_seconds(ttl, self.clock.now())

    def _decode(self, data: Optional[bytes], default: Any) -> Any:
        if data is None:
            return default
        return self.serializer.deserialize(data)

    # --- CacheStore Interface Implementation ---

    def get(self, key: str, default: Any = None) -> Any:
        key = validate_key(key)
        try:
            data = self.client.get(key)
        except redis.RedisError as e:
            raise BackendUnavailableError(f"Redis GET failed for {key!r}: {e}") from e
        return self._decode(data, default)

    def has(self, key: str) -> bool:
        key = validate_key(key)
        try:
            return self.client.exists(key) == 1
        except redis.RedisError as e:
            raise BackendUnavailableError(f"Redis EXISTS failed for {key!r}: {e}") from e

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        keys = validate_keys(keys)
        if not keys:
            return {}
        try:
            values = self.client.mget(keys)
        except redis.RedisError as e:
            raise BackendUnavailableError(f"Redis MGET failed: {e}") from e
        return {key: self._decode(data, default) for key, data in zip(keys, values)}

    def set(self, key: str, value: Any, ttl: TTL = None) -> bool:
        key = validate_key(key)
        seconds = self._ttl_seconds(ttl)
        payload = self.serializer.serialize(value)

        try:
            if seconds is None:
                return self.client.set(key, payload) is True
            if seconds <= 0:
                # Already expired: make sure no previous value stays readable
                return self.client.delete(key) >= 0
            return self.client.set(key, payload, ex=seconds) is True
        except redis.RedisError as e:
            logger.error(f"Redis SET failed for {key!r}: {e}")
            return False

    def set_multiple(
        self,
        values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        ttl: TTL = None,
    ) -> bool:
        items = validate_items(values)
        seconds = self._ttl_seconds(ttl)
        payloads = {key: self.serializer.serialize(value) for key, value in items}
        if not payloads:
            return True

        try:
            if seconds is not None and seconds <= 0:
                return self.client.delete(*payloads) >= 0

            if not self.client.mset(payloads):
                return False
            if seconds is None:
                return True

            # MSET has no expiry option, so each key gets its own EXPIRE
            results: List[bool] = [self.client.expire(key, seconds) is True for key in payloads]
            return all(results)
        except redis.RedisError as e:
            logger.error(f"Redis MSET failed: {e}")
            return False

    def delete(self, key: str) -> bool:
        key = validate_key(key)
        try:
            return self.client.delete(key) >= 0
        except redis.RedisError as e:
            logger.error(f"Redis DEL failed for {key!r}: {e}")
            return False

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = validate_keys(keys)
        if not keys:
            return True
        try:
            return self.client.delete(*keys) >= 0
        except redis.RedisError as e:
            logger.error(f"Redis DEL failed: {e}")
            return False

    def clear(self) -> bool:
        logger.info(f"Flushing Redis database at {self.host}:{self.port}")
        try:
            return bool(self.client.flushdb())
        except redis.RedisError as e:
            logger.error(f"Redis FLUSHDB failed: {e}")
            return False
