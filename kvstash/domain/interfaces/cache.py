"""Interface for cache backends.

Defines the contract for storing, retrieving and expiring cached values,
shared by the file backend and the Redis adapter so callers can swap one
for the other without code changes.
"""

import abc
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from kvstash.domain.models.common import TTL
from kvstash.domain.models.entry import CacheEntry


class CacheStore(abc.ABC):
    """Abstract Base Class for key/value cache operations.

    Every key argument must be a valid key (see `kvstash.core.keys`); an
    invalid key raises InvalidKeyError before anything is changed.
    """

    @abc.abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Fetches a value from the cache.

        Args:
            key: The unique key of the item.
            default: Value returned on a miss or when the item is stale.

        Returns:
            The cached value, or `default`.
        """
        pass

    @abc.abstractmethod
    def set(self, key: str, value: Any, ttl: TTL = None) -> bool:
        """Persists a value under `key`, with an optional TTL.

        Args:
            key: The key of the item to store.
            value: The value to store, must be serializable.
            ttl: None for no expiration, whole seconds, or a timedelta.
                 Zero or negative durations store an already-expired item.

        Returns:
            True on success, False when the backend write failed.
        """
        pass

    @abc.abstractmethod
    def delete(self, key: str) -> bool:
        """Deletes an item. Deleting a missing key succeeds."""
        pass

    @abc.abstractmethod
    def clear(self) -> bool:
        """Wipes every key of the cache."""
        pass

    @abc.abstractmethod
    def has(self, key: str) -> bool:
        """Determines whether a live item is present.

        NOTE: Only use this for cache warming. has() followed by get() is
        subject to a race with other processes changing the cache.
        """
        pass

    @abc.abstractmethod
    def get_multiple(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        """Fetches several values; every requested key is present in the result."""
        pass

    @abc.abstractmethod
    def set_multiple(
        self,
        values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        ttl: TTL = None,
    ) -> bool:
        """Persists several key/value pairs sharing one TTL."""
        pass

    @abc.abstractmethod
    def delete_multiple(self, keys: Iterable[str]) -> bool:
        """Deletes several items in a single operation."""
        pass


class InspectableStore(abc.ABC):
    """Optional capability of stores that hold their whole content locally."""

    @abc.abstractmethod
    def entries(self) -> Dict[str, CacheEntry]:
        """Returns every entry keyed by cache key, stale ones included."""
        pass
