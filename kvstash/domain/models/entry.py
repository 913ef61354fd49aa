"""The cache entry record and its expiration rule."""

from dataclasses import dataclass
from typing import Any, Dict

from kvstash.domain.exceptions import SerializationError
from kvstash.domain.models.common import EpochSeconds, NEVER_EXPIRES


@dataclass(frozen=True)
class CacheEntry:
    """A stored value plus its absolute expiration time.

    `expires_at` is an epoch second, or 0 when the entry never expires.
    Persisted as `{"ttl": expires_at, "value": value}`.
    """
    value: Any
    expires_at: EpochSeconds = NEVER_EXPIRES

    def is_live(self, now: int) -> bool:
        """An entry is live until the second after its expiration time."""
        return self.expires_at == NEVER_EXPIRES or self.expires_at >= now

    def to_record(self) -> Dict[str, Any]:
        return {"ttl": self.expires_at, "value": self.value}

    @classmethod
    def from_record(cls, record: Any) -> "CacheEntry":
        """Builds an entry from its persisted record.

        Raises:
            SerializationError: If the record does not have the expected shape.
        """
        if not isinstance(record, dict) or "ttl" not in record or "value" not in record:
            raise SerializationError(f"Malformed cache record: {record!r}")

        expires_at = record["ttl"]
        if isinstance(expires_at, bool) or not isinstance(expires_at, int):
            raise SerializationError(f"Malformed expiration in cache record: {expires_at!r}")

        return cls(value=record["value"], expires_at=EpochSeconds(expires_at))
