"""TTL resolution: turns the accepted TTL forms into absolute expirations."""

from datetime import timedelta
from typing import Any, Optional

from kvstash.domain.exceptions import InvalidArgumentError
from kvstash.domain.interfaces.clock import Clock
from kvstash.domain.models.common import EpochSeconds, NEVER_EXPIRES


def ttl_to_seconds(ttl: Any, now: int) -> Optional[int]:
    """Resolves a TTL to a duration in whole seconds relative to `now`.

    Returns None when no TTL was given. A timedelta is rounded down to whole
    seconds, so any duration timedelta can hold is accepted.

    Raises:
        InvalidArgumentError: For unsupported TTL types (bool included).
    """
    if ttl is None:
        return None
    if isinstance(ttl, timedelta):
        # Normalized timedeltas keep microseconds non-negative, so this is the floor
        return ttl.days * 86400 + ttl.seconds
    if isinstance(ttl, int) and not isinstance(ttl, bool):
        return ttl
    raise InvalidArgumentError(
        f"TTL must be None, an integer number of seconds or a timedelta, got {type(ttl).__name__}"
    )


def resolve_expires_at(ttl: Any, clock: Clock) -> EpochSeconds:
    """Computes the absolute expiration for an entry written now.

    None means never expires (0). Zero and negative durations are accepted
    and yield an entry that is stale almost immediately.
    """
    now = clock.now()
    seconds = ttl_to_seconds(ttl, now)
    if seconds is None:
        return NEVER_EXPIRES

    expires_at = now + seconds
    # 0 is reserved for "never"; keep past expirations in the past
    if expires_at == NEVER_EXPIRES:
        expires_at = -1
    return EpochSeconds(expires_at)
