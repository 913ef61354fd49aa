"""Defines common Value Objects used across the cache contexts.

These objects represent simple values such as keys, epoch timestamps and
serializer names, ensuring consistency and type safety.
"""

from datetime import timedelta
from typing import NewType, Optional, Union

# === Core Value Objects ===

CacheKey = NewType("CacheKey", str)            # Validated cache key
EpochSeconds = NewType("EpochSeconds", int)    # Unix timestamp in whole seconds
SerializeMethod = NewType("SerializeMethod", str)  # 'native', 'msgpack' or 'json'
BackendName = NewType("BackendName", str)      # 'file' or 'redis'

# Sentinel expiration meaning "never expires"
NEVER_EXPIRES = EpochSeconds(0)

# Accepted TTL forms: absent, whole seconds, or a duration
TTL = Optional[Union[int, timedelta]]
