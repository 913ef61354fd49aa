"""Error taxonomy shared by every cache backend.

Caller misuse (bad keys, bad batch arguments, unknown options) is reported
through InvalidArgumentError so it can be caught separately from backend
and payload problems.
"""

from typing import Any


class CacheError(Exception):
    """Base class for every error raised by kvstash."""


class InvalidArgumentError(CacheError, ValueError):
    """Raised synchronously, before any mutation, for invalid call arguments."""


class InvalidKeyError(InvalidArgumentError):
    """Raised when a cache key is not a non-empty string of [A-Za-z0-9-_:]."""

    def __init__(self, key: Any):
        self.key = key
        super().__init__(
            f"Invalid key {key!r}: keys must be non-empty strings containing only "
            f"the characters a-z, A-Z, 0-9, '-', '_' and ':'"
        )


class BackendUnavailableError(CacheError):
    """Raised when the chosen backend cannot be used (unwritable file, unreachable server)."""


class SerializationError(CacheError):
    """Raised when a value cannot be encoded or a payload cannot be decoded."""
