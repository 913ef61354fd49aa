"""Key and batch argument validation shared by every backend.

All checks run before a backend performs any side effect, so a batch with
a single bad key is rejected as a whole.
"""

import re
from collections.abc import Iterable as IterableABC
from collections.abc import Mapping as MappingABC
from typing import Any, Iterable, List, Mapping, Tuple, Union

from kvstash.domain.exceptions import InvalidArgumentError, InvalidKeyError
from kvstash.domain.models.common import CacheKey

KEY_PATTERN = re.compile(r"[A-Za-z0-9\-_:]+")


def validate_key(key: Any) -> CacheKey:
    """Checks a single key.

    Returns:
        The key, typed as CacheKey.

    Raises:
        InvalidKeyError: If the key is not a non-empty string of allowed characters.
    """
    if not isinstance(key, str) or not KEY_PATTERN.fullmatch(key):
        raise InvalidKeyError(key)
    return CacheKey(key)


def ensure_iterable(argument: Any, name: str = "keys") -> None:
    """Rejects batch arguments that are not collections.

    Strings and bytes are iterable but never a valid key collection.
    """
    if isinstance(argument, (str, bytes)) or not isinstance(argument, IterableABC):
        raise InvalidArgumentError(
            f"{name} must be an iterable collection, got {type(argument).__name__}"
        )


def validate_keys(keys: Iterable[Any]) -> List[CacheKey]:
    """Materializes a key batch and validates every element."""
    ensure_iterable(keys, "keys")
    return [validate_key(key) for key in keys]


def validate_items(
    values: Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]]]
) -> List[Tuple[CacheKey, Any]]:
    """Materializes a key/value batch and validates every key.

    Accepts a mapping or an iterable of (key, value) pairs.
    """
    ensure_iterable(values, "values")
    pairs = values.items() if isinstance(values, MappingABC) else values

    validated = []
    for pair in pairs:
        try:
            key, value = pair
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Expected (key, value) pairs, got {pair!r}") from e
        validated.append((validate_key(key), value))
    return validated
