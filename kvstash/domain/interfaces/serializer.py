"""Interface for value serializers.

A serializer turns a value into bytes for storage and back. Implementations
are stateless and must raise SerializationError rather than return a
placeholder for data they cannot handle.
"""

import abc
from typing import Any


class Serializer(abc.ABC):
    """Abstract Base Class for value encodings."""

    method: str

    @abc.abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Encodes a value.

        Raises:
            SerializationError: If the value is outside the encoding's domain.
        """
        pass

    @abc.abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Decodes a payload produced by `serialize`.

        Raises:
            SerializationError: If the payload is invalid for this encoding.
        """
        pass
