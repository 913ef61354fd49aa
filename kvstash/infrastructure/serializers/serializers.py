"""Concrete implementations of the Serializer interface.

Three interchangeable encodings are available, selected once per store:

- native: `pickle`, full fidelity for Python values.
- msgpack: compact binary tagged format, faster and smaller, limited to
  scalars, bytes, lists and dicts.
- json: UTF-8 JSON text, portable but lossy (tuples come back as lists).

A file written with one encoding must be read with the same one; the
payload does not describe its own format.
"""

import json
import logging
import pickle
from typing import Any, Dict, Optional, Type

import msgpack

from kvstash.domain.exceptions import InvalidArgumentError, SerializationError
from kvstash.domain.interfaces.serializer import Serializer
from kvstash.domain.models.common import SerializeMethod

logger = logging.getLogger(__name__)

METHOD_NATIVE = SerializeMethod("native")
METHOD_MSGPACK = SerializeMethod("msgpack")
METHOD_JSON = SerializeMethod("json")

DECODE_ERROR_MESSAGE = "Cannot deserialize data. Was the cache written with a different serializer?"


class NativeSerializer(Serializer):
    """Uses pickle with the highest available protocol.

    Only read payloads this library (or another trusted writer) produced:
    unpickling untrusted data can execute arbitrary code.
    """

    method = METHOD_NATIVE

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def serialize(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Value of type {type(value).__name__} cannot be pickled: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        if not data:
            raise SerializationError(DECODE_ERROR_MESSAGE)
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError,
                IndexError, KeyError, TypeError, ValueError) as e:
            raise SerializationError(DECODE_ERROR_MESSAGE) from e


class MsgpackSerializer(Serializer):
    """Uses MessagePack.

    A payload decoding to nil is rejected, as nil is indistinguishable from
    a failed decode for callers.
    """

    method = METHOD_MSGPACK

    def serialize(self, value: Any) -> bytes:
        try:
            return msgpack.packb(value, use_bin_type=True)
        except (TypeError, ValueError, OverflowError) as e:
            raise SerializationError(f"Value of type {type(value).__name__} cannot be packed: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        if not data:
            raise SerializationError(DECODE_ERROR_MESSAGE)
        try:
            value = msgpack.unpackb(data, raw=False, strict_map_key=False)
        except (msgpack.exceptions.UnpackException, ValueError, TypeError) as e:
            raise SerializationError(DECODE_ERROR_MESSAGE) from e

        if value is None:
            raise SerializationError(DECODE_ERROR_MESSAGE)
        return value


class JsonSerializer(Serializer):
    """Uses JSON text encoded as UTF-8.

    As with msgpack, a payload decoding to null is reported as an error.
    """

    method = METHOD_JSON

    def serialize(self, value: Any) -> bytes:
        try:
            return json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Value of type {type(value).__name__} is not JSON serializable: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        if not data:
            raise SerializationError(DECODE_ERROR_MESSAGE)
        try:
            value = json.loads(data)
        except ValueError as e:  # JSONDecodeError and UnicodeDecodeError
            raise SerializationError(DECODE_ERROR_MESSAGE) from e

        if value is None:
            raise SerializationError(DECODE_ERROR_MESSAGE)
        return value


_SERIALIZERS: Dict[str, Type[Serializer]] = {
    METHOD_NATIVE: NativeSerializer,
    METHOD_MSGPACK: MsgpackSerializer,
    METHOD_JSON: JsonSerializer,
}

SERIALIZE_METHODS = tuple(_SERIALIZERS)


def create_serializer(method: Optional[str] = None) -> Serializer:
    """Builds the serializer for a method name (native when None).

    Raises:
        InvalidArgumentError: If the method is not one of SERIALIZE_METHODS.
    """
    method = method or METHOD_NATIVE
    try:
        serializer_cls = _SERIALIZERS[method]
    except (KeyError, TypeError) as e:
        raise InvalidArgumentError(
            f"Invalid serialization method {method!r}, expected one of {', '.join(SERIALIZE_METHODS)}"
        ) from e
    logger.debug(f"Using {method} serializer")
    return serializer_cls()
