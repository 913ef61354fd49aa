"""Value serializers (native pickle, msgpack, JSON)."""

from kvstash.infrastructure.serializers.serializers import (
    METHOD_JSON,
    METHOD_MSGPACK,
    METHOD_NATIVE,
    SERIALIZE_METHODS,
    JsonSerializer,
    MsgpackSerializer,
    NativeSerializer,
    create_serializer,
)

__all__ = [
    "METHOD_NATIVE",
    "METHOD_MSGPACK",
    "METHOD_JSON",
    "SERIALIZE_METHODS",
    "NativeSerializer",
    "MsgpackSerializer",
    "JsonSerializer",
    "create_serializer",
]
