"""Domain models for the serializer benchmark."""

from dataclasses import dataclass

from .common import SerializeMethod


@dataclass
class BenchmarkResult:
    """Timings of one serializer over one sample payload."""
    method: SerializeMethod
    sample: str              # e.g. 'small', 'big'
    iterations: int
    payload_bytes: int
    serialize_seconds: float  # Average per call
    deserialize_seconds: float
