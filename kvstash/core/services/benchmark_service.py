"""Serializer benchmark: measures encode/decode speed and payload size.

Every serializer runs against the same samples: a small flat record and a
large structure made of many copies of a deeply nested record.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from kvstash.domain.exceptions import SerializationError
from kvstash.domain.interfaces.serializer import Serializer
from kvstash.domain.models.benchmark import BenchmarkResult
from kvstash.domain.models.common import SerializeMethod

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 100
DEFAULT_BIG_COPIES = 1000
NESTING_DEPTH = 6


def _record() -> Dict[str, Any]:
    return {
        "int": 123,
        "float": 123.123,
        "string": "Hey mama",
        "boolean": False,
        "null": None,
        "array": {"some": "values", "added": "here"},
    }


def _nested_record() -> Dict[str, Any]:
    nested = _record()
    for _ in range(NESTING_DEPTH):
        outer = _record()
        outer["array"]["key"] = nested
        nested = outer
    return nested


def build_samples(big_copies: int = DEFAULT_BIG_COPIES) -> Dict[str, Any]:
    """Builds the 'small' and 'big' benchmark payloads."""
    # Distinct copies, so pickle cannot collapse them into back-references
    big = {f"key{i}": _nested_record() for i in range(big_copies)}
    return {"small": _record(), "big": big}


class BenchmarkService:
    """Times a set of serializers over the benchmark samples."""

    def __init__(self, serializers: Iterable[Serializer], samples: Optional[Dict[str, Any]] = None):
        self.serializers = list(serializers)
        self.samples = samples if samples is not None else build_samples()

    def run(self, iterations: int = DEFAULT_ITERATIONS) -> List[BenchmarkResult]:
        """Runs every serializer over every sample.

        Serializers that cannot encode a sample are skipped for that sample.
        """
        if iterations < 1:
            raise ValueError("iterations must be at least 1")

        results = []
        for serializer in self.serializers:
            for name, sample in self.samples.items():
                try:
                    results.append(self._measure(serializer, name, sample, iterations))
                except SerializationError as e:
                    logger.warning(f"Skipping {serializer.method} for sample '{name}': {e}")
        return results

    @staticmethod
    def _measure(serializer: Serializer, name: str, sample: Any, iterations: int) -> BenchmarkResult:
        logger.debug(f"Benchmarking {serializer.method} on '{name}' ({iterations} iterations)")

        start = time.perf_counter()
        for _ in range(iterations):
            payload = serializer.serialize(sample)
        serialize_total = time.perf_counter() - start

        start = time.perf_counter()
        for _ in range(iterations):
            serializer.deserialize(payload)
        deserialize_total = time.perf_counter() - start

        return BenchmarkResult(
            method=SerializeMethod(serializer.method),
            sample=name,
            iterations=iterations,
            payload_bytes=len(payload),
            serialize_seconds=serialize_total / iterations,
            deserialize_seconds=deserialize_total / iterations,
        )
