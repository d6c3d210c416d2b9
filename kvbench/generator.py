from __future__ import annotations

import hashlib
import random
from typing import Callable, Iterator, NamedTuple

from kvbench.errors import WorkloadError
from kvbench.types import WorkloadSpec


class Record(NamedTuple):
    key: bytes
    value: bytes


def read_bytes(rng: random.Random, size: int, what: str) -> bytes:
    """Draw exactly `size` bytes from rng or raise WorkloadError."""
    data = rng.randbytes(size)
    if len(data) != size:
        raise WorkloadError(f"generating {what}: wanted {size} bytes, got {len(data)}")
    return data


class Workload:
    """Deterministic stream of fixed-size key/value records.

    Each iteration starts a new random source from the configured seed, so two
    iterations (or two processes) see the same bytes in the same order.
    For every record the key is drawn first, then the value.
    """

    def __init__(
        self,
        spec: WorkloadSpec,
        rng_factory: Callable[[int], random.Random] = random.Random,
    ):
        self.spec = spec
        self._rng_factory = rng_factory

    def __len__(self) -> int:
        return self.spec.num_items

    def __iter__(self) -> Iterator[Record]:
        rng = self._rng_factory(self.spec.seed)
        for _ in range(self.spec.num_items):
            key = read_bytes(rng, self.spec.key_size, "key")
            value = read_bytes(rng, self.spec.value_size, "value")
            yield Record(key, value)

    def keys(self) -> Iterator[bytes]:
        for record in self:
            yield record.key

    def digest(self) -> str:
        """SHA-256 of the whole record stream, for comparing runs across machines."""
        h = hashlib.sha256()
        for key, value in self:
            h.update(key)
            h.update(value)
        return h.hexdigest()
