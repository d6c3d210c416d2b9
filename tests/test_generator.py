"""
Tests for the deterministic workload generator.
"""

import random

import pytest

from kvbench.config import SCENARIOS
from kvbench.errors import WorkloadError
from kvbench.generator import Record, Workload
from kvbench.types import WorkloadSpec


class ShortRandom(random.Random):
    """Random source that always comes up one byte short."""

    def randbytes(self, n):
        return super().randbytes(n)[:-1]


class TestWorkload:
    """Tests for Workload."""

    def test_same_seed_same_stream(self, small_workload):
        """Two workloads with the same seed produce identical records."""
        assert list(Workload(small_workload)) == list(Workload(small_workload))

    def test_iteration_restarts_from_seed(self, small_workload):
        """Iterating twice over one workload yields the same records."""
        workload = Workload(small_workload)
        first = list(workload)
        second = list(workload)
        assert first == second

    def test_different_seed_different_stream(self, small_workload):
        """Changing the seed changes the generated keys."""
        other = WorkloadSpec(num_items=20, key_size=16, value_size=1024, seed=23)
        assert list(Workload(small_workload)) != list(Workload(other))

    def test_counts_and_lengths(self):
        """Exactly num_items records with fixed key and value lengths."""
        spec = WorkloadSpec(num_items=50, key_size=16, value_size=10 * 1024)
        records = list(Workload(spec))

        assert len(records) == 50
        assert all(isinstance(r, Record) for r in records)
        assert all(len(r.key) == 16 for r in records)
        assert all(len(r.value) == 10 * 1024 for r in records)

    def test_len_matches_num_items(self, small_workload):
        """len() reports the configured number of items without generating them."""
        assert len(Workload(small_workload)) == small_workload.num_items

    def test_key_drawn_before_value(self, small_workload):
        """Each record takes its key then its value from the seeded stream."""
        rng = random.Random(small_workload.seed)
        first, second = list(Workload(small_workload))[:2]

        assert first.key == rng.randbytes(16)
        assert first.value == rng.randbytes(1024)
        assert second.key == rng.randbytes(16)

    def test_keys_are_unique(self, small_workload):
        """Random 16-byte keys do not collide in a small workload."""
        keys = list(Workload(small_workload).keys())
        assert len(set(keys)) == len(keys)

    def test_short_random_source_raises(self, small_workload):
        """A random source that cannot supply enough bytes is an error."""
        workload = Workload(small_workload, rng_factory=ShortRandom)
        with pytest.raises(WorkloadError, match="generating key"):
            list(workload)

    def test_does_not_touch_global_random(self, small_workload):
        """Generating a workload leaves the module-level random state alone."""
        random.seed(1)
        expected = random.random()
        random.seed(1)
        list(Workload(small_workload))
        assert random.random() == expected

    def test_digest_is_stable(self, small_workload):
        """The digest is identical for identical workloads and hex encoded."""
        digest = Workload(small_workload).digest()
        assert digest == Workload(small_workload).digest()
        assert len(digest) == 64
        int(digest, 16)


class TestWorkloadSpec:
    """Tests for WorkloadSpec validation."""

    @pytest.mark.parametrize("field", ["num_items", "key_size", "value_size"])
    def test_rejects_non_positive(self, field):
        kwargs = {"num_items": 10, "key_size": 16, "value_size": 1024, field: 0}
        with pytest.raises(ValueError, match=field):
            WorkloadSpec(**kwargs)

    def test_configured_variants(self):
        """Configured scenarios use 16-byte keys and the two value size variants."""
        for scenario in SCENARIOS:
            spec = scenario.workload
            assert spec.key_size == 16
            assert (spec.num_items, spec.value_size) in {(1_000_000, 1024), (100_000, 10 * 1024)}
            assert spec.seed == 22
