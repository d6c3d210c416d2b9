"""
Shared pytest fixtures for the benchmark harness tests.

FakeEngine stands in for a real store: it keeps keys in a dict, appends
values to a value log file and writes a sorted table on close, and can be
told through its options to fail at any stage.
"""

import os
import tempfile
import threading

import pytest

from kvbench.engines import Engine, EngineError, NothingToReclaim, check_ratio
from kvbench.types import Scenario, WorkloadSpec


class FakeEngine(Engine):
    name = "fake"
    table_suffixes = (".sst",)
    value_log_suffixes = (".vlog",)

    # Replaced per test by the fake_engine fixture.
    instances: list = []
    lock = threading.Lock()
    fail_reopen = False

    # Bytes written to the sorted table per live key on close.
    TABLE_ENTRY_SIZE = 64

    def __init__(self, path, options):
        super().__init__(path, options)
        with self.lock:
            reopen = any(e.path == path for e in self.instances)
            self.instances.append(self)
        self.fail_on = self.options.get("fail_on")
        self.fail_at = self.options.get("fail_at", 0)
        self.gc_passes = self.options.get("gc_passes", 2)
        self.live = {}
        self.sets = []
        self.deletes = []
        self.reclaim_calls = []
        self.closed = False

        if self.fail_on == "open" or (reopen and self.fail_reopen):
            raise EngineError("cannot acquire directory lock")
        with open(os.path.join(path, "LOCK"), "w"):
            pass

    @property
    def vlog_path(self):
        return os.path.join(self.path, "000001.vlog")

    def set(self, key, value):
        if self.fail_on == "set" and len(self.sets) == self.fail_at:
            raise EngineError("simulated put failure")
        self.sets.append(key)
        self.live[key] = len(value)
        with open(self.vlog_path, "ab") as f:
            f.write(value)

    def delete(self, key):
        if self.fail_on == "delete" and len(self.deletes) == self.fail_at:
            raise EngineError("simulated delete failure")
        self.deletes.append(key)
        self.live.pop(key, None)

    def reclaim_value_log(self, ratio):
        check_ratio(ratio)
        self.reclaim_calls.append(ratio)
        if self.fail_on == "reclaim":
            raise EngineError("simulated gc failure")
        if len(self.reclaim_calls) > self.gc_passes or not os.path.exists(self.vlog_path):
            raise NothingToReclaim()
        size = os.path.getsize(self.vlog_path)
        with open(self.vlog_path, "r+b") as f:
            f.truncate(size // 2)

    def close(self):
        if self.fail_on == "close":
            raise EngineError("simulated close failure")
        with open(os.path.join(self.path, "000002.sst"), "ab") as f:
            f.write(b"\0" * self.TABLE_ENTRY_SIZE * len(self.live))
        os.remove(os.path.join(self.path, "LOCK"))
        self.closed = True


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def fake_engine():
    """Provide a FakeEngine subclass with its own instance registry."""
    return type("FakeEngineForTest", (FakeEngine,), {"instances": [], "lock": threading.Lock()})


@pytest.fixture
def small_workload():
    return WorkloadSpec(num_items=20, key_size=16, value_size=1024, seed=22)


@pytest.fixture
def make_scenario(small_workload):
    """Build a scenario over the small workload with the given engine options."""

    def _make(name="Small", **options):
        return Scenario(name=name, workload=small_workload, options=options)

    return _make
