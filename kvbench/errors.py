"""
Exceptions raised by the benchmark harness.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for every failure that aborts a benchmark run."""


class TempDirError(BenchmarkError):
    pass


class DatastoreCreationError(BenchmarkError):
    pass


class WorkloadError(BenchmarkError):
    """Raised when the random source cannot supply the requested bytes."""


class PutError(BenchmarkError):
    pass


class DeleteError(BenchmarkError):
    pass


class ReclaimError(BenchmarkError):
    pass


class EngineCloseError(BenchmarkError):
    """
    Raised when an engine cannot be closed.

    A failed close can leave the engine's lock file behind, so under the
    default close policy this error stops the whole run.
    """


class ArtifactScanError(BenchmarkError):
    pass


class ScenarioFailed(BenchmarkError):
    """Wraps the error that made a single scenario fail."""

    def __init__(self, scenario: str, cause: BaseException, fatal: bool = False):
        self.scenario = scenario
        self.cause = cause
        self.fatal = fatal
        # ScenarioResults collected before the run stopped, in submission order.
        self.results: list = []
        super().__init__(f"scenario {scenario!r}: {cause}")
