from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping

from tqdm import tqdm

from kvbench.config import BASELINE_OPTIONS, RECLAIM_RATIO
from kvbench.engines import Engine, EngineError, NothingToReclaim
from kvbench.errors import (
    BenchmarkError,
    DatastoreCreationError,
    DeleteError,
    EngineCloseError,
    PutError,
    ReclaimError,
)
from kvbench.generator import Workload
from kvbench.types import Scenario

logger = logging.getLogger(__name__)

EngineFactory = Callable[[str, Mapping[str, Any]], Engine]


class ScenarioState(Enum):
    CREATED = "created"
    OPENED = "opened"
    POPULATING = "populating"
    DELETING = "deleting"
    RECLAIMING = "reclaiming"
    CLOSED = "closed"
    VERIFIED = "verified"
    FAILED = "failed"


class ClosePolicy(Enum):
    """What a failed engine close does to the run.

    ABORT raises at once, skipping the reopen check, and stops the whole
    benchmark. REPORT records it as an ordinary scenario error.
    """

    ABORT = "abort"
    REPORT = "report"


@dataclass
class RunStats:
    scenario: str
    keys_written: int = 0
    keys_deleted: int = 0
    reclaim_passes: int = 0
    state: ScenarioState = ScenarioState.CREATED
    history: list[ScenarioState] = field(default_factory=lambda: [ScenarioState.CREATED])

    def advance(self, state: ScenarioState) -> None:
        logger.debug("%s: %s -> %s", self.scenario, self.state.value, state.value)
        self.state = state
        self.history.append(state)


def check_directory(path: str) -> None:
    """The engine must start from an existing, empty, writable directory."""
    p = Path(path)
    if not p.is_dir():
        raise DatastoreCreationError(f"creating datastore: {path} is not a directory")
    if any(p.iterdir()):
        raise DatastoreCreationError(f"creating datastore: {path} is not empty")
    if not os.access(path, os.W_OK):
        raise DatastoreCreationError(f"creating datastore: {path} is not writable")


def run_workload(
    engine: Engine,
    workload: Workload,
    stats: RunStats,
    progress: bool = False,
    position: int = 0,
) -> None:
    """Set every generated record, then delete every key in generation order."""
    keys: list[bytes] = []

    stats.advance(ScenarioState.POPULATING)
    with tqdm(
        total=len(workload),
        unit="key",
        desc=f"{stats.scenario}: set",
        position=position,
        leave=False,
        disable=not progress,
    ) as pbar:
        for key, value in workload:
            try:
                engine.set(key, value)
            except EngineError as e:
                raise PutError(f"put operation: {e}") from e
            keys.append(key)
            stats.keys_written += 1
            pbar.update(1)

    stats.advance(ScenarioState.DELETING)
    with tqdm(
        total=len(keys),
        unit="key",
        desc=f"{stats.scenario}: delete",
        position=position,
        leave=False,
        disable=not progress,
    ) as pbar:
        for key in keys:
            try:
                engine.delete(key)
            except EngineError as e:
                raise DeleteError(f"delete key: {e}") from e
            stats.keys_deleted += 1
            pbar.update(1)


def reclaim_value_log(engine: Engine, ratio: float, stats: RunStats) -> None:
    """Repeat value log reclamation until the engine reports nothing to rewrite."""
    while True:
        try:
            engine.reclaim_value_log(ratio)
        except NothingToReclaim:
            return
        except EngineError as e:
            raise ReclaimError(f"value log gc: {e}") from e
        stats.reclaim_passes += 1


def close_engine(engine: Engine) -> None:
    try:
        engine.close()
    except EngineError as e:
        raise EngineCloseError(f"closing datastore: {e}") from e


def reopen_and_close(engine_factory: EngineFactory, path: str) -> None:
    try:
        engine = engine_factory(path, BASELINE_OPTIONS)
    except EngineError as e:
        raise DatastoreCreationError(f"reopening datastore: {e}") from e
    close_engine(engine)


def run_scenario(
    path: str,
    engine_factory: EngineFactory,
    scenario: Scenario,
    reclaim_ratio: float = RECLAIM_RATIO,
    close_policy: ClosePolicy = ClosePolicy.ABORT,
    progress: bool = False,
    position: int = 0,
) -> RunStats:
    """Open an engine in path, run the scenario's workload and clean up.

    Cleanup always runs in the same order: reclaim the value log until
    there is nothing left to rewrite, close the engine, then reopen the
    directory with baseline options and close it again so any recovery
    work deferred to open time is done before the directory is measured.
    The first error is raised once cleanup has finished; later ones are
    only logged.
    """
    stats = RunStats(scenario=scenario.name)
    path = os.fspath(path)

    try:
        check_directory(path)
        engine = engine_factory(path, scenario.options)
    except EngineError as e:
        stats.advance(ScenarioState.FAILED)
        raise DatastoreCreationError(f"creating datastore: {e}") from e
    except DatastoreCreationError:
        stats.advance(ScenarioState.FAILED)
        raise
    stats.advance(ScenarioState.OPENED)

    errors: list[BenchmarkError] = []

    def fail(error: BenchmarkError) -> None:
        if errors:
            logger.error("%s: %s (after earlier error: %s)", scenario.name, error, errors[0])
        errors.append(error)

    def close_failed(error: EngineCloseError) -> None:
        if close_policy is ClosePolicy.ABORT:
            if errors:
                logger.error("%s: %s", scenario.name, errors[0])
            stats.advance(ScenarioState.FAILED)
            raise error
        fail(error)

    def cleanup() -> None:
        stats.advance(ScenarioState.RECLAIMING)
        try:
            reclaim_value_log(engine, reclaim_ratio, stats)
        except ReclaimError as e:
            fail(e)
        finally:
            close_and_verify()

    def close_and_verify() -> None:
        try:
            close_engine(engine)
        except EngineCloseError as e:
            close_failed(e)
        else:
            stats.advance(ScenarioState.CLOSED)

        try:
            reopen_and_close(engine_factory, path)
        except EngineCloseError as e:
            close_failed(e)
        except DatastoreCreationError as e:
            fail(e)

    # Anything other than a BenchmarkError still gets cleaned up, then propagates.
    try:
        run_workload(engine, Workload(scenario.workload), stats, progress, position)
    except BenchmarkError as e:
        fail(e)
    finally:
        cleanup()

    if errors:
        stats.advance(ScenarioState.FAILED)
        raise errors[0]

    stats.advance(ScenarioState.VERIFIED)
    logger.info(
        "%s: wrote %d keys, deleted %d, %d value log gc passes",
        scenario.name,
        stats.keys_written,
        stats.keys_deleted,
        stats.reclaim_passes,
    )
    return stats
