from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Sequence

from kvbench.config import RECLAIM_RATIO
from kvbench.engines import Engine, RocksDBEngine
from kvbench.errors import EngineCloseError, ScenarioFailed, TempDirError
from kvbench.runner import ClosePolicy, RunStats, run_scenario
from kvbench.scanner import ArtifactMetrics, scan_artifacts
from kvbench.types import Scenario

logger = logging.getLogger(__name__)


@dataclass
class ScenarioResult:
    """Outcome of one scenario: metrics on success, the error on failure."""

    scenario: Scenario
    metrics: ArtifactMetrics | None = None
    stats: RunStats | None = None
    error: BaseException | None = None
    elapsed: float = 0.0
    workdir: str | None = None
    engine: str = ""

    @property
    def name(self) -> str:
        return self.scenario.name

    @property
    def ok(self) -> bool:
        return self.error is None


def run_one(
    scenario: Scenario,
    engine_class: type[Engine] = RocksDBEngine,
    reclaim_ratio: float = RECLAIM_RATIO,
    close_policy: ClosePolicy = ClosePolicy.ABORT,
    progress: bool = False,
    position: int = 0,
) -> ScenarioResult:
    """Run a scenario in a fresh temporary directory and measure what it left behind."""
    try:
        workdir = tempfile.mkdtemp(prefix=f"kvbench_{scenario.name}_")
    except OSError as e:
        raise TempDirError(f"creating temp dir: {e}") from e

    logger.debug("%s: running in %s", scenario.name, workdir)
    start = time.perf_counter()
    try:
        stats = run_scenario(
            workdir,
            engine_class,
            scenario,
            reclaim_ratio=reclaim_ratio,
            close_policy=close_policy,
            progress=progress,
            position=position,
        )
        metrics = scan_artifacts(
            workdir,
            table_suffixes=engine_class.table_suffixes,
            value_log_suffixes=engine_class.value_log_suffixes,
        )
    finally:
        shutil.rmtree(workdir, ignore_errors=True)

    return ScenarioResult(
        scenario=scenario,
        metrics=metrics,
        stats=stats,
        elapsed=time.perf_counter() - start,
        workdir=workdir,
        engine=engine_class.name,
    )


def run_scenarios(
    scenarios: Sequence[Scenario],
    engine_class: type[Engine] = RocksDBEngine,
    max_workers: int | None = None,
    on_result: Callable[[ScenarioResult], None] | None = None,
    reclaim_ratio: float = RECLAIM_RATIO,
    close_policy: ClosePolicy = ClosePolicy.ABORT,
    progress: bool = False,
) -> list[ScenarioResult]:
    """Run all scenarios in parallel and return their results in submission order.

    on_result is called from the calling thread as each scenario finishes.
    The first failing scenario stops the run: tasks that have not started
    are cancelled and ScenarioFailed is raised without waiting for the
    scenarios still running, which cannot be interrupted. The caller is
    expected to end the process. The exception's results lists, in
    submission order, every scenario that finished, the failed one included
    as a result carrying its error.
    """
    names = [s.name for s in scenarios]
    if len(set(names)) != len(names):
        raise ValueError(f"Scenario names must be unique: {names}")
    if not scenarios:
        return []

    max_workers = max_workers or min(len(scenarios), os.cpu_count() or 1)
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="kvbench")
    futures: dict[Future, Scenario] = {}
    results: dict[str, ScenarioResult] = {}
    failure: ScenarioFailed | None = None

    try:
        for position, scenario in enumerate(scenarios):
            future = executor.submit(
                run_one,
                scenario,
                engine_class,
                reclaim_ratio,
                close_policy,
                progress,
                position,
            )
            futures[future] = scenario

        pending = set(futures)
        while pending and failure is None:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                scenario = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    results[scenario.name] = ScenarioResult(
                        scenario=scenario, error=e, engine=engine_class.name
                    )
                    fatal = isinstance(e, EngineCloseError) and close_policy is ClosePolicy.ABORT
                    failure = failure or ScenarioFailed(scenario.name, e, fatal=fatal)
                    continue
                results[scenario.name] = result
                if on_result is not None:
                    on_result(result)
    finally:
        executor.shutdown(wait=failure is None, cancel_futures=True)

    ordered = [results[name] for name in names if name in results]
    if failure is not None:
        failure.results = ordered
        raise failure

    return ordered
