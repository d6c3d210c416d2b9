#!/usr/bin/env python3
"""
KV Footprint Benchmark

Usage:
    python -m kvbench run                         # Run every scenario in parallel
    python -m kvbench run --scenario Aggressive   # Run selected scenarios only
    python -m kvbench run --no-plot --workers 2

    python -m kvbench workload --scenario Aggressive  # Print the workload digest
    python -m kvbench scan /path/to/db                 # Measure an existing directory
    python -m kvbench list                             # Show configured scenarios
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from kvbench.config import DEFAULT_RESULTS_DIR, SCENARIOS, get_scenario
from kvbench.engines import RocksDBEngine
from kvbench.errors import BenchmarkError, ScenarioFailed
from kvbench.generator import Workload
from kvbench.plotting import format_metrics, plot_results, print_summary, save_results
from kvbench.runner import ClosePolicy
from kvbench.scanner import scan_artifacts
from kvbench.scheduler import run_scenarios

EXIT_FAILURE = 1
# A scenario could not close its engine; its lock may still be held.
EXIT_FATAL = 2


def cmd_run(args) -> int:
    """Run the selected scenarios and report their footprints."""
    scenarios = [get_scenario(name) for name in args.scenario] if args.scenario else SCENARIOS

    names = ", ".join(s.name for s in scenarios)
    print(f"Running {len(scenarios)} scenario(s) on {RocksDBEngine.name}: {names}")

    def report(result):
        print(format_metrics(result.name, result.metrics), flush=True)

    try:
        results = run_scenarios(
            scenarios,
            engine_class=RocksDBEngine,
            max_workers=args.workers,
            on_result=report,
            close_policy=ClosePolicy(args.close_policy),
            progress=not args.no_progress,
        )
    except ScenarioFailed as e:
        print(f"running scenario: {e}", file=sys.stderr)
        return EXIT_FATAL if e.fatal else EXIT_FAILURE

    print_summary(results)

    results_dir = Path(args.results)
    save_results(results, results_dir / "kvbench.json")
    if not args.no_plot:
        plot_results(results, results_dir)
    return 0


def cmd_workload(args) -> int:
    """Describe a scenario's workload and print its digest."""
    scenario = get_scenario(args.scenario)
    spec = scenario.workload

    print(f"Workload for {scenario.name}:")
    print(f"  Items: {spec.num_items}")
    print(f"  Key size: {spec.key_size} B")
    print(f"  Value size: {spec.value_size} B")
    print(f"  Seed: {spec.seed}")
    print(f"  Total: {spec.total_bytes / 1024**2:.1f} MiB")
    print(f"  Digest: {Workload(spec).digest()}")
    return 0


def cmd_scan(args) -> int:
    """Measure an existing engine directory."""
    metrics = scan_artifacts(args.path)
    print(format_metrics(str(args.path), metrics))
    return 0


def cmd_list(args) -> int:
    for scenario in SCENARIOS:
        spec = scenario.workload
        print(f"{scenario.name}: {spec.num_items} x {spec.key_size}B/{spec.value_size}B")
        for knob, value in scenario.options.items():
            print(f"  {knob} = {value}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="KV Footprint Benchmark")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    names = [s.name for s in SCENARIOS]

    # Run subcommand
    run_parser = subparsers.add_parser("run", help="Run the benchmark scenarios")
    run_parser.add_argument(
        "--scenario", "-s", action="append", choices=names, help="Scenario(s) to run"
    )
    run_parser.add_argument(
        "--workers", "-w", type=int, default=None, help="Scenarios run at the same time"
    )
    run_parser.add_argument(
        "--results", default=str(DEFAULT_RESULTS_DIR), help="Results directory"
    )
    run_parser.add_argument(
        "--close-policy",
        choices=[p.value for p in ClosePolicy],
        default=ClosePolicy.ABORT.value,
        help="How an engine close failure is treated",
    )
    run_parser.add_argument("--no-plot", action="store_true", help="Skip chart generation")
    run_parser.add_argument("--no-progress", action="store_true", help="Hide progress bars")

    # Workload subcommand
    workload_parser = subparsers.add_parser(
        "workload", help="Print a scenario's workload shape and digest"
    )
    workload_parser.add_argument("--scenario", "-s", required=True, choices=names)

    # Scan subcommand
    scan_parser = subparsers.add_parser("scan", help="Measure an existing engine directory")
    scan_parser.add_argument("path", type=Path)

    subparsers.add_parser("list", help="List configured scenarios")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {"run": cmd_run, "workload": cmd_workload, "scan": cmd_scan, "list": cmd_list}
    if args.command not in commands:
        parser.print_help()
        return 0

    try:
        return commands[args.command](args)
    except BenchmarkError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE


def run():
    code = main()
    if code != 0:
        sys.stdout.flush()
        sys.stderr.flush()
        # Scenario threads still running cannot be cancelled; end them with the process.
        os._exit(code)
    sys.exit(code)


if __name__ == "__main__":
    run()
