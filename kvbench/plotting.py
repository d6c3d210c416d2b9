from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

if TYPE_CHECKING:
    from kvbench.scanner import ArtifactMetrics
    from kvbench.scheduler import ScenarioResult


def format_metrics(name: str, metrics: ArtifactMetrics) -> str:
    """The one-line-per-scenario report printed as each scenario finishes."""
    return f"{name}:\n\t{metrics!r}"


def plot_results(results: list[ScenarioResult], output_dir: Path):
    """Generate footprint and file count charts for the scenarios."""
    output_dir.mkdir(parents=True, exist_ok=True)

    names = [r.name for r in results]
    x = np.arange(len(names))
    width = 0.35
    colors = ["#3498db", "#e74c3c"]

    series = {
        "footprint.png": (
            "Size (KiB)",
            "On-disk Footprint after Delete and GC",
            [("sorted tables", [r.metrics.tables_kib for r in results]),
             ("value log", [r.metrics.value_logs_kib for r in results])],
        ),
        "file_counts.png": (
            "Files",
            "File Count after Delete and GC",
            [("sorted tables", [r.metrics.num_tables for r in results]),
             ("value log", [r.metrics.num_value_logs for r in results])],
        ),
    }

    for filename, (ylabel, title, bars_data) in series.items():
        _, ax = plt.subplots(figsize=(max(6, 2 * len(names)), 5))

        for j, (label, values) in enumerate(bars_data):
            offset = (j - len(bars_data) / 2 + 0.5) * width
            bars = ax.bar(x + offset, values, width, label=label, color=colors[j % len(colors)])

            for bar, v in zip(bars, values):
                ax.annotate(f"{v}", xy=(bar.get_x() + bar.get_width() / 2, bar.get_height()),
                            xytext=(0, 2), textcoords="offset points", ha="center", va="bottom", fontsize=8)

        ax.set_ylabel(ylabel)
        ax.set_title(title)
        ax.set_xticks(x)
        ax.set_xticklabels(names)
        ax.set_xlabel("Scenario")
        ax.legend(loc="upper left")

        plt.tight_layout()
        plt.savefig(output_dir / filename, dpi=150)
        plt.close()

    print(f"Saved plots to {output_dir}/")


def save_results(results: list[ScenarioResult], output_path: Path):
    """Save scenario results to JSON."""
    data = {
        "scenarios": [
            {
                "name": r.name,
                "engine": r.engine,
                "options": dict(r.scenario.options),
                "workload": {
                    "num_items": r.scenario.workload.num_items,
                    "key_size": r.scenario.workload.key_size,
                    "value_size": r.scenario.workload.value_size,
                    "seed": r.scenario.workload.seed,
                    "total_bytes": r.scenario.workload.total_bytes,
                },
                "metrics": r.metrics.as_dict(),
                "keys_written": r.stats.keys_written,
                "keys_deleted": r.stats.keys_deleted,
                "reclaim_passes": r.stats.reclaim_passes,
                "elapsed": r.elapsed,
            }
            for r in results
        ]
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(data, indent=2))
    print(f"Saved results to {output_path}")


def print_summary(results: list[ScenarioResult]):
    """Print summary table of scenario results."""
    print("\n" + "=" * 80)
    print("KV FOOTPRINT SUMMARY")
    print("=" * 80)

    header = f"{'Scenario':<20}{'SST files':>12}{'SST KiB':>12}{'VLog files':>12}{'VLog KiB':>12}{'Time':>12}"
    print(header)
    print("-" * 80)

    for r in results:
        m = r.metrics
        row = f"{r.name[:19]:<20}"
        row += f"{m.num_tables:>12}{m.tables_kib:>12}{m.num_value_logs:>12}{m.value_logs_kib:>12}"
        row += f"{r.elapsed:>11.1f}s"
        print(row)

    print("=" * 80)
