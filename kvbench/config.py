from pathlib import Path

from kvbench.types import Scenario, WorkloadSpec

DEFAULT_RESULTS_DIR = Path("results")
DEFAULT_SEED = 22

KEY_SIZE = 16
SMALL_VALUE_SIZE = 1024
LARGE_VALUE_SIZE = 10 * 1024

# Minimum fraction of the value log that a reclamation pass must free
# for the runner to ask for another pass.
RECLAIM_RATIO = 0.01

# Options used to reopen a directory after a scenario closed it.
BASELINE_OPTIONS: dict = {}

SMALL_VALUES = WorkloadSpec(
    num_items=1_000_000,
    key_size=KEY_SIZE,
    value_size=SMALL_VALUE_SIZE,
    seed=DEFAULT_SEED,
)
LARGE_VALUES = WorkloadSpec(
    num_items=100_000,
    key_size=KEY_SIZE,
    value_size=LARGE_VALUE_SIZE,
    seed=DEFAULT_SEED,
)

SCENARIOS = [
    Scenario(
        name="Aggressive",
        workload=SMALL_VALUES,
        options={
            "num_versions_to_keep": 0,
            "compact_l0_on_close": True,
            "value_log_file_size": 20 * 1024**2,
        },
    ),
    Scenario(name="Default", workload=SMALL_VALUES),
    Scenario(
        name="LargeValues",
        workload=LARGE_VALUES,
        options={
            "num_versions_to_keep": 0,
            "compact_l0_on_close": True,
            "value_log_file_size": 20 * 1024**2,
        },
    ),
    Scenario(
        name="SmallLevelZero",
        workload=SMALL_VALUES,
        options={
            "level_zero_compaction_trigger": 2,
            "level_zero_slowdown_trigger": 4,
            "level_zero_stop_trigger": 8,
            "value_log_file_size": 64 * 1024**2,
        },
    ),
]


def get_scenario(name: str) -> Scenario:
    for scenario in SCENARIOS:
        if scenario.name == name:
            return scenario
    raise KeyError(f"Unknown scenario: {name}")
