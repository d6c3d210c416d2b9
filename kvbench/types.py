from __future__ import annotations

import dataclasses as dc
from types import MappingProxyType
from typing import Any, Mapping


@dc.dataclass(frozen=True)
class WorkloadSpec:
    num_items: int
    key_size: int = 16
    value_size: int = 1024
    # Every scenario reads from its own generator seeded with this value.
    seed: int = 22

    def __post_init__(self):
        for name in ("num_items", "key_size", "value_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @property
    def total_bytes(self) -> int:
        return self.num_items * (self.key_size + self.value_size)


@dc.dataclass(frozen=True)
class Scenario:
    name: str
    workload: WorkloadSpec
    # Engine tuning knobs, e.g. {"compact_l0_on_close": True}
    options: Mapping[str, Any] = dc.field(default_factory=dict)

    def __post_init__(self):
        # Read-only view so a scenario cannot be altered once defined.
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
