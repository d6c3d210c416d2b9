"""
Post-run accounting of the files an engine leaves in its directory.
"""

from __future__ import annotations

import dataclasses as dc
import os
import stat
from pathlib import Path

from kvbench.errors import ArtifactScanError

TABLE_SUFFIXES = (".sst",)
VALUE_LOG_SUFFIXES = (".vlog", ".blob")


@dc.dataclass(frozen=True)
class ArtifactMetrics:
    """File counts and sizes (KiB) for sorted tables and value log files."""

    num_tables: int = 0
    tables_kib: int = 0
    num_value_logs: int = 0
    value_logs_kib: int = 0

    @property
    def total_kib(self) -> int:
        return self.tables_kib + self.value_logs_kib

    def as_dict(self) -> dict[str, int]:
        return dc.asdict(self)


def _raise(err: OSError) -> None:
    raise err


def scan_artifacts(
    path: str | Path,
    table_suffixes: tuple[str, ...] = TABLE_SUFFIXES,
    value_log_suffixes: tuple[str, ...] = VALUE_LOG_SUFFIXES,
) -> ArtifactMetrics:
    """Walk path recursively and total the sorted-table and value-log files.

    Each file's size is truncated to whole KiB before it is added, so the
    reported size is the sum of per-file truncations. Only regular files are
    counted. Any error while walking aborts the scan with ArtifactScanError.
    """
    root = os.fspath(path)
    num_tables = tables_kib = num_value_logs = value_logs_kib = 0

    try:
        # os.walk silently yields nothing for a missing root.
        if not os.path.isdir(root):
            raise FileNotFoundError(f"not a directory: {root}")
        for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
            for name in filenames:
                st = os.lstat(os.path.join(dirpath, name))
                if not stat.S_ISREG(st.st_mode):
                    continue
                ext = os.path.splitext(name)[1]
                if ext in table_suffixes:
                    num_tables += 1
                    tables_kib += st.st_size // 1024
                elif ext in value_log_suffixes:
                    num_value_logs += 1
                    value_logs_kib += st.st_size // 1024
    except OSError as e:
        raise ArtifactScanError(f"scanning {root}: {e}") from e

    return ArtifactMetrics(
        num_tables=num_tables,
        tables_kib=tables_kib,
        num_value_logs=num_value_logs,
        value_logs_kib=value_logs_kib,
    )
