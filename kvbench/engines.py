from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping

from rocksdict import Options, Rdict

if TYPE_CHECKING:
    from typing import ClassVar

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """Raised by engine adapters when the underlying store reports a failure."""


class NothingToReclaim(Exception):
    """Sentinel: a value log reclamation pass found nothing worth rewriting."""


class Engine(ABC):
    """Base class for key-value stores driven by the harness.

    An engine is opened by constructing it with a directory and a mapping of
    tuning options; every set/delete is applied as its own atomic write.
    """

    name: ClassVar[str]
    # File extensions of immutable sorted tables and of value log segments.
    table_suffixes: ClassVar[tuple[str, ...]] = (".sst",)
    value_log_suffixes: ClassVar[tuple[str, ...]] = (".vlog",)

    def __init__(self, path: str, options: Mapping[str, Any]):
        self.path = path
        self.options = dict(options)

    @abstractmethod
    def set(self, key: bytes, value: bytes) -> None:
        pass

    @abstractmethod
    def delete(self, key: bytes) -> None:
        pass

    @abstractmethod
    def reclaim_value_log(self, ratio: float) -> None:
        """Rewrite the value log if at least `ratio` of it is garbage.

        Raises NothingToReclaim when there was nothing to rewrite.
        """

    @abstractmethod
    def close(self) -> None:
        pass


def check_ratio(ratio: float) -> None:
    if not 0 < ratio < 1:
        raise EngineError(f"reclaim ratio must be between 0 and 1, got {ratio}")


class RocksDBEngine(Engine):
    """RocksDB through rocksdict, with BlobDB files acting as the value log."""

    name = "rocksdb"
    table_suffixes = (".sst",)
    value_log_suffixes = (".blob",)

    # Values at least this large are stored out of line in blob files.
    DEFAULT_MIN_BLOB_SIZE = 32

    def __init__(self, path: str, options: Mapping[str, Any]):
        super().__init__(path, options)
        self._compact_on_close = False
        opts = self._build_options(self.options)
        try:
            self._db: Rdict | None = Rdict(path, options=opts)
        except Exception as e:
            raise EngineError(f"opening {path}: {e}") from e
        logger.debug("Opened rocksdb at %s with %s", path, self.options)

    def _build_options(self, options: dict[str, Any]) -> Options:
        opts = Options(raw_mode=True)
        opts.create_if_missing(True)
        opts.set_enable_blob_files(True)
        opts.set_min_blob_size(self.DEFAULT_MIN_BLOB_SIZE)
        opts.set_enable_blob_gc(True)

        for knob, value in options.items():
            if knob == "num_versions_to_keep":
                # Without snapshots RocksDB only ever keeps the newest version.
                if value not in (0, 1):
                    raise EngineError(f"num_versions_to_keep={value} is not supported")
            elif knob == "compact_l0_on_close":
                self._compact_on_close = bool(value)
            elif knob == "value_log_file_size":
                opts.set_blob_file_size(int(value))
            elif knob == "min_value_log_size":
                opts.set_min_blob_size(int(value))
            elif knob == "memtable_size":
                opts.set_write_buffer_size(int(value))
            elif knob == "level_zero_compaction_trigger":
                opts.set_level_zero_file_num_compaction_trigger(int(value))
            elif knob == "level_zero_slowdown_trigger":
                opts.set_level_zero_slowdown_writes_trigger(int(value))
            elif knob == "level_zero_stop_trigger":
                opts.set_level_zero_stop_writes_trigger(int(value))
            else:
                raise EngineError(f"unknown rocksdb option: {knob}")
        return opts

    def _require_open(self) -> Rdict:
        if self._db is None:
            raise EngineError(f"rocksdb at {self.path} is closed")
        return self._db

    def set(self, key: bytes, value: bytes) -> None:
        db = self._require_open()
        try:
            # A single put is committed as one atomic write batch.
            db.put(key, value)
        except Exception as e:
            raise EngineError(str(e)) from e

    def delete(self, key: bytes) -> None:
        db = self._require_open()
        try:
            db.delete(key)
        except Exception as e:
            raise EngineError(str(e)) from e

    def value_log_bytes(self) -> int:
        total = 0
        with os.scandir(self.path) as entries:
            for entry in entries:
                if entry.is_file() and entry.name.endswith(self.value_log_suffixes):
                    total += entry.stat().st_size
        return total

    def reclaim_value_log(self, ratio: float) -> None:
        """Flush, then run a full compaction with blob gc.

        RocksDB has no blob-only rewrite, so a pass compacts every level.
        Once a scenario has blob files this also does the work that
        compact_l0_on_close would, and the two only differ for values kept
        inline. Values deleted while still in the memtable are dropped by
        the flush and never reach a blob file; a workload that fits in one
        memtable therefore has nothing to reclaim.
        """
        check_ratio(ratio)
        db = self._require_open()
        try:
            # Values still in the memtable have no blob file yet.
            db.flush(wait=True)
        except Exception as e:
            raise EngineError(f"flushing memtable: {e}") from e
        before = self.value_log_bytes()
        if before == 0:
            raise NothingToReclaim()
        try:
            # Full compaction relocates live blobs and drops garbage blob files.
            db.compact_range(None, None)
        except Exception as e:
            raise EngineError(f"compacting for blob gc: {e}") from e
        after = self.value_log_bytes()
        logger.debug("Value log at %s: %d -> %d bytes", self.path, before, after)
        if before - after < ratio * before:
            raise NothingToReclaim()

    def close(self) -> None:
        if self._db is None:
            return
        db, self._db = self._db, None
        try:
            if self._compact_on_close:
                db.compact_range(None, None)
            db.close()
        except Exception as e:
            raise EngineError(f"closing {self.path}: {e}") from e
