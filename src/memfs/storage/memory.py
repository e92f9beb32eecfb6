from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler

from memfs.config import CacheConfig
from memfs.schemas import CacheEntry, ValueKind, normalize_path, now_ms

from .disk import PERSIST_ERRORS, DiskStore, FlushReport

FLUSH_JOB_ID = "flush-sweep"
EVICTION_JOB_ID = "eviction-sweep"

logger = logging.getLogger(__name__)


class MemoryCache:
    """Load-through, flush-on-timer cache of typed file contents.

    Writes stay in memory until a flush. Reads load missing paths from disk,
    recording a missing file as an ``absent`` entry. Two background jobs
    flush every entry periodically and evict entries idle past the
    configured threshold, flushing each one first.
    """

    def __init__(
        self,
        root: str | os.PathLike[str] | None = None,
        *,
        recursive: bool = False,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = now_ms,
        start_sweeps: bool = True,
    ) -> None:
        self.config = config or CacheConfig()
        self.clock = clock
        self.store = DiskStore(encoding=self.config.encoding, clock=clock)
        self._scheduler: BackgroundScheduler | None = None
        self._evict_failures: set[str] = set()

        if root is not None:
            self.store.load_path(root, recursive=recursive)

        if start_sweeps:
            self.start()

    def __enter__(self) -> MemoryCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.flush_sweep,
            "interval",
            seconds=self.config.flush_interval_seconds,
            id=FLUSH_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.eviction_sweep,
            "interval",
            seconds=self.config.eviction_period_seconds,
            id=EVICTION_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "memory_cache sweeps started flush_every=%ss evict_every=%ss idle_threshold=%ss",
            self.config.flush_interval_seconds,
            self.config.eviction_period_seconds,
            self.config.idle_threshold_seconds,
        )

    def shutdown(self, flush: bool | None = None) -> FlushReport | None:
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=True)
            self._scheduler = None
            logger.info("memory_cache sweeps stopped")

        if flush is None:
            flush = self.config.final_flush_on_shutdown
        if not flush:
            return None
        return self.store.persist_all()

    def exists(self, path: str | os.PathLike[str]) -> bool:
        return self.store.get_entry(normalize_path(path)) is not None

    def write(self, path: str | os.PathLike[str], value: Any) -> bool:
        normalized = normalize_path(path)
        with self.store.lock:
            previous = self.store.get_entry(normalized)
            now = self.clock()
            if previous is not None:
                now = max(now, previous.last_access)
            self.store.put_entry(CacheEntry.build(normalized, value, last_access=now))
        logger.debug("memory_cache write path=%s", normalized)
        return True

    def read(self, path: str | os.PathLike[str]) -> Any:
        normalized = normalize_path(path)
        with self.store.lock:
            entry = self.store.get_entry(normalized)
            if entry is None:
                logger.debug("memory_cache miss path=%s", normalized)
                entry = self.store.load_file(normalized)
            else:
                logger.debug("memory_cache hit path=%s", normalized)
                entry = entry.touch(self.clock())
                self.store.put_entry(entry)
            return entry.value

    def get_kind(self, path: str | os.PathLike[str]) -> ValueKind | None:
        entry = self.store.get_entry(normalize_path(path))
        if entry is None:
            return None
        return entry.kind

    def entry(self, path: str | os.PathLike[str]) -> CacheEntry | None:
        entry = self.store.get_entry(normalize_path(path))
        if entry is None:
            return None
        return entry.model_copy()

    def clear(self, path: str | os.PathLike[str] | None = None) -> int:
        if path is None:
            removed = self.store.remove_all()
        else:
            removed = int(self.store.remove_entry(normalize_path(path)) is not None)
        logger.debug("memory_cache clear path=%s removed=%s", path, removed)
        return removed

    def paths(self) -> list[str]:
        return sorted(entry.path for entry in self.store.snapshot())

    def load_path(self, path: str | os.PathLike[str], *, recursive: bool = False) -> list[str]:
        return self.store.load_path(path, recursive=recursive)

    def persist_path(self, path: str | os.PathLike[str]) -> bool:
        return self.store.persist_path(path)

    def persist_all(self) -> FlushReport:
        return self.store.persist_all()

    def flush_sweep(self) -> FlushReport:
        report = self.store.persist_all()
        logger.info(
            "memory_cache flush_sweep persisted=%s failed=%s",
            len(report.persisted),
            len(report.failed),
        )
        return report

    def eviction_sweep(self) -> list[str]:
        evicted: list[str] = []
        with self.store.lock:
            now = self.clock()
            for entry in self.store.snapshot():
                if not entry.is_idle(now=now, threshold_ms=self.config.idle_threshold_ms):
                    continue
                parent_missing = not os.path.isdir(os.path.dirname(entry.path))
                if entry.kind == ValueKind.ABSENT and parent_missing:
                    # Nothing to persist and nowhere to persist it.
                    self.store.remove_entry(entry.path)
                    evicted.append(entry.path)
                    continue
                try:
                    self.store.persist_path(entry.path)
                except PERSIST_ERRORS:
                    self._log_evict_failure(entry.path)
                    continue
                self._evict_failures.discard(entry.path)
                self.store.remove_entry(entry.path)
                evicted.append(entry.path)
        logger.info("memory_cache eviction_sweep evicted=%s", len(evicted))
        return evicted

    def _log_evict_failure(self, path: str) -> None:
        if path in self._evict_failures:
            logger.debug("memory_cache evict failed path=%s reason=flush_error repeated", path)
            return
        self._evict_failures.add(path)
        logger.warning(
            "memory_cache evict failed path=%s reason=flush_error", path, exc_info=True
        )

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return self.exists(path)

    def __len__(self) -> int:
        return len(self.store)
