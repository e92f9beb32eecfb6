from __future__ import annotations

import logging
import os
import stat
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from memfs.schemas import CacheEntry, ValueKind, normalize_path, now_ms

from .codec import decode_content, encode_value

logger = logging.getLogger(__name__)

# Unencodable or unserializable values fail per path like disk errors do.
PERSIST_ERRORS = (OSError, TypeError, ValueError)


@dataclass
class FlushReport:
    persisted: list[str] = field(default_factory=list)
    failed: dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class DiskStore:
    """Entry table keyed by normalized path, plus the disk side of it.

    Reads infer a kind from file content; writes serialize an entry back to
    its path. Every access to the table goes through ``self.lock``.
    """

    def __init__(
        self,
        *,
        encoding: str = "utf-8",
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.encoding = encoding
        self.clock = clock
        self.lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = {}

    def load_path(self, path: str | os.PathLike[str], *, recursive: bool = False) -> list[str]:
        normalized = normalize_path(path)
        with self.lock:
            # FileNotFoundError propagates to the caller.
            if stat.S_ISDIR(os.stat(normalized).st_mode):
                loaded = list(self._load_directory(normalized, recursive=recursive))
            else:
                loaded = [self.load_file(normalized).path]
        logger.info(
            "disk_store load path=%s recursive=%s entries=%s", normalized, recursive, len(loaded)
        )
        return loaded

    def load_file(self, path: str | os.PathLike[str]) -> CacheEntry:
        normalized = normalize_path(path)
        with self.lock:
            entry = self._read_disk(normalized)
            self._entries[normalized] = entry
            return entry

    def persist_path(self, path: str | os.PathLike[str]) -> bool:
        normalized = normalize_path(path)
        with self.lock:
            entry = self._entries.get(normalized)
            if entry is None:
                logger.debug("disk_store persist skipped path=%s reason=not_resident", normalized)
                return False
            # Encode before opening so a bad value never truncates the file.
            payload = encode_value(entry.kind, entry.value).encode(self.encoding)
            Path(normalized).write_bytes(payload)
        logger.debug("disk_store persist path=%s kind=%s", normalized, entry.kind)
        return True

    def persist_all(self) -> FlushReport:
        report = FlushReport()
        with self.lock:
            for path in list(self._entries):
                try:
                    self.persist_path(path)
                except PERSIST_ERRORS as exc:
                    logger.warning("disk_store persist failed path=%s", path, exc_info=True)
                    report.failed[path] = exc
                else:
                    report.persisted.append(path)
        return report

    def get_entry(self, path: str) -> CacheEntry | None:
        with self.lock:
            return self._entries.get(path)

    def put_entry(self, entry: CacheEntry) -> None:
        with self.lock:
            self._entries[entry.path] = entry

    def remove_entry(self, path: str) -> CacheEntry | None:
        with self.lock:
            return self._entries.pop(path, None)

    def remove_all(self) -> int:
        with self.lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def snapshot(self) -> list[CacheEntry]:
        with self.lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def _read_disk(self, path: str) -> CacheEntry:
        now = self.clock()
        try:
            text = Path(path).read_bytes().decode(self.encoding, errors="replace")
        except FileNotFoundError:
            logger.debug("disk_store read path=%s kind=absent", path)
            return CacheEntry(path=path, kind=ValueKind.ABSENT, value=None, last_access=now)

        kind, value = decode_content(text)
        logger.debug("disk_store read path=%s kind=%s", path, kind)
        return CacheEntry(path=path, kind=kind, value=value, last_access=now)

    def _load_directory(self, directory: str, *, recursive: bool) -> Iterator[str]:
        with os.scandir(directory) as scanner:
            children = sorted(scanner, key=lambda item: item.name)

        for child in children:
            child_path = normalize_path(os.path.join(directory, child.name))
            if child.is_dir(follow_symlinks=False):
                if recursive:
                    yield from self._load_directory(child_path, recursive=recursive)
                continue
            if child.is_symlink() and child.is_dir():
                logger.debug("disk_store skip path=%s reason=dir_symlink", child_path)
                continue
            if not child.is_file():
                logger.debug("disk_store skip path=%s reason=not_regular_file", child_path)
                continue
            yield self.load_file(child_path).path
