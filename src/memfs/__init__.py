"""memfs: typed, lazily loaded, timer-flushed views of files."""

from .config import CacheConfig, load_config
from .schemas import CacheEntry, ValueKind, infer_kind
from .storage import DiskStore, FlushReport, MemoryCache

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "DiskStore",
    "FlushReport",
    "MemoryCache",
    "ValueKind",
    "infer_kind",
    "load_config",
]
