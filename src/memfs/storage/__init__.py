"""Disk-backed entry table and the in-memory cache built on it."""

from .codec import coerce_text, decode_content, encode_value
from .disk import DiskStore, FlushReport
from .memory import MemoryCache

__all__ = [
    "DiskStore",
    "FlushReport",
    "MemoryCache",
    "coerce_text",
    "decode_content",
    "encode_value",
]
