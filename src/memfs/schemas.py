from __future__ import annotations

import os
import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def now_ms() -> float:
    return time.time() * 1000.0


def normalize_path(path: str | os.PathLike[str]) -> str:
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ValueKind(StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ABSENT = "absent"


def infer_kind(value: Any) -> ValueKind:
    """Classify a Python value into the cache value union.

    ``bool`` is checked before numbers since it subclasses ``int``.
    """
    if value is None:
        return ValueKind.ABSENT
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (dict, list, tuple)):
        return ValueKind.OBJECT
    raise TypeError(f"Unsupported cache value type: {type(value).__name__}")


class CacheEntry(DTOBase):
    path: str
    kind: ValueKind
    value: Any = None
    last_access: float = Field(ge=0.0)

    @model_validator(mode="after")
    def validate_kind_matches_value(self) -> CacheEntry:
        actual = infer_kind(self.value)
        if actual != self.kind:
            raise ValueError(f"kind={self.kind} does not match value of kind {actual}")
        return self

    @classmethod
    def build(cls, path: str, value: Any, *, last_access: float) -> CacheEntry:
        return cls(path=path, kind=infer_kind(value), value=value, last_access=last_access)

    def touch(self, now: float) -> CacheEntry:
        return self.model_copy(update={"last_access": max(self.last_access, now)})

    def is_idle(self, *, now: float, threshold_ms: float) -> bool:
        return self.last_access + threshold_ms < now
