from __future__ import annotations

import codecs
import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    flush_interval_seconds: float = Field(default=10.0, gt=0.0)
    idle_threshold_seconds: float = Field(default=300.0, gt=0.0)
    eviction_interval_seconds: float | None = Field(default=None, gt=0.0)
    final_flush_on_shutdown: bool = True
    encoding: str = "utf-8"

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, value: str) -> str:
        normalized = value.strip()
        try:
            codecs.lookup(normalized)
        except LookupError as exc:
            raise ValueError(f"Unknown encoding: {value}") from exc
        return normalized

    @property
    def idle_threshold_ms(self) -> float:
        return self.idle_threshold_seconds * 1000.0

    @property
    def eviction_period_seconds(self) -> float:
        if self.eviction_interval_seconds is None:
            return self.idle_threshold_seconds
        return self.eviction_interval_seconds


def load_config(path: str | Path) -> CacheConfig:
    raw = Path(path).read_text(encoding="utf-8")
    payload = _parse_payload(raw)
    section = payload.get("cache", payload)
    if not isinstance(section, dict):
        raise ValueError("Configuration 'cache' section must be an object.")
    try:
        return CacheConfig.model_validate(section)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def _parse_payload(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        try:
            parsed = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ValueError(f"Configuration is neither JSON nor YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Configuration root must be an object.")
    return parsed
