from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActionEntryConfig(BaseModel):
    label: str
    description: str = ""


class ActionsConfig(BaseModel):
    """Action tables offered to subjects, keyed by slug.

    ``global_actions`` apply to every subject; ``by_type`` adds actions for
    one subject type and overrides global entries with the same slug.
    """

    global_actions: dict[str, ActionEntryConfig] = Field(default_factory=dict, alias="global")
    by_type: dict[str, dict[str, ActionEntryConfig]] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class SchedulerConfig(BaseModel):
    misfire_grace_seconds: int | None = Field(default=300, ge=1)
    restore_on_start: bool = True
    poll_seconds: int = Field(default=30, ge=1)
    """How often a running scheduler rescans the job table for jobs saved elsewhere."""
    handlers: dict[str, list[str]] = Field(default_factory=dict)
    """Action slug to ``module:attribute`` handler references."""


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


class ChronologySettings(BaseSettings):
    data_dir: Path = Path("./data")
    db_name: str = "chronology.db"
    timezone: str = "UTC"
    """Site time zone; submitted wall-clock times are read in it."""
    subject_types: list[str] = Field(default_factory=lambda: ["post"])
    actions: ActionsConfig = Field(default_factory=ActionsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="CHRONOLOGY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown time zone: {value}") from exc
        return value

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def jobstore_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    prefix = "CHRONOLOGY_"
    for key, raw_value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path = "config/chronology.yaml") -> ChronologySettings:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("chronology", loaded)
    if not isinstance(raw, dict):
        raise ValueError("chronology config section must be a mapping")

    merged = _apply_env_overrides(raw)
    return ChronologySettings.model_validate(merged)


__all__ = [
    "ActionEntryConfig",
    "ActionsConfig",
    "ChronologySettings",
    "LoggingConfig",
    "SchedulerConfig",
    "load_config",
]
