from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

OUTPUT_PATH_ENV_VAR = "QUAKE_STATS_OUTPUT_PATH"


class UsgsProviderConfig(BaseModel):
    url: str = "https://earthquake.usgs.gov/fdsnws/event/1/query"
    source_tag: str = "USGS"


class EmscProviderConfig(BaseModel):
    url: str = "https://www.seismicportal.eu/fdsnws/event/1/query"
    default_agency: str = "EMSC"
    limit: int = Field(default=2000, ge=1)


class ProvidersConfig(BaseModel):
    usgs: UsgsProviderConfig = Field(default_factory=UsgsProviderConfig)
    emsc: EmscProviderConfig = Field(default_factory=EmscProviderConfig)
    min_magnitude: float = Field(default=1.0, ge=0.0)
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class WindowsConfig(BaseModel):
    daily_hours: int = Field(default=24, ge=1)
    weekly_days: int = Field(default=7, ge=1)

    @property
    def daily_millis(self) -> int:
        return self.daily_hours * 60 * 60 * 1000

    @property
    def weekly_millis(self) -> int:
        return self.weekly_days * 24 * 60 * 60 * 1000


class TimeConfig(BaseModel):
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value


class OutputConfig(BaseModel):
    path: str | None = None
    indent: int = Field(default=2, ge=0)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    windows: WindowsConfig = Field(default_factory=WindowsConfig)
    time: TimeConfig = Field(default_factory=TimeConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
DEFAULT_OUTPUT_PATH = Path("stats_cache.json")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def resolve_output_path(config: AppConfig) -> Path:
    if config.output.path:
        return Path(config.output.path)
    env_value = os.getenv(OUTPUT_PATH_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_OUTPUT_PATH


def load_config(path: Path | None) -> AppConfig:
    if path is None:
        return AppConfig()

    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent
    config.output.path = _resolve_optional_path(config.output.path, base_dir)
    return config
