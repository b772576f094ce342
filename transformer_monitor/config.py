from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.models import DeviceKind


class Bounds(BaseModel):
    low: float
    high: float


class GeneratorConfig(BaseModel):
    """Random-walk parameters for the simulated transformers."""

    tick_interval_sec: float = Field(0.5, gt=0, description="Logical tick length")
    voltage_noise: float = 0.1
    current_noise: float = 3.0
    temperature_noise: float = 0.15
    load_noise: float = 0.02
    voltage_spike_prob: float = Field(0.02, ge=0, le=1)
    voltage_spike_kv: float = 2.5
    current_spike_prob: float = Field(0.015, ge=0, le=1)
    current_spike_amps: float = 80.0
    heating_coefficient: float = Field(0.4, description="Temperature drift per unit of load above 0.5")
    voltage_bounds: Bounds = Field(default_factory=lambda: Bounds(low=6.0, high=18.0))
    current_bounds: Bounds = Field(default_factory=lambda: Bounds(low=10.0, high=400.0))
    temperature_bounds: Bounds = Field(default_factory=lambda: Bounds(low=20.0, high=110.0))
    load_bounds: Bounds = Field(default_factory=lambda: Bounds(low=0.0, high=1.0))
    start_ms: Optional[int] = Field(
        None,
        description=(
            "Timestamp of the first tick. When unset the wall clock at start is used, so only"
            " the measured values repeat across runs; set it for bit-identical measurements"
        ),
    )


class Thresholds(BaseModel):
    """Limits applied to the raw measurement, checked in declaration order."""

    voltage_low_kv: float = 7.0
    voltage_high_kv: float = 16.5
    overcurrent_amps: float = 350.0
    overheat_c: float = 95.0
    underload: float = 0.2
    overload: float = 0.9


class RuntimeConfig(BaseModel):
    entity_ids: List[str] = Field(default_factory=lambda: ["TX-001", "TX-014", "TX-099"])
    seed: int = 123
    router_capacity: int = Field(64, description="Bounded queue between generators and the engine")
    window_size: int = Field(6, description="Raw measurements averaged per entity (~3 s at 0.5 s)")
    series_cap: int = Field(256, description="Points retained per chart series")
    device_kinds: Dict[str, DeviceKind] = Field(default_factory=dict)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    thresholds: Thresholds = Field(default_factory=Thresholds)

    @field_validator("router_capacity", "window_size", "series_cap")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("entity_ids")
    @classmethod
    def _non_empty_unique(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one entity id is required")
        if len(set(v)) != len(v):
            raise ValueError("entity ids must be unique")
        return v

    def device_kind(self, entity_id: str) -> DeviceKind:
        return self.device_kinds.get(entity_id, DeviceKind.POWER)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Networking / Service
    DASH_HOST: str = "0.0.0.0"
    DASH_PORT: int = 8050
    LOG_LEVEL: str = "INFO"


class AppConfig(BaseModel):
    env: EnvSettings
    runtime: RuntimeConfig

    # Allow tests to pass a plain dict or attribute bag for env
    @field_validator("env", mode="before")
    @classmethod
    def _coerce_env(cls, v):  # type: ignore[no-untyped-def]
        if isinstance(v, EnvSettings):
            return v
        if isinstance(v, dict):
            return EnvSettings(**v)
        keys = ["DASH_HOST", "DASH_PORT", "LOG_LEVEL"]
        data = {k: getattr(v, k) for k in keys if hasattr(v, k)}
        if data:
            return EnvSettings(**data)
        return v

    @staticmethod
    def load(config_path: Optional[Path] = None) -> "AppConfig":
        env = EnvSettings()  # loads from environment and .env

        runtime = RuntimeConfig()
        if config_path is None:
            default_path = Path("config.yaml")
            config_path = default_path if default_path.exists() else None

        if config_path and Path(config_path).exists():
            with open(config_path, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            try:
                runtime = RuntimeConfig(**raw)
            except ValidationError as ve:
                raise ValueError(f"Invalid config.yaml: {ve}")

        return AppConfig(env=env, runtime=runtime)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load merged configuration from environment and optional YAML."""

    return AppConfig.load(config_path)
