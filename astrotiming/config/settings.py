"""Configuration models and helpers for astrotiming settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Literal, Optional

import pydantic
import yaml
from pydantic import BaseModel, Field, field_validator

from ..aspects.detector import AspectDetector
from ..aspects.rules import MAX_ORB, AspectRuleTable
from ..canonical import AspectType
from ..core.qcache import QCache
from ..ephemeris import CachedEphemeris, PeriodicEphemeris
from ..errors import ConfigurationError
from ..patterns.configurations import ConfigurationDetector
from ..timing.engine import TimingEngineConfig, TransitTimingEngine
from ..timing.scoring import ConfidenceWeights
from ..timing.triggers import TriggerTable

__all__ = [
    "AspectsCfg",
    "CONFIG_FILENAME",
    "EphemerisCfg",
    "LoggingCfg",
    "PatternsCfg",
    "Settings",
    "TimingCfg",
    "TriggerCfg",
    "config_path",
    "default_settings",
    "get_config_home",
    "load_settings",
    "save_settings",
]


CONFIG_FILENAME = "config.yaml"
CURRENT_SETTINGS_SCHEMA_VERSION = 1

# -------------------- Settings Schema --------------------


class AspectsCfg(BaseModel):
    """Aspect rule table configuration."""

    include_minor: bool = False
    applying_rule: Literal["relative_speed", "closing"] = "relative_speed"
    orbs: Dict[str, float] = Field(default_factory=dict)

    @field_validator("orbs", mode="before")
    @classmethod
    def _normalise_orbs(cls, value: object) -> Dict[str, float]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("orbs must be a mapping of aspect name to degrees")
        out: Dict[str, float] = {}
        for key, orb in value.items():
            kind = AspectType.parse(key)
            numeric = float(orb)
            if not 0.0 < numeric <= MAX_ORB:
                raise ValueError(f"orb for {kind.value} must lie in (0, {MAX_ORB:g}]")
            out[kind.value] = numeric
        return out


class PatternsCfg(BaseModel):
    """Configuration pattern detection."""

    stellium_min_bodies: int = 3

    @field_validator("stellium_min_bodies", mode="before")
    @classmethod
    def _cap_stellium(cls, value: int) -> int:
        return max(2, min(12, int(value)))


class EphemerisCfg(BaseModel):
    """Ephemeris cache configuration."""

    cache_enabled: bool = True
    cache_seconds: float = 60.0
    cache_size: int = 4096

    @field_validator("cache_seconds", mode="before")
    @classmethod
    def _cap_cache_seconds(cls, value: float) -> float:
        return max(1.0, min(86400.0, float(value)))

    @field_validator("cache_size", mode="before")
    @classmethod
    def _cap_cache_size(cls, value: int) -> int:
        return max(16, int(value))


class TriggerCfg(BaseModel):
    bodies: List[str]
    aspects: List[str]


class TimingCfg(BaseModel):
    """Timing engine thresholds."""

    step_days: float = 1.0
    angle_threshold: float = 2.0
    peak_count: int = 3
    concentration_min_bodies: int = 3
    max_lookahead_days: int = 3653
    max_workers: int = 1
    failure_policy: Literal["raise", "skip", "zero"] = "skip"
    confidence_weights: Dict[str, float] = Field(
        default_factory=lambda: {
            "indicators": 1.0,
            "strength": 1.0,
            "precision": 1.0,
        }
    )
    triggers: Optional[Dict[str, List[TriggerCfg]]] = None

    @field_validator("angle_threshold", mode="before")
    @classmethod
    def _cap_angle_threshold(cls, value: float) -> float:
        return max(0.1, min(15.0, float(value)))

    @field_validator("max_workers", mode="before")
    @classmethod
    def _cap_workers(cls, value: int) -> int:
        return max(1, min(32, int(value)))

    @field_validator("confidence_weights", mode="before")
    @classmethod
    def _known_weights(cls, value: object) -> Dict[str, float]:
        if not isinstance(value, dict):
            raise ValueError("confidence_weights must be a mapping")
        unknown = set(value) - {"indicators", "strength", "precision"}
        if unknown:
            raise ValueError(f"unknown confidence weights: {sorted(unknown)}")
        return {str(k): float(v) for k, v in value.items()}

    @field_validator("step_days", mode="before")
    @classmethod
    def _positive_step(cls, value: float) -> float:
        numeric = float(value)
        if numeric <= 0:
            raise ValueError("step_days must be positive")
        return numeric


class LoggingCfg(BaseModel):
    level: str = "INFO"


class Settings(BaseModel):
    """Top level astrotiming settings."""

    schema_version: int = CURRENT_SETTINGS_SCHEMA_VERSION
    aspects: AspectsCfg = Field(default_factory=AspectsCfg)
    patterns: PatternsCfg = Field(default_factory=PatternsCfg)
    ephemeris: EphemerisCfg = Field(default_factory=EphemerisCfg)
    timing: TimingCfg = Field(default_factory=TimingCfg)
    logging: LoggingCfg = Field(default_factory=LoggingCfg)

    def rule_table(self) -> AspectRuleTable:
        table = AspectRuleTable.default(include_minor=self.aspects.include_minor)
        overrides = {k: v for k, v in self.aspects.orbs.items() if k in table}
        return table.with_overrides(overrides) if overrides else table

    def trigger_table(self) -> TriggerTable:
        if self.timing.triggers is None:
            return TriggerTable.default()
        return TriggerTable.from_mapping(
            {name: [entry.model_dump() for entry in entries] for name, entries in self.timing.triggers.items()}
        )

    def timing_config(self) -> TimingEngineConfig:
        return TimingEngineConfig(
            angle_threshold=self.timing.angle_threshold,
            peak_count=self.timing.peak_count,
            concentration_min_bodies=self.timing.concentration_min_bodies,
            max_lookahead_days=self.timing.max_lookahead_days,
            max_workers=self.timing.max_workers,
            failure_policy=self.timing.failure_policy,
            confidence_weights=ConfidenceWeights(**self.timing.confidence_weights),
        )

    def build_ephemeris(self):
        provider = PeriodicEphemeris()
        if not self.ephemeris.cache_enabled:
            return provider
        return CachedEphemeris(
            provider,
            cache=QCache(maxsize=self.ephemeris.cache_size),
            qsec=self.ephemeris.cache_seconds,
        )

    def build_detector(self) -> AspectDetector:
        return AspectDetector(self.rule_table(), applying_rule=self.aspects.applying_rule)

    def build_configuration_detector(self) -> ConfigurationDetector:
        return ConfigurationDetector(
            self.build_detector(), stellium_min_bodies=self.patterns.stellium_min_bodies
        )

    def build_engine(self) -> TransitTimingEngine:
        return TransitTimingEngine(
            self.build_ephemeris(),
            rules=self.rule_table(),
            triggers=self.trigger_table(),
            config=self.timing_config(),
        )


# -------------------- Persistence --------------------


def get_config_home() -> Path:
    """Return the directory where settings are stored."""

    return Path(os.environ.get("ASTROTIMING_HOME", str(Path.home() / ".astrotiming")))


def config_path() -> Path:
    """Return the configuration file path, honouring ``ASTROTIMING_CONFIG``."""

    override = os.environ.get("ASTROTIMING_CONFIG")
    if override:
        return Path(override)
    return get_config_home() / CONFIG_FILENAME


def default_settings() -> Settings:
    """Instantiate a Settings object populated with defaults."""

    return Settings()


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    """Persist the given settings to disk as YAML."""

    target_path = Path(path) if path else config_path()
    target_path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(exclude_none=True)
    with target_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False, allow_unicode=True)
    return target_path


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from disk; a missing file yields defaults."""

    source_path = Path(path) if path else config_path()
    if not source_path.exists():
        return default_settings()
    with source_path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                "settings file is not valid YAML", context={"path": str(source_path)}
            ) from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "settings file must contain a mapping", context={"path": str(source_path)}
        )
    try:
        return Settings(**raw)
    except (pydantic.ValidationError, ConfigurationError) as exc:
        raise ConfigurationError(
            f"invalid settings: {exc}", context={"path": str(source_path)}
        ) from exc
