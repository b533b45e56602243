"""Settings models loaded from YAML."""

from __future__ import annotations

from .settings import (
    AspectsCfg,
    EphemerisCfg,
    LoggingCfg,
    PatternsCfg,
    Settings,
    TimingCfg,
    TriggerCfg,
    config_path,
    default_settings,
    load_settings,
    save_settings,
)

__all__ = [
    "AspectsCfg",
    "EphemerisCfg",
    "LoggingCfg",
    "PatternsCfg",
    "Settings",
    "TimingCfg",
    "TriggerCfg",
    "config_path",
    "default_settings",
    "load_settings",
    "save_settings",
]
