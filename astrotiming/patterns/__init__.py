"""Multi-body configuration detection."""

from __future__ import annotations

from ..canonical import Configuration, ConfigurationKind
from .configurations import STELLIUM_MIN_BODIES, ConfigurationDetector

__all__ = [
    "Configuration",
    "ConfigurationDetector",
    "ConfigurationKind",
    "STELLIUM_MIN_BODIES",
]
