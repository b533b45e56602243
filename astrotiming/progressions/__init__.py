"""Forward projection of body positions over elapsed time."""

from __future__ import annotations

from .projector import (
    PROJECTION_METHODS,
    MeanMotionTable,
    ProgressionProjector,
)

__all__ = ["MeanMotionTable", "PROJECTION_METHODS", "ProgressionProjector"]
