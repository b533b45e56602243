"""Single-snapshot chart analysis combining aspects and configurations."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any

from .aspects.detector import AspectDetector
from .aspects.rules import aspect_nature
from .canonical import Configuration, DetectedAspect, collect_positions
from .patterns.configurations import ConfigurationDetector

__all__ = ["ChartAnalysis", "ChartAnalyzer"]


@dataclass(frozen=True)
class ChartAnalysis:
    aspects: tuple[DetectedAspect, ...]
    configurations: tuple[Configuration, ...]

    @property
    def aspect_balance(self) -> dict[str, int]:
        """Count of aspects per nature (supportive, challenging, neutral)."""

        counts = Counter(aspect_nature(aspect.type) for aspect in self.aspects)
        return {key: counts.get(key, 0) for key in ("supportive", "challenging", "neutral")}


class ChartAnalyzer:
    """Run aspect and configuration detection over one position set."""

    def __init__(
        self,
        detector: AspectDetector | None = None,
        patterns: ConfigurationDetector | None = None,
    ) -> None:
        self.detector = detector if detector is not None else AspectDetector()
        self.patterns = patterns if patterns is not None else ConfigurationDetector(self.detector)

    def analyze(self, bodies: Any) -> ChartAnalysis:
        positions = collect_positions(bodies)
        aspects = self.detector.find_all_aspects(positions)
        configurations = self.patterns.detect(positions, aspects=aspects)
        return ChartAnalysis(aspects=tuple(aspects), configurations=tuple(configurations))
