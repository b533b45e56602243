"""Multi-body configuration detection built on pairwise aspects.

Grand Trines and T-Squares are found by intersecting adjacency sets in
the aspect graph, so every triangle is reported exactly once regardless
of how many bodies are present. Stelliums group bodies by zodiac sign.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from ..aspects.detector import AspectDetector, PositionsLike
from ..aspects.rules import AspectRuleTable
from ..canonical import (
    AspectType,
    BodyPosition,
    Configuration,
    ConfigurationKind,
    DetectedAspect,
    collect_positions,
)
from ..core.zodiac import common_element, common_modality
from ..errors import ConfigurationError, ValidationError
from ..observability.metrics import PATTERN_COMPUTE_DURATION

LOG = logging.getLogger(__name__)

__all__ = ["ConfigurationDetector", "STELLIUM_MIN_BODIES"]

STELLIUM_MIN_BODIES = 3
_SIGN_WIDTH = 30.0
_KIND_ORDER = {kind: idx for idx, kind in enumerate(ConfigurationKind)}


def _pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


def _checked_aspects(
    positions: Sequence[BodyPosition], aspects: Iterable[DetectedAspect]
) -> list[DetectedAspect]:
    """Reject precomputed aspects naming bodies outside ``positions``."""

    names = {p.name for p in positions}
    checked = list(aspects)
    for aspect in checked:
        missing = sorted({aspect.body_a, aspect.body_b} - names)
        if missing:
            raise ValidationError(
                "aspect refers to a body missing from the position set",
                context={"bodies": missing, "aspect": aspect.type.value},
            )
    return checked


class _AspectGraph:
    """Adjacency sets and edge lookup for one aspect type."""

    def __init__(self, aspects: Iterable[DetectedAspect]) -> None:
        self.adjacent: dict[str, set[str]] = defaultdict(set)
        self.edges: dict[tuple[str, str], DetectedAspect] = {}
        for aspect in aspects:
            self.adjacent[aspect.body_a].add(aspect.body_b)
            self.adjacent[aspect.body_b].add(aspect.body_a)
            self.edges[_pair_key(aspect.body_a, aspect.body_b)] = aspect

    def edge(self, a: str, b: str) -> DetectedAspect:
        return self.edges[_pair_key(a, b)]

    def neighbours(self, name: str) -> set[str]:
        return self.adjacent.get(name, set())


class ConfigurationDetector:
    """Detect Grand Trines, T-Squares and Stelliums in a position set."""

    def __init__(
        self,
        detector: AspectDetector | None = None,
        *,
        stellium_min_bodies: int = STELLIUM_MIN_BODIES,
    ) -> None:
        if stellium_min_bodies < 2:
            raise ConfigurationError(
                "a stellium needs at least two bodies",
                context={"stellium_min_bodies": stellium_min_bodies},
            )
        if detector is None:
            detector = AspectDetector(AspectRuleTable.default())
        for kind in (AspectType.TRINE, AspectType.SQUARE, AspectType.OPPOSITION):
            if kind not in detector.rules:
                raise ConfigurationError(
                    "configuration detection needs trine, square and opposition rules",
                    context={"aspect": kind.value},
                )
        self.detector = detector
        self.stellium_min_bodies = stellium_min_bodies

    def detect(
        self,
        bodies: PositionsLike,
        *,
        aspects: Sequence[DetectedAspect] | None = None,
    ) -> list[Configuration]:
        """Return every configuration present in ``bodies``.

        ``aspects`` may carry a previously computed aspect list for the
        same bodies to avoid a second detection pass.
        """

        positions = collect_positions(bodies)
        if aspects is None:
            aspects = self.detector.find_all_aspects(positions)
        found = [
            *self.grand_trines(positions, aspects),
            *self.t_squares(positions, aspects),
            *self.stelliums(positions),
        ]
        found.sort(key=lambda c: (_KIND_ORDER[c.kind], c.participants, c.apex or ""))
        LOG.debug("detected %d configurations", len(found))
        return found

    def grand_trines(
        self, positions: Sequence[BodyPosition], aspects: Iterable[DetectedAspect]
    ) -> list[Configuration]:
        signs = {p.name: p.sign or "" for p in positions}
        aspects = _checked_aspects(positions, aspects)
        graph = _AspectGraph(a for a in aspects if a.type is AspectType.TRINE)
        out: list[Configuration] = []
        with PATTERN_COMPUTE_DURATION.labels(kind="grand_trine").time():
            for a, b in sorted(graph.edges):
                for c in sorted(graph.neighbours(a) & graph.neighbours(b)):
                    # Only emit each triangle from its lexicographically smallest edge.
                    if c <= b:
                        continue
                    edges = (graph.edge(a, b), graph.edge(b, c), graph.edge(a, c))
                    participants = (a, b, c)
                    out.append(
                        Configuration(
                            kind=ConfigurationKind.GRAND_TRINE,
                            participants=participants,
                            classifier=common_element(signs[name] for name in participants),
                            strength=sum(e.strength for e in edges) / 3.0,
                            aspects=edges,
                        )
                    )
        return out

    def t_squares(
        self, positions: Sequence[BodyPosition], aspects: Iterable[DetectedAspect]
    ) -> list[Configuration]:
        signs = {p.name: p.sign or "" for p in positions}
        aspects = _checked_aspects(positions, aspects)
        squares = _AspectGraph(a for a in aspects if a.type is AspectType.SQUARE)
        oppositions = _AspectGraph(a for a in aspects if a.type is AspectType.OPPOSITION)
        out: list[Configuration] = []
        with PATTERN_COMPUTE_DURATION.labels(kind="t_square").time():
            for a, b in sorted(oppositions.edges):
                opposition = oppositions.edge(a, b)
                for apex in sorted(squares.neighbours(a) & squares.neighbours(b)):
                    edges = (opposition, squares.edge(apex, a), squares.edge(apex, b))
                    participants = tuple(sorted((a, b, apex)))
                    out.append(
                        Configuration(
                            kind=ConfigurationKind.T_SQUARE,
                            participants=participants,
                            classifier=common_modality(signs[name] for name in participants),
                            strength=sum(e.strength for e in edges) / 3.0,
                            apex=apex,
                            aspects=edges,
                        )
                    )
        return out

    def stelliums(self, positions: Sequence[BodyPosition]) -> list[Configuration]:
        groups: Mapping[str, list[BodyPosition]] = defaultdict(list)
        for position in positions:
            if position.sign:
                groups[position.sign].append(position)
        out: list[Configuration] = []
        with PATTERN_COMPUTE_DURATION.labels(kind="stellium").time():
            for sign in sorted(groups):
                members = groups[sign]
                if len(members) < self.stellium_min_bodies:
                    continue
                longitudes = [p.longitude for p in members]
                span = max(longitudes) - min(longitudes)
                out.append(
                    Configuration(
                        kind=ConfigurationKind.STELLIUM,
                        participants=tuple(sorted(p.name for p in members)),
                        classifier=sign,
                        strength=max(0.0, 1.0 - span / _SIGN_WIDTH),
                        count=len(members),
                    )
                )
        return out
