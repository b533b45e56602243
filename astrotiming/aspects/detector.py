"""Pairwise aspect detection over sets of body positions."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from itertools import combinations
from typing import Literal

from ..canonical import AspectType, BodyPosition, DetectedAspect, collect_positions
from ..core.angles import EPSILON_DEG, angular_distance, directional_separation
from ..core.bodies import canonical_name
from ..errors import ConfigurationError
from ..observability.metrics import ASPECT_COMPUTE_DURATION
from .rules import AspectRuleTable

LOG = logging.getLogger(__name__)

__all__ = [
    "APPLYING_RULES",
    "AspectDetector",
    "aspects_between",
    "aspects_for_body",
    "is_applying",
    "is_closing",
    "sort_aspects",
]


PositionsLike = Mapping[str, BodyPosition] | Iterable[BodyPosition]

ApplyingRule = Literal["relative_speed", "closing"]
APPLYING_RULES: tuple[str, ...] = ("relative_speed", "closing")


def is_applying(speed_a: float, speed_b: float, separation: float) -> bool:
    """Return ``True`` when body A is catching up with body B.

    ``separation`` is the directional separation ``lon_b - lon_a`` in
    ``[0, 360)``. Up to 180 degrees A applies when it is the faster body;
    beyond that B is catching up from behind and A applies only when it is
    the slower one.
    """

    relative = float(speed_a) - float(speed_b)
    if separation <= 180.0:
        return relative > 0.0
    return relative < 0.0


def is_closing(
    lon_a: float,
    lon_b: float,
    speed_a: float,
    speed_b: float,
    exact_angle: float,
) -> bool:
    """Return ``True`` when the folded separation is moving toward ``exact_angle``.

    The folded separation ``D`` shrinks with ``s`` while ``s <= 180`` and
    grows with it beyond, so ``dD/dt`` is ``-rel`` or ``+rel``. For a
    conjunction this agrees with :func:`is_applying`.
    """

    s = directional_separation(lon_a, lon_b)
    folded = 360.0 - s if s > 180.0 else s
    relative = float(speed_a) - float(speed_b)
    rate = -relative if s <= 180.0 else relative
    offset = folded - float(exact_angle)
    if abs(offset) <= EPSILON_DEG:
        return True
    return (offset > 0.0 and rate < 0.0) or (offset < 0.0 and rate > 0.0)


def sort_aspects(aspects: Iterable[DetectedAspect]) -> list[DetectedAspect]:
    """Strength descending, then body-name pair, then rule order."""

    return sorted(aspects, key=lambda a: (-a.strength, a.pair, a.type.order))


class AspectDetector:
    """Detect aspects between body positions using an :class:`AspectRuleTable`.

    ``applying_rule`` selects how the applying flag is derived: the default
    ``"relative_speed"`` uses :func:`is_applying`; ``"closing"`` uses
    :func:`is_closing`, which also tracks the exact angle.
    """

    def __init__(
        self,
        rules: AspectRuleTable | None = None,
        *,
        applying_rule: ApplyingRule = "relative_speed",
    ) -> None:
        if applying_rule not in APPLYING_RULES:
            raise ConfigurationError(
                "unknown applying rule", context={"applying_rule": applying_rule}
            )
        self.rules = rules if rules is not None else AspectRuleTable.default()
        self.applying_rule = applying_rule

    def restricted(self, kinds: Iterable[AspectType | str]) -> "AspectDetector":
        return AspectDetector(self.rules.subset(kinds), applying_rule=self.applying_rule)

    def _applying(self, a: BodyPosition, b: BodyPosition, exact_angle: float) -> bool:
        if self.applying_rule == "closing":
            return is_closing(a.longitude, b.longitude, a.speed, b.speed, exact_angle)  # type: ignore[arg-type]
        separation = directional_separation(a.longitude, b.longitude)
        return is_applying(a.speed, b.speed, separation)  # type: ignore[arg-type]

    def detect_pair(self, a: BodyPosition, b: BodyPosition) -> list[DetectedAspect]:
        """Return every rule matched by the pair ``(a, b)`` in rule order."""

        distance = angular_distance(a.longitude, b.longitude)
        speeds_known = a.speed is not None and b.speed is not None
        matches: list[DetectedAspect] = []
        for rule in self.rules:
            deviation = abs(distance - rule.exact_angle)
            if deviation > rule.orb + EPSILON_DEG:
                continue
            exact = deviation <= EPSILON_DEG
            if exact:
                applying: bool | None = True
            elif speeds_known:
                applying = self._applying(a, b, rule.exact_angle)
            else:
                applying = None
            matches.append(
                DetectedAspect(
                    body_a=a.name,
                    body_b=b.name,
                    type=rule.type,
                    exact_angle=rule.exact_angle,
                    actual_separation=distance,
                    orb_used=min(deviation, rule.orb),
                    strength=max(0.0, (rule.orb - deviation) / rule.orb),
                    exact=exact,
                    applying=applying,
                )
            )
        return matches

    def find_all_aspects(self, bodies: PositionsLike) -> list[DetectedAspect]:
        """Detect aspects for every unordered pair in ``bodies`` exactly once."""

        positions = collect_positions(bodies)
        with ASPECT_COMPUTE_DURATION.labels(method="pairwise").time():
            found: list[DetectedAspect] = []
            for a, b in combinations(positions, 2):
                found.extend(self.detect_pair(a, b))
        LOG.debug("detected %d aspects across %d bodies", len(found), len(positions))
        return sort_aspects(found)

    def find_cross_aspects(
        self,
        moving: PositionsLike,
        fixed: PositionsLike,
        *,
        pairs: Sequence[tuple[str, str]] | None = None,
    ) -> list[DetectedAspect]:
        """Detect aspects from each ``moving`` body to each ``fixed`` body.

        ``body_a`` is always the moving body. ``pairs`` restricts the
        comparison to ``(moving, fixed)`` name combinations.
        """

        movers = collect_positions(moving)
        targets = collect_positions(fixed)
        wanted = None
        if pairs is not None:
            wanted = {(canonical_name(m), canonical_name(f)) for m, f in pairs}
        with ASPECT_COMPUTE_DURATION.labels(method="cross").time():
            found: list[DetectedAspect] = []
            for a in movers:
                for b in targets:
                    if wanted is not None and (a.name, b.name) not in wanted:
                        continue
                    found.extend(self.detect_pair(a, b))
        return sort_aspects(found)


def aspects_for_body(aspects: Iterable[DetectedAspect], body: str) -> list[DetectedAspect]:
    return [aspect for aspect in aspects if aspect.involves(body)]


def aspects_between(aspects: Iterable[DetectedAspect], first: str, second: str) -> list[DetectedAspect]:
    key = tuple(sorted((canonical_name(first), canonical_name(second))))
    return [aspect for aspect in aspects if aspect.pair == key]
