"""Aspect rule tables: exact angles, orbs and intensity weights."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from ..canonical import ASPECT_ANGLES, AspectRule, AspectType
from ..errors import ConfigurationError

__all__ = [
    "ASPECT_NATURE",
    "AspectRuleTable",
    "DEFAULT_INTENSITIES",
    "DEFAULT_ORBS",
    "MAJOR_ASPECTS",
    "MAX_ORB",
    "MINOR_ASPECTS",
    "aspect_nature",
]


MAX_ORB = 15.0

MAJOR_ASPECTS: tuple[AspectType, ...] = tuple(t for t in AspectType if t.is_major)
MINOR_ASPECTS: tuple[AspectType, ...] = tuple(t for t in AspectType if not t.is_major)

DEFAULT_ORBS: Mapping[AspectType, float] = MappingProxyType(
    {
        AspectType.CONJUNCTION: 10.0,
        AspectType.SEMI_SEXTILE: 2.0,
        AspectType.SEMI_SQUARE: 2.0,
        AspectType.SEXTILE: 8.0,
        AspectType.SQUARE: 8.0,
        AspectType.TRINE: 8.0,
        AspectType.SESQUI_SQUARE: 2.0,
        AspectType.QUINCUNX: 2.0,
        AspectType.OPPOSITION: 10.0,
    }
)

DEFAULT_INTENSITIES: Mapping[AspectType, float] = MappingProxyType(
    {
        AspectType.CONJUNCTION: 1.0,
        AspectType.SEMI_SEXTILE: 0.3,
        AspectType.SEMI_SQUARE: 0.3,
        AspectType.SEXTILE: 0.6,
        AspectType.SQUARE: 0.4,
        AspectType.TRINE: 0.8,
        AspectType.SESQUI_SQUARE: 0.3,
        AspectType.QUINCUNX: 0.3,
        AspectType.OPPOSITION: 0.5,
    }
)

ASPECT_NATURE: Mapping[AspectType, str] = MappingProxyType(
    {
        AspectType.CONJUNCTION: "neutral",
        AspectType.SEMI_SEXTILE: "neutral",
        AspectType.SEMI_SQUARE: "challenging",
        AspectType.SEXTILE: "supportive",
        AspectType.SQUARE: "challenging",
        AspectType.TRINE: "supportive",
        AspectType.SESQUI_SQUARE: "challenging",
        AspectType.QUINCUNX: "challenging",
        AspectType.OPPOSITION: "challenging",
    }
)


def aspect_nature(kind: AspectType | str) -> str:
    """Return ``supportive``, ``challenging`` or ``neutral`` for ``kind``."""

    return ASPECT_NATURE[AspectType.parse(kind)]


def _coerce_orb(kind: AspectType, value: object) -> float:
    try:
        orb = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            "orb must be numeric", context={"aspect": kind.value}
        ) from exc
    if not 0.0 < orb <= MAX_ORB:
        raise ConfigurationError(
            f"orb must lie in (0, {MAX_ORB:g}]",
            context={"aspect": kind.value},
        )
    return orb


class AspectRuleTable:
    """Immutable, ordered collection of :class:`AspectRule` objects.

    Iteration always follows :class:`AspectType` declaration order, which
    is also the tie-break order used when sorting detected aspects.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[AspectRule]) -> None:
        by_type: dict[AspectType, AspectRule] = {}
        for rule in rules:
            if not isinstance(rule, AspectRule):
                raise ConfigurationError("rule tables only accept AspectRule entries")
            if rule.type in by_type:
                raise ConfigurationError(
                    "duplicate aspect rule", context={"aspect": rule.type.value}
                )
            by_type[rule.type] = rule
        if not by_type:
            raise ConfigurationError("rule table must contain at least one rule")
        self._rules = tuple(by_type[t] for t in AspectType if t in by_type)

    @classmethod
    def default(cls, *, include_minor: bool = False) -> "AspectRuleTable":
        kinds = tuple(AspectType) if include_minor else MAJOR_ASPECTS
        return cls(
            AspectRule(kind, ASPECT_ANGLES[kind], DEFAULT_ORBS[kind], DEFAULT_INTENSITIES[kind])
            for kind in kinds
        )

    @classmethod
    def from_orbs(
        cls,
        orbs: Mapping[AspectType | str, float],
        *,
        intensities: Mapping[AspectType | str, float] | None = None,
    ) -> "AspectRuleTable":
        """Build a table containing exactly the aspect types in ``orbs``."""

        weights = {AspectType.parse(k): float(v) for k, v in (intensities or {}).items()}
        rules = []
        for key, value in orbs.items():
            kind = AspectType.parse(key)
            rules.append(
                AspectRule(
                    kind,
                    ASPECT_ANGLES[kind],
                    _coerce_orb(kind, value),
                    weights.get(kind, DEFAULT_INTENSITIES[kind]),
                )
            )
        return cls(rules)

    def with_overrides(self, orbs: Mapping[AspectType | str, float]) -> "AspectRuleTable":
        """Return a new table with the orbs of existing rules replaced."""

        current = {rule.type: rule for rule in self._rules}
        for key, value in orbs.items():
            kind = AspectType.parse(key)
            if kind not in current:
                raise ConfigurationError(
                    "cannot override an aspect missing from the table",
                    context={"aspect": kind.value},
                )
            rule = current[kind]
            current[kind] = AspectRule(kind, rule.exact_angle, _coerce_orb(kind, value), rule.intensity)
        return AspectRuleTable(current.values())

    def subset(self, kinds: Iterable[AspectType | str]) -> "AspectRuleTable":
        wanted = {AspectType.parse(kind) for kind in kinds}
        return AspectRuleTable(rule for rule in self._rules if rule.type in wanted)

    def rule_for(self, kind: AspectType | str) -> AspectRule | None:
        key = AspectType.parse(kind)
        for rule in self._rules:
            if rule.type is key:
                return rule
        return None

    @property
    def types(self) -> tuple[AspectType, ...]:
        return tuple(rule.type for rule in self._rules)

    @property
    def max_orb(self) -> float:
        return max(rule.orb for rule in self._rules)

    def __iter__(self) -> Iterator[AspectRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, kind: object) -> bool:
        if isinstance(kind, (AspectType, str)):
            try:
                return self.rule_for(kind) is not None
            except ConfigurationError:
                return False
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AspectRuleTable):
            return NotImplemented
        return self._rules == other._rules

    def __hash__(self) -> int:
        return hash(self._rules)

    def __repr__(self) -> str:
        inner = ", ".join(f"{rule.type.value}={rule.orb:g}" for rule in self._rules)
        return f"AspectRuleTable({inner})"
