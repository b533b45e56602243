"""Event-category trigger tables for the timing engine."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from itertools import combinations
from types import MappingProxyType
from typing import Any

from ..canonical import AspectType
from ..core.bodies import canonical_name
from ..errors import ConfigurationError, ValidationError

__all__ = ["DEFAULT_TRIGGERS", "Trigger", "TriggerTable"]


@dataclass(frozen=True)
class Trigger:
    """Bodies whose mutual aspects of ``aspects`` signal an event category."""

    bodies: tuple[str, ...]
    aspects: tuple[AspectType, ...]

    def __post_init__(self) -> None:
        bodies = tuple(dict.fromkeys(canonical_name(b) for b in self.bodies))
        if len(bodies) < 2:
            raise ConfigurationError("a trigger needs at least two distinct bodies")
        kinds = tuple(dict.fromkeys(AspectType.parse(a) for a in self.aspects))
        if not kinds:
            raise ConfigurationError(
                "a trigger needs at least one aspect type",
                context={"bodies": list(bodies)},
            )
        object.__setattr__(self, "bodies", bodies)
        object.__setattr__(self, "aspects", kinds)

    def pairs(self) -> list[tuple[str, str]]:
        return list(combinations(self.bodies, 2))

    @property
    def label(self) -> str:
        return "-".join(self.bodies)


_C = AspectType.CONJUNCTION
_T = AspectType.TRINE
_S = AspectType.SEXTILE
_Q = AspectType.SQUARE
_O = AspectType.OPPOSITION

DEFAULT_TRIGGERS: Mapping[str, tuple[Trigger, ...]] = MappingProxyType(
    {
        "career": (
            Trigger(("SATURN", "MC"), (_C, _T)),
            Trigger(("JUPITER", "MC"), (_C, _T)),
            Trigger(("SUN", "MC"), (_C,)),
        ),
        "relationship": (
            Trigger(("VENUS", "MARS"), (_C, _T, _S)),
            Trigger(("JUPITER", "VENUS"), (_C, _T)),
            Trigger(("SATURN", "VENUS"), (_C, _O)),
        ),
        "health": (
            Trigger(("MARS", "SATURN"), (_Q, _O)),
            Trigger(("SUN", "SATURN"), (_C, _Q)),
            Trigger(("MOON", "SATURN"), (_C, _Q)),
        ),
        "finance": (
            Trigger(("VENUS", "JUPITER"), (_C, _T)),
            Trigger(("SUN", "JUPITER"), (_C, _T)),
            Trigger(("SATURN", "2ND_HOUSE"), (_C,)),
        ),
        "personal": (
            Trigger(("SUN", "MOON"), (_C, _O)),
            Trigger(("SUN", "ASC"), (_C,)),
            Trigger(("MOON", "ASC"), (_C,)),
        ),
        "spiritual": (
            Trigger(("NEPTUNE", "PLUTO"), (_C, _T)),
            Trigger(("URANUS", "NEPTUNE"), (_C, _T)),
            Trigger(("SUN", "NEPTUNE"), (_C,)),
        ),
    }
)


class TriggerTable:
    """Immutable mapping of event category to its triggers."""

    __slots__ = ("_categories",)

    def __init__(self, categories: Mapping[str, Iterable[Trigger]]) -> None:
        clean: dict[str, tuple[Trigger, ...]] = {}
        for name, triggers in categories.items():
            key = str(name).strip().lower()
            if not key:
                raise ConfigurationError("trigger category names must be non-empty")
            items = tuple(triggers)
            for trigger in items:
                if not isinstance(trigger, Trigger):
                    raise ConfigurationError(
                        "trigger tables only accept Trigger entries",
                        context={"category": key},
                    )
            clean[key] = items
        self._categories = MappingProxyType(clean)

    @classmethod
    def default(cls) -> "TriggerTable":
        return cls(DEFAULT_TRIGGERS)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Iterable[Mapping[str, Any]]]) -> "TriggerTable":
        """Build a table from ``{category: [{bodies: [...], aspects: [...]}]}``.

        ``planets`` is accepted as an alias of ``bodies``.
        """

        categories: dict[str, list[Trigger]] = {}
        for name, entries in data.items():
            triggers = []
            for entry in entries:
                bodies = entry.get("bodies", entry.get("planets"))
                if not bodies:
                    raise ConfigurationError(
                        "trigger entry is missing bodies", context={"category": str(name)}
                    )
                triggers.append(Trigger(tuple(bodies), tuple(entry.get("aspects", ()))))
            categories[name] = triggers
        return cls(categories)

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(self._categories)

    def for_category(self, category: str) -> tuple[Trigger, ...]:
        key = str(category).strip().lower()
        try:
            return self._categories[key]
        except KeyError:
            raise ValidationError(
                f"unknown event category {key!r}",
                context={"category": key, "known": list(self._categories)},
            ) from None

    def bodies(self, category: str) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for trigger in self.for_category(category):
            for body in trigger.bodies:
                seen.setdefault(body, None)
        return tuple(seen)

    def __contains__(self, category: object) -> bool:
        return isinstance(category, str) and category.strip().lower() in self._categories
