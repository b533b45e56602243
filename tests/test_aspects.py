from __future__ import annotations

import pytest

from astrotiming.aspects import (
    AspectDetector,
    AspectRuleTable,
    AspectType,
    aspect_nature,
    aspects_between,
    aspects_for_body,
    is_applying,
    is_closing,
)
from astrotiming.canonical import AspectRule, BodyPosition
from astrotiming.errors import ConfigurationError, ValidationError


def _pos(name: str, lon: float, speed: float | None = None) -> BodyPosition:
    return BodyPosition(name=name, longitude=lon, speed=speed)


@pytest.fixture()
def detector() -> AspectDetector:
    return AspectDetector()


def test_identical_longitudes_are_exact_conjunction(detector: AspectDetector) -> None:
    (hit,) = detector.detect_pair(_pos("SUN", 42.0), _pos("MOON", 42.0))
    assert hit.type is AspectType.CONJUNCTION
    assert hit.strength == 1.0
    assert hit.exact is True
    assert hit.applying is True


def test_exact_square_reports_only_square(detector: AspectDetector) -> None:
    hits = detector.detect_pair(_pos("SUN", 0.0), _pos("MARS", 90.0))
    assert [h.type for h in hits] == [AspectType.SQUARE]
    assert hits[0].strength == 1.0
    assert hits[0].exact is True
    assert hits[0].orb_used == 0.0


def test_orb_boundary_is_inclusive(detector: AspectDetector) -> None:
    (hit,) = detector.detect_pair(_pos("SUN", 0.0), _pos("MARS", 98.0))
    assert hit.type is AspectType.SQUARE
    assert hit.strength == 0.0
    assert hit.orb_used == pytest.approx(8.0)
    assert not detector.detect_pair(_pos("SUN", 0.0), _pos("MARS", 98.5))


def test_aspect_across_zero_aries(detector: AspectDetector) -> None:
    (hit,) = detector.detect_pair(_pos("SUN", 355.0), _pos("MOON", 3.0))
    assert hit.type is AspectType.CONJUNCTION
    assert hit.actual_separation == pytest.approx(8.0)
    assert hit.strength == pytest.approx(0.2)


def test_semi_square_requires_minor_aspects() -> None:
    pair = (_pos("SUN", 0.0), _pos("VENUS", 45.0))
    assert AspectDetector().detect_pair(*pair) == []
    minor = AspectDetector(AspectRuleTable.default(include_minor=True))
    (hit,) = minor.detect_pair(*pair)
    assert hit.type is AspectType.SEMI_SQUARE
    assert hit.exact is True


def test_applying_then_separating_conjunction(detector: AspectDetector) -> None:
    (before,) = detector.detect_pair(_pos("MOON", 0.0, 13.0), _pos("SUN", 6.0, 1.0))
    assert before.applying is True
    assert before.separating is False
    # One day later the Moon has passed the Sun.
    (after,) = detector.detect_pair(_pos("MOON", 13.0, 13.0), _pos("SUN", 7.0, 1.0))
    assert after.applying is False
    assert after.separating is True


@pytest.mark.parametrize(
    ("speed_a", "speed_b", "separation", "expected"),
    [
        (2.0, 1.0, 60.0, True),
        (1.5, 1.0, 90.0, True),
        (1.0, 2.0, 270.0, True),
        (1.0, 2.0, 60.0, False),
        (2.0, 1.0, 270.0, False),
        (1.0, 1.0, 60.0, False),
        (1.0, -1.0, 60.0, True),
        (-1.0, 1.0, 270.0, True),
    ],
)
def test_is_applying(speed_a: float, speed_b: float, separation: float, expected: bool) -> None:
    assert is_applying(speed_a, speed_b, separation) is expected


def test_faster_body_behind_is_applying_sextile(detector: AspectDetector) -> None:
    (hit,) = detector.detect_pair(_pos("SUN", 0.0, 2.0), _pos("VENUS", 58.0, 1.0))
    assert hit.type is AspectType.SEXTILE
    assert hit.applying is True
    (reverse,) = detector.detect_pair(_pos("SUN", 0.0, 1.0), _pos("VENUS", 58.0, 2.0))
    assert reverse.applying is False


@pytest.mark.parametrize(
    ("lon_a", "lon_b", "speed_a", "speed_b", "angle", "expected"),
    [
        (0.0, 10.0, 1.0, 0.0, 0.0, True),
        (15.0, 10.0, 1.0, 0.0, 0.0, False),
        (0.0, 95.0, 1.0, 0.0, 90.0, True),
        (0.0, 85.0, 1.0, 0.0, 90.0, False),
        (0.0, 175.0, 0.0, 1.0, 180.0, True),
    ],
)
def test_is_closing(
    lon_a: float, lon_b: float, speed_a: float, speed_b: float, angle: float, expected: bool
) -> None:
    assert is_closing(lon_a, lon_b, speed_a, speed_b, angle) is expected


def test_closing_rule_is_opt_in() -> None:
    pair = (_pos("SUN", 0.0, 2.0), _pos("VENUS", 58.0, 1.0))
    (closing,) = AspectDetector(applying_rule="closing").detect_pair(*pair)
    assert closing.applying is False
    restricted = AspectDetector(applying_rule="closing").restricted(["sextile"])
    assert restricted.applying_rule == "closing"
    with pytest.raises(ConfigurationError):
        AspectDetector(applying_rule="sideways")  # type: ignore[arg-type]


def test_missing_speed_leaves_applying_unknown(detector: AspectDetector) -> None:
    (hit,) = detector.detect_pair(_pos("SUN", 0.0, 1.0), _pos("MARS", 93.0))
    assert hit.applying is None
    assert hit.separating is None


def test_find_all_aspects_visits_each_pair_once(detector: AspectDetector) -> None:
    bodies = [_pos("SUN", 0.0), _pos("MOON", 120.0), _pos("MARS", 240.0), _pos("VENUS", 2.0)]
    hits = detector.find_all_aspects(bodies)
    pairs = [(h.pair, h.type) for h in hits]
    assert len(pairs) == len(set(pairs))
    assert {h.pair for h in hits} == {
        ("MOON", "SUN"),
        ("MARS", "SUN"),
        ("MARS", "MOON"),
        ("SUN", "VENUS"),
        ("MOON", "VENUS"),
        ("MARS", "VENUS"),
    }
    strengths = [h.strength for h in hits]
    assert strengths == sorted(strengths, reverse=True)


def test_find_all_aspects_accepts_mappings(detector: AspectDetector) -> None:
    bodies = {"SUN": _pos("SUN", 0.0), "MARS": _pos("MARS", 90.0)}
    (hit,) = detector.find_all_aspects(bodies)
    assert hit.pair == ("MARS", "SUN")


def test_duplicate_bodies_rejected(detector: AspectDetector) -> None:
    with pytest.raises(ValidationError):
        detector.find_all_aspects([_pos("SUN", 0.0), _pos("sun", 10.0)])


def test_cross_aspects_keep_moving_body_first(detector: AspectDetector) -> None:
    moving = [_pos("MARS", 90.0), _pos("JUPITER", 200.0)]
    fixed = [_pos("SUN", 0.0), _pos("MOON", 20.0)]
    hits = detector.find_cross_aspects(moving, fixed)
    assert all(h.body_a in {"MARS", "JUPITER"} for h in hits)
    restricted = detector.find_cross_aspects(moving, fixed, pairs=[("mars", "sun")])
    assert [(h.body_a, h.body_b, h.type) for h in restricted] == [
        ("MARS", "SUN", AspectType.SQUARE)
    ]


def test_restricted_detector_only_uses_given_types(detector: AspectDetector) -> None:
    trines_only = detector.restricted(["trine"])
    assert trines_only.rules.types == (AspectType.TRINE,)
    assert trines_only.detect_pair(_pos("SUN", 0.0), _pos("MARS", 90.0)) == []


def test_aspect_filters(detector: AspectDetector) -> None:
    hits = detector.find_all_aspects(
        [_pos("SUN", 0.0), _pos("MOON", 180.0), _pos("MARS", 270.0)]
    )
    assert {h.type for h in aspects_for_body(hits, "mars")} == {AspectType.SQUARE}
    (opposition,) = aspects_between(hits, "moon", "SUN")
    assert opposition.type is AspectType.OPPOSITION


def test_rule_table_defaults() -> None:
    table = AspectRuleTable.default()
    assert table.types == (
        AspectType.CONJUNCTION,
        AspectType.SEXTILE,
        AspectType.SQUARE,
        AspectType.TRINE,
        AspectType.OPPOSITION,
    )
    assert table.max_orb == 10.0
    assert len(AspectRuleTable.default(include_minor=True)) == 9
    assert "trine" in table
    assert "quincunx" not in table
    assert "bogus" not in table


def test_rule_table_overrides() -> None:
    table = AspectRuleTable.default().with_overrides({"square": 6})
    assert table.rule_for(AspectType.SQUARE).orb == 6.0
    assert table != AspectRuleTable.default()
    with pytest.raises(ConfigurationError):
        AspectRuleTable.default().with_overrides({"quincunx": 2.0})
    with pytest.raises(ConfigurationError):
        AspectRuleTable.default().with_overrides({"square": 0.0})
    with pytest.raises(ConfigurationError):
        AspectRuleTable.default().with_overrides({"square": 20.0})


def test_rule_table_validation() -> None:
    rule = AspectRule(AspectType.TRINE, 120.0, 8.0)
    with pytest.raises(ConfigurationError):
        AspectRuleTable([rule, rule])
    with pytest.raises(ConfigurationError):
        AspectRuleTable([])
    with pytest.raises(ConfigurationError):
        AspectRule(AspectType.TRINE, 119.0, 8.0)
    with pytest.raises(ConfigurationError):
        AspectRule(AspectType.TRINE, 120.0, -1.0)


def test_rule_table_from_orbs() -> None:
    table = AspectRuleTable.from_orbs({"opposition": 5.0, "conjunction": 4.0})
    assert table.types == (AspectType.CONJUNCTION, AspectType.OPPOSITION)
    assert table.rule_for("opposition").intensity == 0.5


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Semi-Square", AspectType.SEMI_SQUARE),
        ("semisextile", AspectType.SEMI_SEXTILE),
        ("inconjunct", AspectType.QUINCUNX),
        ("OPPOSITION", AspectType.OPPOSITION),
    ],
)
def test_aspect_type_parse(raw: str, expected: AspectType) -> None:
    assert AspectType.parse(raw) is expected


def test_aspect_type_parse_unknown() -> None:
    with pytest.raises(ConfigurationError, match="unknown aspect type"):
        AspectType.parse("quintile")


def test_aspect_nature() -> None:
    assert aspect_nature("trine") == "supportive"
    assert aspect_nature(AspectType.SQUARE) == "challenging"
    assert aspect_nature("conjunction") == "neutral"
