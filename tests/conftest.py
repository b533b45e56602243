"""Shared fixtures for astrotiming tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from astrotiming.canonical import BodyPosition, NatalChart


def make_position(name: str, longitude: float, speed: float | None = None) -> BodyPosition:
    return BodyPosition(name=name, longitude=longitude, speed=speed)


@pytest.fixture()
def reference() -> datetime:
    return datetime(1990, 6, 15, 12, tzinfo=timezone.utc)


@pytest.fixture()
def natal_chart(reference: datetime) -> NatalChart:
    return NatalChart.from_mapping(
        reference,
        {
            "SUN": {"longitude": 84.0, "speed": 0.955},
            "MOON": {"longitude": 201.5, "speed": 13.1},
            "MERCURY": {"longitude": 70.2, "speed": 1.4},
            "VENUS": {"longitude": 45.8, "speed": 1.2},
            "MARS": {"longitude": 5.3, "speed": 0.7},
            "JUPITER": {"longitude": 95.1, "speed": 0.23},
            "SATURN": {"longitude": 293.4, "speed": -0.05},
            "ASC": 172.0,
            "MC": 80.0,
        },
    )


@pytest.fixture()
def grand_trine_bodies() -> list[BodyPosition]:
    return [
        make_position("SUN", 0.0),
        make_position("MOON", 120.0),
        make_position("MARS", 240.0),
    ]


@pytest.fixture()
def t_square_bodies() -> list[BodyPosition]:
    return [
        make_position("SUN", 0.0),
        make_position("MOON", 180.0),
        make_position("MARS", 270.0),
    ]
