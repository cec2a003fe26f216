from __future__ import annotations

from datetime import datetime

import pytest
from pytz import utc

from skypointer.ephemeris import EphemerisService, load_ephemeris
from skypointer.models import CelestialObject, EquatorialCoordinate, Observer

SEOUL = Observer(lat=37.5, lng=127.0, elevation_m=0.0)
INSTANT = datetime(2024, 3, 1, 12, 0, tzinfo=utc)


def star(
    id_: str,
    proper: str | None,
    name: str | None,
    mag: float | None,
    ra: float = 1.0,
    dec: float = 2.0,
) -> CelestialObject:
    return CelestialObject(
        id=id_, proper=proper, name=name, magnitude=mag, ra_hours=ra, dec_deg=dec
    )


class FakePositions:
    """Position source with canned answers; records every call."""

    def __init__(self, fail: tuple[str, ...] = (), raise_for: tuple[str, ...] = ()) -> None:
        self.fail = {n.lower() for n in fail}
        self.raise_for = {n.lower() for n in raise_for}
        self.calls: list[str] = []

    def position_of(self, body_name, observer, instant=None):
        self.calls.append(body_name)
        key = body_name.lower()
        if key in self.raise_for:
            raise RuntimeError(f"boom: {body_name}")
        if key in self.fail:
            return None
        return EquatorialCoordinate(ra_hours=len(key) % 24, dec_deg=10.0)


@pytest.fixture
def observer() -> Observer:
    return SEOUL


@pytest.fixture
def instant() -> datetime:
    return INSTANT


@pytest.fixture
def positions() -> FakePositions:
    return FakePositions()


@pytest.fixture
def stars() -> tuple[CelestialObject, ...]:
    return (
        star("32263", "Sirius", "Alp CMa", -1.44, ra=6.752481, dec=-16.716116),
        star("32349", "Sirius B", None, 8.44, ra=6.7525, dec=-16.72),
        star("91262", "Vega", "Alp Lyr", 0.03, ra=18.615649, dec=38.783692),
        star("113881", "Markab", "Alp Peg", 0.7),
        star("9001", "Mars", None, 1.5),
        star("9002", None, "moon", 2.0),
        star("9003", "화성", None, 2.5),
        star("9004", None, "Nameless", None),
    )


@pytest.fixture(scope="session")
def ephemeris_service() -> EphemerisService:
    try:
        eph = load_ephemeris()
    except Exception as exc:
        pytest.skip(f"ephemeris kernel unavailable: {exc}")
    return EphemerisService(frame="date", ephemeris=eph)
