from __future__ import annotations

import logging
from datetime import datetime

import pytest
from pytz import timezone, utc

from skypointer.catalog import SolarSystemBody
from skypointer.ephemeris import (
    EphemerisService,
    UnknownBodyError,
    body_for_name,
    ensure_utc,
)


class BrokenKernel:
    def __getitem__(self, key):
        raise KeyError(key)


@pytest.mark.parametrize(
    ("name", "body"),
    [
        ("Mars", SolarSystemBody.MARS),
        ("mars", SolarSystemBody.MARS),
        (" MOON ", SolarSystemBody.MOON),
        ("pluto", SolarSystemBody.PLUTO),
    ],
)
def test_body_for_name(name, body) -> None:
    assert body_for_name(name) is body


def test_body_for_name_rejects_stars() -> None:
    with pytest.raises(UnknownBodyError):
        body_for_name("Sirius")


def test_ensure_utc() -> None:
    naive = datetime(2024, 3, 1, 12, 0)
    assert ensure_utc(naive) == datetime(2024, 3, 1, 12, 0, tzinfo=utc)
    seoul = timezone("Asia/Seoul").localize(datetime(2024, 3, 1, 21, 0))
    assert ensure_utc(seoul) is seoul
    assert ensure_utc(None).tzinfo is not None


def test_unknown_body_is_warning(observer, instant, caplog) -> None:
    service = EphemerisService(ephemeris=BrokenKernel())
    with caplog.at_level(logging.WARNING):
        assert service.position_of("Sirius", observer, instant) is None
    assert "unsupported body name" in caplog.text


def test_missing_inputs_return_none(observer, instant) -> None:
    service = EphemerisService(ephemeris=BrokenKernel())
    assert service.position_of("Mars", None, instant) is None
    assert service.position_of("", observer, instant) is None
    assert service.position_of(None, observer, instant) is None
    assert service.all_positions(None, instant) == ()


def test_computation_failure_is_logged(observer, instant, caplog) -> None:
    service = EphemerisService(ephemeris=BrokenKernel())
    with caplog.at_level(logging.ERROR):
        assert service.position_of("Mars", observer, instant) is None
    assert "Position computation failed for Mars" in caplog.text
    assert service.all_positions(observer, instant) == ()


def test_mars_position(ephemeris_service, observer, instant) -> None:
    first = ephemeris_service.position_of("Mars", observer, instant)
    second = ephemeris_service.position_of("mars", observer, instant)
    assert first is not None
    assert first == second
    assert 0.0 <= first.ra_hours < 24.0
    assert -90.0 <= first.dec_deg <= 90.0


def test_sun_near_ecliptic_in_march(ephemeris_service, observer, instant) -> None:
    # Three weeks before the equinox the Sun sits at RA ~22.8h, Dec ~ -7.7°.
    sun = ephemeris_service.position_of("Sun", observer, instant)
    assert sun.ra_hours == pytest.approx(22.8, abs=0.2)
    assert sun.dec_deg == pytest.approx(-7.7, abs=0.5)


def test_moon_is_topocentric(ephemeris_service, instant) -> None:
    from skypointer.models import Observer

    north = ephemeris_service.position_of("Moon", Observer(lat=60.0, lng=0.0), instant)
    south = ephemeris_service.position_of("Moon", Observer(lat=-60.0, lng=0.0), instant)
    # Lunar parallax is about a degree; observers far apart see the Moon shift.
    assert abs(north.dec_deg - south.dec_deg) > 0.5


def test_all_positions(ephemeris_service, observer, instant) -> None:
    bodies = ephemeris_service.all_positions(observer, instant, lang="en")
    assert [b.proper for b in bodies][:2] == ["Sun", "Moon"]
    assert len(bodies) == 10
    assert all(b.is_solar_system_body for b in bodies)
