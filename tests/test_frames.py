from __future__ import annotations

import numpy as np
import pytest

from skypointer.ephemeris import timescale
from skypointer.frames import normalize_ra_hours, to_equatorial
from skypointer.models import OrientationEstimate


def test_normalize_ra_hours_range() -> None:
    for ra_deg in np.linspace(-1080.0, 1080.0, 721):
        hours = normalize_ra_hours(float(ra_deg))
        assert 0.0 <= hours < 24.0
    assert normalize_ra_hours(-15.0) == pytest.approx(23.0)
    assert normalize_ra_hours(375.0) == pytest.approx(1.0)
    assert normalize_ra_hours(-1e-15) < 24.0


def test_zenith_is_local_sidereal_time(observer, instant) -> None:
    eq = to_equatorial(OrientationEstimate(az_deg=0.0, alt_deg=90.0), observer, instant)
    t = timescale().from_datetime(instant)
    last = (float(t.gast) + observer.lng / 15.0) % 24.0
    assert eq.dec_deg == pytest.approx(observer.lat, abs=0.05)
    assert eq.ra_hours == pytest.approx(last, abs=0.01)


def test_nadir_declination(observer, instant) -> None:
    eq = to_equatorial(OrientationEstimate(az_deg=0.0, alt_deg=-90.0), observer, instant)
    assert eq.dec_deg == pytest.approx(-observer.lat, abs=0.05)


def test_north_at_latitude_is_celestial_pole(observer, instant) -> None:
    eq = to_equatorial(OrientationEstimate(az_deg=0.0, alt_deg=observer.lat), observer, instant)
    assert eq.dec_deg > 89.9


def test_frames_differ_by_precession(observer, instant) -> None:
    pointing = OrientationEstimate(az_deg=135.0, alt_deg=40.0)
    of_date = to_equatorial(pointing, observer, instant, frame="date")
    j2000 = to_equatorial(pointing, observer, instant, frame="j2000")
    assert of_date != j2000
    # Roughly 24 years of precession: well under a degree.
    assert abs(of_date.dec_deg - j2000.dec_deg) < 1.0
    assert 0.0 < abs(of_date.ra_hours - j2000.ra_hours) < 0.1


def test_transform_is_pure(observer, instant) -> None:
    pointing = OrientationEstimate(az_deg=271.3, alt_deg=12.0)
    assert to_equatorial(pointing, observer, instant) == to_equatorial(pointing, observer, instant)


def test_output_ranges(observer, instant) -> None:
    for az in range(0, 360, 30):
        for alt in (-60, 0, 45, 89):
            eq = to_equatorial(OrientationEstimate(az_deg=float(az), alt_deg=float(alt)), observer, instant)
            assert 0.0 <= eq.ra_hours < 24.0
            assert -90.0 <= eq.dec_deg <= 90.0


def test_default_frame_is_equator_of_date(observer, instant) -> None:
    pointing = OrientationEstimate(az_deg=200.0, alt_deg=35.0)
    assert to_equatorial(pointing, observer, instant) == to_equatorial(
        pointing, observer, instant, frame="date"
    )
