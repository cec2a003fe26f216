"""Horizontal (azimuth/altitude) to equatorial (RA/Dec) transform."""

from datetime import datetime

from skyfield.api import wgs84

from skypointer.ephemeris import ensure_utc, radec_of, timescale
from skypointer.models import EquatorialCoordinate, Observer, OrientationEstimate


def normalize_ra_hours(ra_deg: float) -> float:
    """Right ascension in degrees to hours in [0, 24)."""
    hours = (ra_deg / 15.0) % 24.0
    return 0.0 if hours >= 24.0 else hours


def to_equatorial(
    orientation: OrientationEstimate,
    observer: Observer,
    instant: datetime | None = None,
    frame: str = "date",
) -> EquatorialCoordinate:
    """Sky coordinates of the pointing direction.

    The (azimuth, altitude) pair becomes a direction vector in the observer's
    horizontal frame, which skyfield rotates into the celestial frame for the
    given instant. No refraction is applied.

    Args:
        orientation: Filtered pointing direction.
        observer: Geographic location.
        instant: UTC time (naive values are taken as UTC). Defaults to now.
        frame: ``"date"`` for the equator of date, ``"j2000"`` for ICRS. Must
            match the frame used for body positions.

    Returns:
        EquatorialCoordinate with RA in [0, 24) hours.
    """
    t = timescale().from_datetime(ensure_utc(instant))
    topos = wgs84.latlon(
        latitude_degrees=observer.lat,
        longitude_degrees=observer.lng,
        elevation_m=observer.elevation_m,
    )
    direction = topos.at(t).from_altaz(
        alt_degrees=orientation.alt_deg, az_degrees=orientation.az_deg
    )
    return radec_of(direction, frame, t)
