"""Celestial position service — live RA/Dec of solar-system bodies via skyfield."""

import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path

from pytz import utc
from skyfield.api import Loader, wgs84

from skypointer.catalog import SolarSystemBody
from skypointer.models import CelestialObject, EquatorialCoordinate, Observer, SkyPointerError

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).parent.parent.parent
_loader = Loader(str(_ROOT / "resources"))

EPHEMERIS_FILE = "de421.bsp"


class UnknownBodyError(SkyPointerError):
    """Name does not resolve to a supported solar-system body."""


@lru_cache(maxsize=1)
def load_ephemeris():
    """Open the planetary kernel, downloading it into resources/ on first use."""
    return _loader(EPHEMERIS_FILE)


@lru_cache(maxsize=1)
def timescale():
    return _loader.timescale()


def ensure_utc(instant: datetime | None) -> datetime:
    """Current time when None; naive datetimes are taken as UTC."""
    if instant is None:
        return datetime.now(tz=utc)
    if instant.tzinfo is None:
        return utc.localize(instant)
    return instant


def body_for_name(name: str) -> SolarSystemBody:
    """Resolve a canonical body name or id, case-insensitively.

    Raises:
        UnknownBodyError: For any name outside the supported set.
    """
    key = name.strip().lower()
    for body in SolarSystemBody:
        if key in (body.id, body.canonical.lower()):
            return body
    raise UnknownBodyError(f"unsupported body name: {name}")


def radec_of(position, frame: str = "date", t=None) -> EquatorialCoordinate:
    """Read RA/Dec from a skyfield position in the given equatorial frame.

    ``"date"`` is the true equator and equinox of date; ``"j2000"`` is ICRS.
    Positions built by ``from_altaz`` carry no time, so ``t`` supplies the
    epoch for ``"date"``; it defaults to the position's own time.
    """
    if frame == "date":
        epoch = t if t is not None else position.t
        ra, dec, _ = position.radec(epoch=epoch)
    else:
        ra, dec, _ = position.radec()
    ra_hours = float(ra.hours) % 24.0
    if ra_hours >= 24.0:
        ra_hours = 0.0
    return EquatorialCoordinate(ra_hours=ra_hours, dec_deg=float(dec.degrees))


class EphemerisService:
    """Topocentric apparent positions of the supported bodies.

    Positions include light-time and aberration corrections and are reported
    in the configured equatorial frame so they can be compared directly with
    the frame transform output.
    """

    def __init__(self, frame: str = "date", ephemeris=None) -> None:
        self.frame = frame
        self._eph = ephemeris

    @property
    def eph(self):
        if self._eph is None:
            self._eph = load_ephemeris()
        return self._eph

    def compute(
        self, body: SolarSystemBody, observer: Observer, instant: datetime | None = None
    ) -> EquatorialCoordinate:
        """Compute the position of a resolved body. Exceptions propagate."""
        eph = self.eph
        t = timescale().from_datetime(ensure_utc(instant))
        ground = eph["earth"] + wgs84.latlon(
            latitude_degrees=observer.lat,
            longitude_degrees=observer.lng,
            elevation_m=observer.elevation_m,
        )
        apparent = ground.at(t).observe(eph[body.ephemeris_key]).apparent()
        return radec_of(apparent, self.frame, t)

    def position_of(
        self,
        body_name: str | None,
        observer: Observer | None,
        instant: datetime | None = None,
    ) -> EquatorialCoordinate | None:
        """Live RA/Dec for a body name, or None when it cannot be computed.

        Missing inputs and unknown names are logged as warnings; failures
        inside the ephemeris computation are logged as errors.
        """
        if observer is None:
            logger.warning("No observer available for position of %r", body_name)
            return None
        if not body_name:
            logger.warning("No body name given")
            return None
        try:
            body = body_for_name(body_name)
        except UnknownBodyError as exc:
            logger.warning("%s", exc)
            return None

        try:
            return self.compute(body, observer, instant)
        except Exception:
            logger.exception("Position computation failed for %s", body.canonical)
            return None

    def all_positions(
        self,
        observer: Observer | None,
        instant: datetime | None = None,
        lang: str = "ko",
    ) -> tuple[CelestialObject, ...]:
        """Every body with live coordinates. Bodies that fail are left out."""
        if observer is None:
            return ()
        instant = ensure_utc(instant)
        results: list[CelestialObject] = []
        for body in SolarSystemBody:
            position = self.position_of(body.canonical, observer, instant)
            if position is None:
                continue
            results.append(
                CelestialObject(
                    id=body.id,
                    proper=body.proper_name(lang),
                    name=body.canonical,
                    magnitude=body.magnitude,
                    ra_hours=position.ra_hours,
                    dec_deg=position.dec_deg,
                    is_solar_system_body=True,
                )
            )
        return tuple(results)
