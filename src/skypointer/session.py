"""Wires sensor readings through fusion and the frame transform to target guidance."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from skypointer.bearing import bearing_to
from skypointer.catalog import CatalogStore
from skypointer.config import Settings
from skypointer.ephemeris import EphemerisService, ensure_utc
from skypointer.frames import to_equatorial
from skypointer.fusion import AttitudeFusionEngine
from skypointer.location import acquire_location, declination_from_fix, observer_from_fix
from skypointer.models import (
    BearingResult,
    CelestialObject,
    EquatorialCoordinate,
    LocationFix,
    Observer,
    OrientationEstimate,
    SensorReading,
    SessionSnapshot,
)
from skypointer.search import SearchEngine
from skypointer.sensors import SensorHub

logger = logging.getLogger(__name__)


class SkySession:
    """State for one pointing session.

    The observer is set once from a location fix. Orientation is owned by the
    fusion engine; every published estimate recomputes RA/Dec and, when a
    target is selected, the bearing toward it.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: CatalogStore,
        ephemeris: EphemerisService,
        declination_deg: float = 0.0,
        instant: datetime | None = None,
    ) -> None:
        self.settings = settings
        self.instant = instant  # fixed clock for replays; None follows wall time
        self.catalog = catalog
        self.ephemeris = ephemeris
        self.fusion = AttitudeFusionEngine.from_settings(settings, declination_deg)
        self.fusion.subscribe(self.on_orientation)
        self.search_engine = SearchEngine(
            stars=catalog.stars,
            positions=ephemeris,
            lang=settings.lang,
            limit=settings.search_limit,
            star_scan_limit=settings.star_scan_limit,
        )
        self.observer: Observer | None = None
        self.orientation = OrientationEstimate(az_deg=0.0, alt_deg=0.0)
        self.equatorial: EquatorialCoordinate | None = None
        self.target: CelestialObject | None = None
        self.bearing: BearingResult | None = None
        self.computed_at: datetime | None = None

    @classmethod
    def from_fix(
        cls,
        settings: Settings,
        catalog: CatalogStore,
        ephemeris: EphemerisService,
        fix: LocationFix,
        instant: datetime | None = None,
    ) -> "SkySession":
        """Session whose observer and magnetic declination both come from ``fix``.

        The heading pair in the fix is read once; the declination stays fixed
        for the session.
        """
        declination = declination_from_fix(fix)
        logger.info("Magnetic declination %.2f° from location fix", declination)
        session = cls(settings, catalog, ephemeris, declination_deg=declination, instant=instant)
        session.set_observer(observer_from_fix(fix))
        return session

    @classmethod
    async def start(
        cls,
        settings: Settings,
        catalog: CatalogStore,
        ephemeris: EphemerisService,
        fetch: Callable[[], Awaitable[LocationFix]],
        instant: datetime | None = None,
    ) -> "SkySession":
        """Await a location fix, bounded by ``settings.location_timeout_s``.

        Raises:
            LocationUnavailableError: No fix in time, or the fetch failed.
        """
        fix = await acquire_location(fetch, timeout_s=settings.location_timeout_s)
        return cls.from_fix(settings, catalog, ephemeris, fix, instant=instant)

    def set_observer(self, observer: Observer) -> None:
        if self.observer is not None and self.observer != observer:
            logger.info("Observer replaced: %s -> %s", self.observer, observer)
        self.observer = observer
        self._recompute()

    def search(self, query: str, instant: datetime | None = None) -> tuple[CelestialObject, ...]:
        return self.search_engine.search(query, self.observer, instant or self.instant)

    def select(self, target: CelestialObject) -> None:
        """Aim at ``target`` until another one is selected."""
        self.target = target
        logger.info("Selected target %s", target.display_name)
        self._recompute_bearing()

    def handle_reading(self, reading: SensorReading) -> None:
        self.fusion.update(reading)

    def on_orientation(self, estimate: OrientationEstimate, instant: datetime | None = None) -> None:
        self.orientation = estimate
        self._recompute(instant)

    def _recompute(self, instant: datetime | None = None) -> None:
        if self.observer is None:
            return
        instant = ensure_utc(instant or self.instant)
        self.equatorial = to_equatorial(
            self.orientation, self.observer, instant, frame=self.settings.frame
        )
        self.computed_at = instant
        self._recompute_bearing()

    def _recompute_bearing(self) -> None:
        if self.target is None or self.equatorial is None:
            self.bearing = None
            return
        self.bearing = bearing_to(
            self.target.coordinate,
            self.equatorial,
            aligned_deg=self.settings.aligned_deg,
            acquired_deg=self.settings.acquired_deg,
        )

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            observer=self.observer,
            orientation=self.orientation,
            equatorial=self.equatorial,
            target=self.target,
            bearing=self.bearing,
            computed_at=self.computed_at,
        )

    async def run(self, hub: SensorHub) -> None:
        """Consume readings until every subscribed channel has closed."""
        async for reading in hub.readings():
            self.handle_reading(reading)
