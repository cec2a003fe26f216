"""Ranked name search over solar-system bodies and the star catalog."""

import logging
from datetime import datetime
from typing import Protocol

from skypointer.catalog import SolarSystemBody, solar_system_bodies
from skypointer.ephemeris import ensure_utc
from skypointer.i18n import LANGUAGES
from skypointer.models import CelestialObject, EquatorialCoordinate, Observer

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MISSING_MAGNITUDE = 100.0


class PositionSource(Protocol):
    def position_of(
        self, body_name: str | None, observer: Observer | None, instant: datetime | None = None
    ) -> EquatorialCoordinate | None: ...


def _matches(obj: CelestialObject, needle: str) -> bool:
    proper = (obj.proper or "").lower()
    name = (obj.name or "").lower()
    return needle in proper or needle in name


def _reserved_names() -> tuple[frozenset[str], frozenset[str]]:
    """Lower-cased canonical and proper names of every body, in every language."""
    canonical = frozenset(body.canonical.lower() for body in SolarSystemBody)
    proper = frozenset(
        body.proper_name(lang).lower() for body in SolarSystemBody for lang in LANGUAGES
    )
    return canonical, proper


def sort_key(obj: CelestialObject) -> float:
    return MISSING_MAGNITUDE if obj.magnitude is None else obj.magnitude


class SearchEngine:
    """Substring search ranked by brightness.

    Args:
        stars: Resident star catalog (may be empty after a load failure).
        positions: Source of live body positions.
        lang: Language of body proper names.
        limit: Maximum results returned.
        star_scan_limit: Maximum star matches collected before ranking.
    """

    def __init__(
        self,
        stars: tuple[CelestialObject, ...],
        positions: PositionSource,
        lang: str = "ko",
        limit: int = 15,
        star_scan_limit: int = 20,
    ) -> None:
        self.stars = stars
        self.positions = positions
        self.lang = lang
        self.limit = limit
        self.star_scan_limit = star_scan_limit
        self._reserved_canonical, self._reserved_proper = _reserved_names()

    def search(
        self,
        query: str | None,
        observer: Observer | None,
        instant: datetime | None = None,
    ) -> tuple[CelestialObject, ...]:
        """Return up to ``limit`` matches, brightest first.

        Queries shorter than two characters and a missing observer return an
        empty tuple without touching the catalog.
        """
        if not query or len(query) < MIN_QUERY_LENGTH or observer is None:
            return ()

        needle = query.lower()
        instant = ensure_utc(instant)
        results: list[CelestialObject] = []

        try:
            results.extend(self._search_bodies(needle, observer, instant))
        except Exception:
            logger.exception("Solar-system search failed for %r", query)

        try:
            results.extend(self._search_stars(needle))
        except Exception:
            logger.exception("Star search failed for %r", query)

        if not results:
            logger.warning("No matches for %r", query)
            return ()

        # sorted() is stable: bodies stay ahead of stars at equal magnitude
        return tuple(sorted(results, key=sort_key)[: self.limit])

    def _search_bodies(
        self, needle: str, observer: Observer, instant: datetime
    ) -> list[CelestialObject]:
        found: list[CelestialObject] = []
        for body in solar_system_bodies(self.lang):
            if not _matches(body, needle):
                continue
            try:
                position = self.positions.position_of(body.name, observer, instant)
            except Exception:
                logger.exception("Position computation failed for %s", body.name)
                continue
            if position is None:
                continue
            found.append(
                CelestialObject(
                    id=body.id,
                    proper=body.proper,
                    name=body.name,
                    magnitude=body.magnitude,
                    ra_hours=position.ra_hours,
                    dec_deg=position.dec_deg,
                    is_solar_system_body=True,
                )
            )
        return found

    def _is_body_alias(self, star: CelestialObject) -> bool:
        names = {(star.name or "").lower(), (star.proper or "").lower()} - {""}
        return bool(names & (self._reserved_canonical | self._reserved_proper))

    def _search_stars(self, needle: str) -> list[CelestialObject]:
        found: list[CelestialObject] = []
        for star in self.stars:
            if self._is_body_alias(star) or not _matches(star, needle):
                continue
            found.append(star)
            if len(found) >= self.star_scan_limit:
                break
        return found
