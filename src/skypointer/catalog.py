"""Static star table and the fixed solar-system body table."""

import asyncio
import json
import logging
import math
from enum import Enum
from functools import lru_cache
from pathlib import Path

from skypointer.config import DEFAULT_CATALOG_PATH
from skypointer.i18n import t
from skypointer.models import CelestialObject, SkyPointerError

logger = logging.getLogger(__name__)


class CatalogLoadError(SkyPointerError):
    """Star catalog asset missing or malformed."""


class SolarSystemBody(Enum):
    """Closed set of bodies whose positions are computed live.

    Each member carries (canonical name, skyfield ephemeris key, nominal magnitude).
    """

    SUN = ("Sun", "sun", -26.7)
    MOON = ("Moon", "moon", -12.6)
    MERCURY = ("Mercury", "mercury", -0.5)
    VENUS = ("Venus", "venus", -4.4)
    MARS = ("Mars", "mars barycenter", 0.7)
    JUPITER = ("Jupiter", "jupiter barycenter", -2.2)
    SATURN = ("Saturn", "saturn barycenter", 0.5)
    URANUS = ("Uranus", "uranus barycenter", 5.6)
    NEPTUNE = ("Neptune", "neptune barycenter", 7.8)
    PLUTO = ("Pluto", "pluto barycenter", 14.3)

    def __init__(self, canonical: str, ephemeris_key: str, magnitude: float) -> None:
        self.canonical = canonical
        self.ephemeris_key = ephemeris_key
        self.magnitude = magnitude

    @property
    def id(self) -> str:
        return self.name.lower()

    def proper_name(self, lang: str) -> str:
        return t(f"body_{self.id}", lang)


def solar_system_bodies(lang: str = "ko") -> tuple[CelestialObject, ...]:
    """Return the 10 solar-system bodies without positions (ra/dec left at 0).

    Args:
        lang: Language of the proper name ('ko' or 'en').
    """
    return tuple(
        CelestialObject(
            id=body.id,
            proper=body.proper_name(lang),
            name=body.canonical,
            magnitude=body.magnitude,
            ra_hours=0.0,
            dec_deg=0.0,
            is_solar_system_body=True,
        )
        for body in SolarSystemBody
    )


def _optional_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return None if math.isnan(f) else f


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_record(index: int, record: object) -> CelestialObject:
    if not isinstance(record, dict):
        raise CatalogLoadError(f"record {index}: expected an object, got {type(record).__name__}")
    ra = _optional_float(record.get("ra"))
    dec = _optional_float(record.get("dec"))
    if ra is None or dec is None:
        raise CatalogLoadError(f"record {index}: ra/dec missing or not numeric")
    proper = _optional_text(record.get("proper"))
    name = _optional_text(record.get("name"))
    raw_id = record.get("id")
    return CelestialObject(
        id=str(raw_id) if raw_id is not None else (proper or name or str(index)),
        proper=proper,
        name=name,
        magnitude=_optional_float(record.get("mag")),
        ra_hours=ra,
        dec_deg=dec,
        is_solar_system_body=False,
        color_index=_optional_float(record.get("ci")),
        spectral_type=_optional_text(record.get("spect")),
    )


@lru_cache(maxsize=4)
def load_star_catalog(path: Path | None = None) -> tuple[CelestialObject, ...]:
    """Parse the JSON star asset. Cached per path for the process lifetime.

    File format: a single JSON array of
    ``{"id", "proper", "name", "ra", "dec", "mag", "ci", "spect"}`` records,
    as written by ``skypointer.convert``.

    Args:
        path: Asset location. Defaults to ``resources/stars.json``.

    Returns:
        Tuple of CelestialObject in file order.

    Raises:
        CatalogLoadError: If the file is missing, not JSON, or a record is malformed.
    """
    path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        raise CatalogLoadError(f"catalog not found: {path}") from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CatalogLoadError(f"catalog unreadable: {path}: {exc}") from exc

    if not isinstance(data, list):
        raise CatalogLoadError(f"catalog must be a JSON array: {path}")

    stars = tuple(_parse_record(i, record) for i, record in enumerate(data))
    logger.info("Loaded %d stars from %s", len(stars), path)
    return stars


class CatalogStore:
    """Resident star catalog plus the body table.

    A failed load leaves ``stars`` empty and records the error; the body table
    stays usable so solar-system search keeps working.
    """

    def __init__(self, stars: tuple[CelestialObject, ...] = (), error: Exception | None = None):
        self.stars = stars
        self.error = error

    @property
    def available(self) -> bool:
        return self.error is None

    @classmethod
    def open(cls, path: Path | None = None) -> "CatalogStore":
        try:
            return cls(stars=load_star_catalog(path))
        except CatalogLoadError as exc:
            logger.error("Star catalog unavailable, continuing with solar-system bodies only: %s", exc)
            return cls(stars=(), error=exc)

    @classmethod
    async def open_async(cls, path: Path | None = None) -> "CatalogStore":
        """``open`` on a worker thread, so sensor tasks keep running during the parse."""
        return await asyncio.to_thread(cls.open, path)

    def bodies(self, lang: str = "ko") -> tuple[CelestialObject, ...]:
        return solar_system_bodies(lang)
