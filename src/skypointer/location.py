"""Location fixes, magnetic declination, address geocoding and local time parsing."""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from datetime import datetime

import httpx
from pytz import timezone, utc
from timezonefinder import TimezoneFinder

from skypointer.models import LocationFix, Observer, SkyPointerError

logger = logging.getLogger(__name__)

_tf = TimezoneFinder()


class LocationUnavailableError(SkyPointerError):
    """No location fix could be obtained. Terminal until the user retries."""


class GeocodingError(SkyPointerError):
    """Geocoder call failure."""


def observer_from_fix(fix: LocationFix) -> Observer:
    """Observer for a location fix; missing altitude counts as 0 m."""
    return Observer(
        lat=float(fix.latitude),
        lng=float(fix.longitude),
        elevation_m=float(fix.altitude or 0.0),
    )


def declination_from_fix(fix: LocationFix) -> float:
    """True minus magnetic heading, or 0 when the heading pair is incomplete."""
    if fix.true_heading is None or fix.magnetic_heading is None:
        return 0.0
    return float(fix.true_heading) - float(fix.magnetic_heading)


async def acquire_location(
    fetch: Callable[[], Awaitable[LocationFix]],
    timeout_s: float = 15.0,
) -> LocationFix:
    """Await a platform location fix without blocking other tasks forever.

    Raises:
        LocationUnavailableError: On timeout, denied permission or any fetch failure.
    """
    try:
        return await asyncio.wait_for(fetch(), timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        raise LocationUnavailableError(f"no location fix after {timeout_s:g}s") from exc
    except (OSError, ValueError, httpx.HTTPError) as exc:
        raise LocationUnavailableError(f"location fix failed: {exc}") from exc


VWORLD_URL = "https://api.vworld.kr/req/address"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"


def _vworld_observer(client: httpx.Client, address: str) -> Observer | None:
    """Korean address lookup: road-name form first, then the parcel (lot) form."""
    for addr_type in ("ROAD", "PARCEL"):
        resp = client.get(
            VWORLD_URL,
            params={
                "service": "address",
                "request": "getCoord",
                "version": "2.0",
                "crs": "EPSG:4326",
                "format": "json",
                "type": addr_type,
                "address": address,
                "key": os.environ["VWORLD_API_KEY"],
            },
        )
        resp.raise_for_status()
        body = resp.json()["response"]
        if body["status"] == "OK":
            point = body["result"]["point"]
            return Observer(lat=float(point["y"]), lng=float(point["x"]))
        if body["status"] != "NOT_FOUND":
            raise GeocodingError(f"vworld error: {body.get('error', body['status'])}")
    return None


def _nominatim_observer(client: httpx.Client, address: str) -> Observer | None:
    resp = client.get(NOMINATIM_URL, params={"q": address, "format": "json", "limit": 1})
    resp.raise_for_status()
    hits = resp.json()
    if not hits:
        return None
    return Observer(lat=float(hits[0]["lat"]), lng=float(hits[0]["lon"]))


def _lookups(lang: str) -> list[tuple[str, Callable[[httpx.Client, str], Observer | None]]]:
    lookups = [("nominatim", _nominatim_observer)]
    if lang == "ko" and os.environ.get("VWORLD_API_KEY"):
        lookups.insert(0, ("vworld", _vworld_observer))
    return lookups


def geocode_observer(
    address: str,
    lang: str = "ko",
    transport: httpx.BaseTransport | None = None,
) -> Observer:
    """Observer for a free-text address, used when no device fix is available.

    Korean lookups with VWORLD_API_KEY set go to vworld first; Nominatim
    (OpenStreetMap) answers everything else and is the fallback when vworld
    fails or finds nothing.

    Raises:
        GeocodingError: When every geocoder failed or none found the address.
    """
    failure = None
    with httpx.Client(
        timeout=10,
        headers={"User-Agent": "SkyPointer/0.1"},
        transport=transport,
    ) as client:
        for name, lookup in _lookups(lang):
            try:
                observer = lookup(client, address)
            except (GeocodingError, httpx.HTTPError, KeyError, ValueError) as exc:
                logger.warning("%s lookup failed for %r: %s", name, address, exc)
                failure = exc
                continue
            if observer is not None:
                logger.info("Geocoded %r via %s: %s", address, name, observer)
                return observer
    if failure is not None:
        raise GeocodingError(f"geocoder request failed: {failure}") from failure
    raise GeocodingError(f"Address not found: {address}")


def parse_local_time(when: str, observer: Observer) -> datetime:
    """Local wall-clock "YYYY-MM-DD HH:MM" at the observer's location → UTC datetime.

    Raises:
        ValueError: On a malformed string or a location without a timezone.
    """
    dt = datetime.strptime(when, "%Y-%m-%d %H:%M")
    tz_str = _tf.timezone_at(lat=observer.lat, lng=observer.lng)
    if tz_str is None:
        raise ValueError(f"Timezone not found: lat={observer.lat}, lng={observer.lng}")
    local_tz = timezone(tz_str)
    return local_tz.localize(dt, is_dst=None).astimezone(utc)
