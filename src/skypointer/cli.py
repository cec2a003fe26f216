"""
Command-line interface for skypointer.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path

import click
from dotenv import load_dotenv

from skypointer.bearing import bearing_to
from skypointer.catalog import CatalogStore
from skypointer.config import Settings, load_settings
from skypointer.convert import convert_hyg_csv
from skypointer.ephemeris import EphemerisService
from skypointer.frames import to_equatorial
from skypointer.i18n import t
from skypointer.location import (
    GeocodingError,
    LocationUnavailableError,
    geocode_observer,
    parse_local_time,
)
from skypointer.models import (
    CelestialObject,
    LocationFix,
    Observer,
    OrientationEstimate,
    SensorChannel,
)
from skypointer.search import SearchEngine
from skypointer.sensors import ReplaySource, SensorHub, load_sensor_log
from skypointer.session import SkySession

logger = logging.getLogger(__name__)


def _observer_options(func):
    func = click.option("--when", help='Local time "YYYY-MM-DD HH:MM" (default: now)')(func)
    func = click.option("--address", help="Geocode this address instead of --lat/--lng")(func)
    func = click.option("--elevation", type=float, default=0.0, show_default=True, help="Meters")(func)
    func = click.option("--lng", type=float, help="Longitude, degrees east")(func)
    func = click.option("--lat", type=float, help="Latitude, degrees north")(func)
    return func


def _resolve(
    settings: Settings,
    lat: float | None,
    lng: float | None,
    elevation: float,
    address: str | None,
    when: str | None,
) -> tuple[Observer, datetime | None]:
    if address:
        try:
            observer = geocode_observer(address, lang=settings.lang)
        except GeocodingError as exc:
            raise click.ClickException(str(exc)) from exc
    elif lat is not None and lng is not None:
        try:
            observer = Observer(lat=lat, lng=lng, elevation_m=elevation)
        except ValueError as exc:
            raise click.BadParameter(str(exc)) from exc
    else:
        raise click.UsageError("either --address or both --lat and --lng are required")

    instant = None
    if when:
        try:
            instant = parse_local_time(when, observer)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--when") from exc
    return observer, instant


def _search_engine(settings: Settings) -> SearchEngine:
    catalog = CatalogStore.open(settings.catalog_path)
    if not catalog.available:
        click.echo(t("error_catalog", settings.lang), err=True)
    return SearchEngine(
        stars=catalog.stars,
        positions=EphemerisService(frame=settings.frame),
        lang=settings.lang,
        limit=settings.search_limit,
        star_scan_limit=settings.star_scan_limit,
    )


def _format_object(obj: CelestialObject) -> str:
    mag = "  ?  " if obj.magnitude is None else f"{obj.magnitude:5.2f}"
    marker = "*" if obj.is_solar_system_body else " "
    return f"{marker} {obj.display_name:<20} mag {mag}  RA {obj.ra_hours:6.3f}h  Dec {obj.dec_deg:+7.3f}°"


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """SkyPointer - point a phone at the sky, find what you are looking for."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        ctx.obj = load_settings()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


@main.command()
@click.argument("query")
@_observer_options
@click.pass_obj
def search(settings: Settings, query, lat, lng, elevation, address, when) -> None:
    """Search bodies and stars by name, brightest first."""
    observer, instant = _resolve(settings, lat, lng, elevation, address, when)
    results = _search_engine(settings).search(query, observer, instant)
    if not results:
        click.echo(t("search_empty", settings.lang))
        return
    for obj in results:
        click.echo(_format_object(obj))


@main.command()
@click.argument("body")
@_observer_options
@click.pass_obj
def locate(settings: Settings, body, lat, lng, elevation, address, when) -> None:
    """Live RA/Dec of a solar-system body."""
    observer, instant = _resolve(settings, lat, lng, elevation, address, when)
    position = EphemerisService(frame=settings.frame).position_of(body, observer, instant)
    if position is None:
        raise click.ClickException(f"no position for {body!r}")
    click.echo(f"{body}: RA {position.ra_hours:.4f}h  Dec {position.dec_deg:+.4f}°")


@main.command()
@click.argument("azimuth", type=float)
@click.argument("altitude", type=click.FloatRange(-90.0, 90.0))
@click.option("--target", help="Object name to compute guidance toward")
@_observer_options
@click.pass_obj
def point(settings: Settings, azimuth, altitude, target, lat, lng, elevation, address, when) -> None:
    """Sky coordinates of a pointing direction, with optional guidance."""
    observer, instant = _resolve(settings, lat, lng, elevation, address, when)
    orientation = OrientationEstimate(az_deg=azimuth % 360.0, alt_deg=altitude)
    current = to_equatorial(orientation, observer, instant, frame=settings.frame)
    lang = settings.lang
    click.echo(f"{t('label_ra', lang)} {current.ra_hours:.3f}h  {t('label_dec', lang)} {current.dec_deg:+.3f}°")
    if not target:
        return

    matches = _search_engine(settings).search(target, observer, instant)
    if not matches:
        raise click.ClickException(t("search_empty", lang))
    selected = matches[0]
    result = bearing_to(
        selected.coordinate,
        current,
        aligned_deg=settings.aligned_deg,
        acquired_deg=settings.acquired_deg,
    )
    click.echo(f"{t('label_selected', lang)}: {_format_object(selected).strip()}")
    click.echo(
        f"{t('label_distance', lang)} {result.distance_deg:.2f}°  "
        f"{t('label_direction', lang)} {result.direction_deg:.1f}°"
    )
    if result.aligned:
        click.echo(t("status_aligned", lang))
    elif result.acquired:
        click.echo(t("status_acquired", lang))


@main.command()
@click.argument("log_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--true-heading", type=float, help="Compass true heading at start, degrees")
@click.option("--magnetic-heading", type=float, help="Compass magnetic heading at start, degrees")
@click.option("--realtime", is_flag=True, help="Replay at the configured sensor intervals")
@click.option("--target", help="Object name to guide toward during replay")
@_observer_options
@click.pass_obj
def replay(
    settings: Settings,
    log_path,
    true_heading,
    magnetic_heading,
    realtime,
    target,
    lat,
    lng,
    elevation,
    address,
    when,
) -> None:
    """Feed a recorded IMU log (timestamp,channel,x,y,z) through the pipeline.

    The heading pair stands in for the device's one-shot compass reading; the
    magnetic declination is their difference, or 0 when either is omitted.
    """
    observer, instant = _resolve(settings, lat, lng, elevation, address, when)
    fix = LocationFix(
        latitude=observer.lat,
        longitude=observer.lng,
        altitude=observer.elevation_m,
        true_heading=true_heading,
        magnetic_heading=magnetic_heading,
    )
    try:
        log = load_sensor_log(log_path)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    async def fetch_fix() -> LocationFix:
        return fix

    intervals = {
        SensorChannel.ACCELEROMETER: settings.accel_interval_ms / 1000.0,
        SensorChannel.GYROSCOPE: settings.gyro_interval_ms / 1000.0,
        SensorChannel.MAGNETOMETER: settings.mag_interval_ms / 1000.0,
    }

    def show(session: SkySession) -> None:
        snap = session.snapshot()
        line = f"az {snap.orientation.az_deg:6.1f}°  alt {snap.orientation.alt_deg:+5.1f}°"
        if snap.equatorial is not None:
            line += f"  RA {snap.equatorial.ra_hours:6.3f}h  Dec {snap.equatorial.dec_deg:+7.3f}°"
        if snap.bearing is not None:
            line += f"  → {snap.bearing.distance_deg:6.2f}° @ {snap.bearing.direction_deg:5.1f}°"
        click.echo(line)

    async def _run() -> None:
        hub = SensorHub()
        for channel in SensorChannel:
            source = ReplaySource(channel, log)
            if len(source) == 0:
                logger.warning("No %s readings in %s; fusion will not start", channel.value, log_path)
            hub.subscribe(source, intervals[channel] if realtime else 0.0)
        try:
            # Readings queue up on the hub while the catalog parses.
            catalog = await CatalogStore.open_async(settings.catalog_path)
            try:
                session = await SkySession.start(
                    settings,
                    catalog,
                    EphemerisService(frame=settings.frame),
                    fetch_fix,
                    instant=instant,
                )
            except LocationUnavailableError as exc:
                raise click.ClickException(t("error_location", settings.lang).format(error=exc)) from exc
            if target:
                matches = session.search(target)
                if not matches:
                    raise click.ClickException(t("search_empty", settings.lang))
                session.select(matches[0])
            # Registered after the session's own listener, so the snapshot is current.
            session.fusion.subscribe(lambda _estimate: show(session))
            await session.run(hub)
        finally:
            await hub.close()

    asyncio.run(_run())


@main.command()
@click.argument("src", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("dst", type=click.Path(dir_okay=False, path_type=Path))
def convert(src: Path, dst: Path) -> None:
    """Convert the HYG star CSV into the JSON catalog asset."""
    try:
        count = convert_hyg_csv(src, dst)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Converted {count} stars to {dst}")


if __name__ == "__main__":
    main()
