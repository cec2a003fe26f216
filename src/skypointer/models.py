"""Data model definitions — explicit boundaries between sensor, compute, and display layers."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SkyPointerError(Exception):
    """Base class for recoverable skypointer failures."""


@dataclass(frozen=True)
class Observer:
    """Geographic reference point for sky-coordinate transforms."""

    lat: float  # Latitude (decimal degrees, -90..90)
    lng: float  # Longitude (decimal degrees, -180..180)
    elevation_m: float = 0.0  # Height above the WGS84 ellipsoid (meters)

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"longitude out of range: {self.lng}")


@dataclass(frozen=True)
class LocationFix:
    """Raw platform location input. Not yet validated."""

    latitude: float
    longitude: float
    altitude: float | None = None  # meters, None when the platform omits it
    true_heading: float | None = None  # one-shot compass pair, degrees
    magnetic_heading: float | None = None


class SensorChannel(Enum):
    """The three IMU channels consumed by the fusion engine."""

    ACCELEROMETER = "accel"  # m/s²
    GYROSCOPE = "gyro"  # rad/s
    MAGNETOMETER = "mag"  # µT


@dataclass(frozen=True)
class SensorReading:
    """A single 3-axis sample in device-native axes and units."""

    channel: SensorChannel
    x: float
    y: float
    z: float
    timestamp: float = 0.0  # seconds, producer clock

    @property
    def vector(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class AttitudeSample:
    """Latest reading of every channel, as handed to one fusion step."""

    accel: SensorReading
    gyro: SensorReading
    mag: SensorReading


@dataclass(frozen=True)
class OrientationEstimate:
    """Filtered pointing direction in the horizontal frame."""

    az_deg: float  # Azimuth, clockwise from north [0, 360)
    alt_deg: float  # Altitude above the horizon [-90, 90]


@dataclass(frozen=True)
class EquatorialCoordinate:
    """Right ascension / declination pair."""

    ra_hours: float  # [0, 24)
    dec_deg: float  # [-90, 90]


@dataclass(frozen=True)
class CelestialObject:
    """A searchable sky object: catalog star or solar-system body."""

    id: str
    proper: str | None  # Proper name ("Sirius", "화성")
    name: str | None  # Catalog / canonical name ("Mars", "Alp CMa")
    magnitude: float | None  # Apparent magnitude, None when unknown
    ra_hours: float
    dec_deg: float
    is_solar_system_body: bool = False
    color_index: float | None = None
    spectral_type: str | None = None

    @property
    def display_name(self) -> str:
        return self.proper or self.name or self.id

    @property
    def coordinate(self) -> EquatorialCoordinate:
        return EquatorialCoordinate(ra_hours=self.ra_hours, dec_deg=self.dec_deg)


@dataclass(frozen=True)
class BearingResult:
    """Offset from the current pointing to the selected target."""

    ra_offset_deg: float  # (-180, 180]
    dec_offset_deg: float
    distance_deg: float  # Euclidean in degree space, not great-circle
    direction_deg: float  # atan2(dDec, dRA) in [0, 360)
    aligned: bool  # Close enough that no guidance is shown
    acquired: bool  # Inside the target circle


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the display layer reads. Fully computed state."""

    observer: Observer | None
    orientation: OrientationEstimate
    equatorial: EquatorialCoordinate | None
    target: CelestialObject | None
    bearing: BearingResult | None
    computed_at: datetime | None
