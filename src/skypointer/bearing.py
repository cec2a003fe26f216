"""Guidance from the current pointing to the selected target."""

import math

from skypointer.models import BearingResult, EquatorialCoordinate

ALIGNED_DEG = 0.5
ACQUIRED_DEG = 3.0


def wrap_ra_offset(delta_deg: float) -> float:
    """Fold an RA difference into (-180, 180] with a single correction."""
    if delta_deg > 180.0:
        delta_deg -= 360.0
    elif delta_deg <= -180.0:
        delta_deg += 360.0
    return delta_deg


def bearing_to(
    target: EquatorialCoordinate,
    current: EquatorialCoordinate,
    aligned_deg: float = ALIGNED_DEG,
    acquired_deg: float = ACQUIRED_DEG,
) -> BearingResult:
    """Offset, distance and screen direction toward ``target``.

    Distance is Euclidean in (RA degrees, Dec degrees) space, which is only a
    good approximation for small offsets away from the poles.
    """
    ra_offset = wrap_ra_offset((target.ra_hours - current.ra_hours) * 15.0)
    dec_offset = target.dec_deg - current.dec_deg
    distance = math.hypot(ra_offset, dec_offset)
    direction = math.degrees(math.atan2(dec_offset, ra_offset)) % 360.0
    if direction >= 360.0:
        direction = 0.0
    return BearingResult(
        ra_offset_deg=ra_offset,
        dec_offset_deg=dec_offset,
        distance_deg=distance,
        direction_deg=direction,
        aligned=distance <= aligned_deg,
        acquired=distance <= acquired_deg,
    )
