"""Runtime settings read from SKYPOINTER_* environment variables.

Entry points call ``load_dotenv()`` first, so a ``.env`` file in the working
directory is honoured the same way as real environment variables.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CATALOG_PATH = _ROOT / "resources" / "stars.json"

FRAMES = ("date", "j2000")


@dataclass(frozen=True)
class Settings:
    """Tunable constants for fusion, search, and guidance."""

    beta: float = 0.4  # Madgwick gain
    smoothing_window: int = 5  # Moving-average length per output channel
    hysteresis_deg: float = 0.3  # Minimum change before publishing
    accel_interval_ms: int = 20
    gyro_interval_ms: int = 20
    mag_interval_ms: int = 40
    aligned_deg: float = 0.5  # Compass hidden at or below this distance
    acquired_deg: float = 3.0  # Target drawn inside the circle at or below this
    frame: str = "date"  # "date" (equator of date) or "j2000"
    search_limit: int = 15
    star_scan_limit: int = 20
    catalog_path: Path = DEFAULT_CATALOG_PATH
    lang: str = "ko"
    location_timeout_s: float = 15.0

    @property
    def sample_period_s(self) -> float:
        """Filter integration step, tied to the accel/gyro delivery interval."""
        return self.accel_interval_ms / 1000.0


def _read(env: Mapping[str, str], key: str, cast, default):
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{key}: invalid value {raw!r}") from exc


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Args:
        env: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        Settings with every unset variable at its default.

    Raises:
        ValueError: If a variable cannot be parsed or is out of range.
    """
    env = os.environ if env is None else env
    d = Settings()
    settings = Settings(
        beta=_read(env, "SKYPOINTER_BETA", float, d.beta),
        smoothing_window=_read(env, "SKYPOINTER_SMOOTHING_WINDOW", int, d.smoothing_window),
        hysteresis_deg=_read(env, "SKYPOINTER_HYSTERESIS_DEG", float, d.hysteresis_deg),
        accel_interval_ms=_read(env, "SKYPOINTER_ACCEL_INTERVAL_MS", int, d.accel_interval_ms),
        gyro_interval_ms=_read(env, "SKYPOINTER_GYRO_INTERVAL_MS", int, d.gyro_interval_ms),
        mag_interval_ms=_read(env, "SKYPOINTER_MAG_INTERVAL_MS", int, d.mag_interval_ms),
        aligned_deg=_read(env, "SKYPOINTER_ALIGNED_DEG", float, d.aligned_deg),
        acquired_deg=_read(env, "SKYPOINTER_ACQUIRED_DEG", float, d.acquired_deg),
        frame=_read(env, "SKYPOINTER_FRAME", str.lower, d.frame),
        search_limit=_read(env, "SKYPOINTER_SEARCH_LIMIT", int, d.search_limit),
        star_scan_limit=_read(env, "SKYPOINTER_STAR_SCAN_LIMIT", int, d.star_scan_limit),
        catalog_path=_read(env, "SKYPOINTER_CATALOG", Path, d.catalog_path),
        lang=_read(env, "SKYPOINTER_LANG", str.lower, d.lang),
        location_timeout_s=_read(
            env, "SKYPOINTER_LOCATION_TIMEOUT_S", float, d.location_timeout_s
        ),
    )
    if settings.frame not in FRAMES:
        raise ValueError(f"SKYPOINTER_FRAME: expected one of {FRAMES}, got {settings.frame!r}")
    if settings.smoothing_window < 1:
        raise ValueError("SKYPOINTER_SMOOTHING_WINDOW: must be >= 1")
    if min(settings.accel_interval_ms, settings.gyro_interval_ms, settings.mag_interval_ms) <= 0:
        raise ValueError("SKYPOINTER_*_INTERVAL_MS: must be > 0")
    return settings
