"""Attitude fusion: accelerometer, gyroscope and magnetometer to a stable azimuth/altitude.

Pipeline per sensor arrival:

1. Store the reading as the latest for its channel.
2. Once all three channels have been seen, remap device axes to the filter
   frame and run one Madgwick step.
3. Convert heading/pitch to azimuth/altitude degrees (with the session's
   magnetic declination).
4. Smooth each output with a fixed-window moving average.
5. Publish only when the smoothed pair moved past the hysteresis threshold.

Reference: S. Madgwick (2010) - An efficient orientation filter for inertial
and inertial/magnetic sensor arrays.
"""

import logging
import math
from collections import deque
from collections.abc import Callable, Sequence

import numpy as np

from skypointer.models import (
    AttitudeSample,
    OrientationEstimate,
    SensorChannel,
    SensorReading,
)

logger = logging.getLogger(__name__)

Listener = Callable[[OrientationEstimate], None]


def remap_axes(x: float, y: float, z: float) -> tuple[float, float, float]:
    """Device axes -> filter axes: (x, y, z) -> (-z, x, -y).

    Applied identically to all three channels. Any other mapping swaps or
    inverts azimuth and altitude.
    """
    return (-z, x, -y)


def to_azimuth_degrees(heading_rad: float, declination_deg: float = 0.0) -> float:
    """Heading in radians to true azimuth in [0, 360)."""
    az = (math.degrees(heading_rad) % 360.0 + declination_deg + 360.0) % 360.0
    # -tiny % 360 rounds up to 360.0
    return 0.0 if az >= 360.0 else az


def to_altitude_degrees(pitch_rad: float) -> float:
    """Pitch in radians to altitude in [-90, 90]."""
    return max(-90.0, min(90.0, math.degrees(pitch_rad)))


def circular_diff(a: float, b: float) -> float:
    """Smallest angle between two azimuths, in [0, 180]."""
    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


class MovingAverage:
    """Arithmetic mean over the last ``window`` values."""

    def __init__(self, window: int = 5) -> None:
        if window < 1:
            raise ValueError("window must be >= 1")
        self._values: deque[float] = deque(maxlen=window)

    def __len__(self) -> int:
        return len(self._values)

    def update(self, value: float) -> float:
        self._values.append(float(value))
        return math.fsum(self._values) / len(self._values)

    def reset(self) -> None:
        self._values.clear()


class MadgwickFilter:
    """Gradient-descent orientation filter (MARG and IMU-only variants).

    The quaternion is stored as [w, x, y, z] and starts at the identity.
    """

    def __init__(self, beta: float = 0.4, sample_period: float = 0.02) -> None:
        self.beta = float(beta)
        self.sample_period = float(sample_period)
        self.q = np.array([1.0, 0.0, 0.0, 0.0])

    def reset(self) -> None:
        self.q = np.array([1.0, 0.0, 0.0, 0.0])

    def update(
        self,
        gyro: Sequence[float],
        accel: Sequence[float],
        mag: Sequence[float],
        dt: float | None = None,
    ) -> np.ndarray:
        """Advance one step.

        Args:
            gyro: Angular rate (rad/s), filter axes.
            accel: Acceleration (any unit, normalized internally), filter axes.
            mag: Magnetic field (any unit, normalized internally), filter axes.
                An all-zero vector selects the IMU-only update.
            dt: Step in seconds. Defaults to ``sample_period``.

        Returns:
            The updated quaternion [w, x, y, z].
        """
        dt = self.sample_period if dt is None else dt
        mx, my, mz = (float(v) for v in mag)
        if mx == 0.0 and my == 0.0 and mz == 0.0:
            return self.update_imu(gyro, accel, dt)

        q0, q1, q2, q3 = (float(v) for v in self.q)
        gx, gy, gz = (float(v) for v in gyro)
        ax, ay, az = (float(v) for v in accel)

        q_dot = 0.5 * np.array([
            -q1 * gx - q2 * gy - q3 * gz,
            q0 * gx + q2 * gz - q3 * gy,
            q0 * gy - q1 * gz + q3 * gx,
            q0 * gz + q1 * gy - q2 * gx,
        ])

        a_norm = math.sqrt(ax * ax + ay * ay + az * az)
        m_norm = math.sqrt(mx * mx + my * my + mz * mz)
        if a_norm > 0.0:
            ax, ay, az = ax / a_norm, ay / a_norm, az / a_norm
            mx, my, mz = mx / m_norm, my / m_norm, mz / m_norm

            _2q0mx = 2.0 * q0 * mx
            _2q0my = 2.0 * q0 * my
            _2q0mz = 2.0 * q0 * mz
            _2q1mx = 2.0 * q1 * mx
            _2q0 = 2.0 * q0
            _2q1 = 2.0 * q1
            _2q2 = 2.0 * q2
            _2q3 = 2.0 * q3
            _2q0q2 = 2.0 * q0 * q2
            _2q2q3 = 2.0 * q2 * q3
            q0q0 = q0 * q0
            q0q1 = q0 * q1
            q0q2 = q0 * q2
            q0q3 = q0 * q3
            q1q1 = q1 * q1
            q1q2 = q1 * q2
            q1q3 = q1 * q3
            q2q2 = q2 * q2
            q2q3 = q2 * q3
            q3q3 = q3 * q3

            # Reference direction of Earth's magnetic field
            hx = (mx * q0q0 - _2q0my * q3 + _2q0mz * q2 + mx * q1q1 + _2q1 * my * q2
                  + _2q1 * mz * q3 - mx * q2q2 - mx * q3q3)
            hy = (_2q0mx * q3 + my * q0q0 - _2q0mz * q1 + _2q1mx * q2 - my * q1q1
                  + my * q2q2 + _2q2 * mz * q3 - my * q3q3)
            _2bx = math.sqrt(hx * hx + hy * hy)
            _2bz = (-_2q0mx * q2 + _2q0my * q1 + mz * q0q0 + _2q1mx * q3 - mz * q1q1
                    + _2q2 * my * q3 - mz * q2q2 + mz * q3q3)
            _4bx = 2.0 * _2bx
            _4bz = 2.0 * _2bz

            # Objective function residuals (gravity, then field)
            fa_x = 2.0 * q1q3 - _2q0q2 - ax
            fa_y = 2.0 * q0q1 + _2q2q3 - ay
            fa_z = 1.0 - 2.0 * q1q1 - 2.0 * q2q2 - az
            fm_x = _2bx * (0.5 - q2q2 - q3q3) + _2bz * (q1q3 - q0q2) - mx
            fm_y = _2bx * (q1q2 - q0q3) + _2bz * (q0q1 + q2q3) - my
            fm_z = _2bx * (q0q2 + q1q3) + _2bz * (0.5 - q1q1 - q2q2) - mz

            step = np.array([
                -_2q2 * fa_x + _2q1 * fa_y - _2bz * q2 * fm_x
                + (-_2bx * q3 + _2bz * q1) * fm_y + _2bx * q2 * fm_z,
                _2q3 * fa_x + _2q0 * fa_y - 4.0 * q1 * fa_z + _2bz * q3 * fm_x
                + (_2bx * q2 + _2bz * q0) * fm_y + (_2bx * q3 - _4bz * q1) * fm_z,
                -_2q0 * fa_x + _2q3 * fa_y - 4.0 * q2 * fa_z
                + (-_4bx * q2 - _2bz * q0) * fm_x + (_2bx * q1 + _2bz * q3) * fm_y
                + (_2bx * q0 - _4bz * q2) * fm_z,
                _2q1 * fa_x + _2q2 * fa_y + (-_4bx * q3 + _2bz * q1) * fm_x
                + (-_2bx * q0 + _2bz * q2) * fm_y + _2bx * q1 * fm_z,
            ])
            q_dot -= self.beta * _unit(step)

        return self._integrate(q_dot, dt)

    def update_imu(self, gyro: Sequence[float], accel: Sequence[float], dt: float | None = None) -> np.ndarray:
        """Accelerometer + gyroscope step; heading drifts with the gyro."""
        dt = self.sample_period if dt is None else dt
        q0, q1, q2, q3 = (float(v) for v in self.q)
        gx, gy, gz = (float(v) for v in gyro)
        ax, ay, az = (float(v) for v in accel)

        q_dot = 0.5 * np.array([
            -q1 * gx - q2 * gy - q3 * gz,
            q0 * gx + q2 * gz - q3 * gy,
            q0 * gy - q1 * gz + q3 * gx,
            q0 * gz + q1 * gy - q2 * gx,
        ])

        a_norm = math.sqrt(ax * ax + ay * ay + az * az)
        if a_norm > 0.0:
            ax, ay, az = ax / a_norm, ay / a_norm, az / a_norm
            q0q0, q1q1, q2q2, q3q3 = q0 * q0, q1 * q1, q2 * q2, q3 * q3
            step = np.array([
                4.0 * q0 * q2q2 + 2.0 * q2 * ax + 4.0 * q0 * q1q1 - 2.0 * q1 * ay,
                4.0 * q1 * q3q3 - 2.0 * q3 * ax + 4.0 * q0q0 * q1 - 2.0 * q0 * ay
                - 4.0 * q1 + 8.0 * q1 * q1q1 + 8.0 * q1 * q2q2 + 4.0 * q1 * az,
                4.0 * q0q0 * q2 + 2.0 * q0 * ax + 4.0 * q2 * q3q3 - 2.0 * q3 * ay
                - 4.0 * q2 + 8.0 * q2 * q1q1 + 8.0 * q2 * q2q2 + 4.0 * q2 * az,
                4.0 * q1q1 * q3 - 2.0 * q1 * ax + 4.0 * q2q2 * q3 - 2.0 * q2 * ay,
            ])
            q_dot -= self.beta * _unit(step)

        return self._integrate(q_dot, dt)

    def _integrate(self, q_dot: np.ndarray, dt: float) -> np.ndarray:
        q = self.q + q_dot * dt
        norm = np.linalg.norm(q)
        if norm > 0.0:
            self.q = q / norm
        return self.q

    def euler_angles(self) -> tuple[float, float, float]:
        """(heading, pitch, roll) in radians."""
        w, x, y, z = (float(v) for v in self.q)
        ww, xx, yy, zz = w * w, x * x, y * y, z * z
        heading = math.atan2(2.0 * (x * y + z * w), xx - yy - zz + ww)
        pitch = -math.asin(max(-1.0, min(1.0, 2.0 * (x * z - y * w))))
        roll = math.atan2(2.0 * (y * z + x * w), -xx - yy + zz + ww)
        return heading, pitch, roll


def _unit(v: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    return v / norm if norm > 0.0 else v


class AttitudeFusionEngine:
    """Owns every piece of fusion state: latest samples, filter, smoothing, last publication.

    Args:
        beta: Madgwick gain.
        sample_period: Filter step in seconds.
        declination_deg: True minus magnetic heading, fixed for the session.
        window: Moving-average length for azimuth and altitude.
        threshold_deg: Hysteresis for publishing a new estimate.
    """

    def __init__(
        self,
        beta: float = 0.4,
        sample_period: float = 0.02,
        declination_deg: float = 0.0,
        window: int = 5,
        threshold_deg: float = 0.3,
    ) -> None:
        self.declination_deg = float(declination_deg)
        self.threshold_deg = float(threshold_deg)
        self.filter = MadgwickFilter(beta=beta, sample_period=sample_period)
        self._window = window
        self._latest: dict[SensorChannel, SensorReading] = {}
        self._azimuth = MovingAverage(window)
        self._altitude = MovingAverage(window)
        self._published: OrientationEstimate | None = None
        self._listeners: list[Listener] = []

    @classmethod
    def from_settings(cls, settings, declination_deg: float = 0.0) -> "AttitudeFusionEngine":
        return cls(
            beta=settings.beta,
            sample_period=settings.sample_period_s,
            declination_deg=declination_deg,
            window=settings.smoothing_window,
            threshold_deg=settings.hysteresis_deg,
        )

    @property
    def published(self) -> OrientationEstimate | None:
        """Last estimate handed to listeners."""
        return self._published

    def reset(self) -> None:
        """Back to filter default with no samples and nothing published."""
        self.filter.reset()
        self._latest.clear()
        self._azimuth.reset()
        self._altitude.reset()
        self._published = None

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def sample(self) -> AttitudeSample | None:
        """Latest reading of each channel, or None while any is missing."""
        try:
            return AttitudeSample(
                accel=self._latest[SensorChannel.ACCELEROMETER],
                gyro=self._latest[SensorChannel.GYROSCOPE],
                mag=self._latest[SensorChannel.MAGNETOMETER],
            )
        except KeyError:
            return None

    def update(self, reading: SensorReading) -> OrientationEstimate | None:
        """Consume one reading from any channel.

        Returns:
            The new estimate if it was published, otherwise None (incomplete
            channels or change within the hysteresis band).
        """
        self._latest[reading.channel] = reading
        sample = self.sample()
        if sample is None:
            return None

        self.filter.update(
            gyro=remap_axes(*sample.gyro.vector),
            accel=remap_axes(*sample.accel.vector),
            mag=remap_axes(*sample.mag.vector),
        )
        heading, pitch, _ = self.filter.euler_angles()

        az = self._azimuth.update(to_azimuth_degrees(heading, self.declination_deg))
        alt = self._altitude.update(to_altitude_degrees(pitch))
        estimate = OrientationEstimate(az_deg=az % 360.0, alt_deg=alt)

        if not self.should_publish(estimate):
            return None
        self._published = estimate
        for listener in list(self._listeners):
            listener(estimate)
        return estimate

    def should_publish(self, estimate: OrientationEstimate) -> bool:
        previous = self._published
        if previous is None:
            return True
        az_diff = circular_diff(estimate.az_deg, previous.az_deg)
        alt_diff = abs(estimate.alt_deg - previous.alt_deg)
        return az_diff > self.threshold_deg or alt_diff > self.threshold_deg
