"""Wheel-odometry and gyro based pose estimation."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from .geometry import Pose2D, Quaternion, quaternion_from_yaw
from .kinematics import forward_kinematics

__all__ = [
    "START_POSE",
    "BiquadFilter",
    "BandPassFilter",
    "GyroYawEstimator",
    "OdometryEstimate",
    "PoseEstimator",
]

START_POSE = Pose2D(0.79375, 0.150, 0.0)
UPDATE_RATE_HZ = 30
ALPHA = 1.0
DEG_TO_RAD = 0.017453
CALIBRATION_SAMPLES = 100
FIRST_IMU_DT = 1.0 / 100.0


class BiquadFilter:
    """Second-order IIR filter in transposed direct form II."""

    def __init__(
        self,
        b: Sequence[float] = (0.0675, 0.0, -0.0675),
        a: Sequence[float] = (1.0, -1.1430, 0.4652),
    ) -> None:
        if len(b) != 3 or len(a) != 3:
            raise ValueError("a biquad needs three numerator and three denominator coefficients")
        self.b = tuple(b)
        self.a = tuple(a)
        self._states = [0.0, 0.0]

    def apply(self, value: float) -> float:
        """Filter one sample and return the output."""
        output = self.b[0] * value + self._states[0]
        self._states[0] = self.b[1] * value - self.a[1] * output + self._states[1]
        self._states[1] = self.b[2] * value - self.a[2] * output
        return output


class BandPassFilter:
    """Fourth-order band-pass IIR filter in direct form I."""

    def __init__(
        self,
        b: Sequence[float] = (0.0466, 0.0, -0.0932, 0.0, 0.0466),
        a: Sequence[float] = (1.0, -3.1098, 3.6996, -2.0064, 0.4306),
    ) -> None:
        if len(b) != 5 or len(a) != 5:
            raise ValueError("a fourth-order filter needs five coefficients on each side")
        self.b = tuple(b)
        self.a = tuple(a)
        self._inputs = [0.0] * 4
        self._outputs = [0.0] * 4

    def apply(self, value: float) -> float:
        """Filter one sample and return the output."""
        output = self.b[0] * value
        output += sum(b * x for b, x in zip(self.b[1:], self._inputs))
        output -= sum(a * y for a, y in zip(self.a[1:], self._outputs))
        self._inputs = [value, *self._inputs[:3]]
        self._outputs = [output, *self._outputs[:3]]
        return output


class GyroYawEstimator:
    """Integrates a bias-corrected, band-passed gyro rate into a yaw angle.

    The first samples calibrate the gyro bias while the robot is at rest.
    """

    def __init__(self, calibration_samples: int = CALIBRATION_SAMPLES) -> None:
        if calibration_samples < 1:
            raise ValueError("at least one calibration sample is needed")
        self.calibration_samples = calibration_samples
        self.bias = 0.0
        self.yaw = 0.0
        self._samples: list[float] = []
        self._calibrating = True
        self._filter = BandPassFilter()
        self._previous_stamp: float | None = None

    @property
    def calibrating(self) -> bool:
        return self._calibrating

    def update(self, angular_velocity_z: float, stamp: float) -> float | None:
        """Feed a gyro z reading (deg/s) taken at ``stamp`` seconds.

        Returns the yaw in radians, or None while calibration is running.
        """
        rate = -angular_velocity_z * DEG_TO_RAD
        if self._calibrating:
            self._samples.append(rate)
            if len(self._samples) >= self.calibration_samples:
                self.bias = sum(self._samples) / len(self._samples)
                self._calibrating = False
            return None

        filtered = self._filter.apply(rate - self.bias)
        if self._previous_stamp is None:
            dt = FIRST_IMU_DT
        else:
            dt = stamp - self._previous_stamp
        self._previous_stamp = stamp

        if dt > 0:
            self.yaw += filtered * dt
            self.yaw = math.atan2(math.sin(self.yaw), math.cos(self.yaw))
        return self.yaw


@dataclass(frozen=True)
class OdometryEstimate:
    """One odometry update: pose, body velocity and orientation."""

    pose: Pose2D
    vx: float
    vy: float
    omega: float
    orientation: Quaternion = field(default_factory=Quaternion)


class PoseEstimator:
    """Dead-reckons the robot pose from wheel encoder angles at a fixed rate."""

    def __init__(self, rate_hz: float = UPDATE_RATE_HZ, start: Pose2D = START_POSE) -> None:
        if rate_hz <= 0:
            raise ValueError("update rate must be positive")
        self.dt = 1.0 / rate_hz
        self.start = start
        self.pose = start
        self.gyro = GyroYawEstimator()
        self.imu_theta = 0.0
        self._current = [0.0] * 4
        self._previous = [0.0] * 4
        self._encoders_ready = False
        self._imu_ready = False
        self._initialized = False

    @property
    def ready(self) -> bool:
        return self._initialized and self._encoders_ready and self._imu_ready

    def set_encoder(self, index: int, value: float) -> None:
        """Record the latest angle in radians of wheel encoder ``index`` (0-3)."""
        if not 0 <= index < 4:
            raise IndexError(f"encoder index {index} out of range 0..3")
        self._current[index] = value
        if index == 0:
            self._encoders_ready = True

    def on_imu(self, angular_velocity_z: float, stamp: float) -> None:
        """Feed a gyro reading to the yaw estimator."""
        self._imu_ready = True
        yaw = self.gyro.update(angular_velocity_z, stamp)
        if yaw is not None:
            self.imu_theta = yaw

    def step(self) -> OdometryEstimate | None:
        """Advance the pose by one period; None until all sensors have reported."""
        if self._encoders_ready and self._imu_ready and not self._initialized:
            self._initialized = True
            self._previous = list(self._current)
        if not self.ready:
            return None

        speeds = [(cur - prev) / self.dt for cur, prev in zip(self._current, self._previous)]
        self._previous = list(self._current)
        vx, vy, omega = forward_kinematics(speeds)

        theta = self.pose.theta
        odom_theta = theta + omega * self.dt
        fused = ALPHA * odom_theta + (1 - ALPHA) * self.imu_theta
        self.pose = Pose2D(
            x=self.pose.x + vx * self.dt * math.cos(theta) - vy * self.dt * math.sin(theta),
            y=self.pose.y + vx * self.dt * math.sin(theta) + vy * self.dt * math.cos(theta),
            theta=math.atan2(math.sin(fused), math.cos(fused)),
        )
        return OdometryEstimate(
            pose=self.pose,
            vx=vx,
            vy=vy,
            omega=omega,
            orientation=quaternion_from_yaw(self.pose.theta),
        )

    def reset(self) -> None:
        """Mark the estimator initialised and put the robot back at its start pose."""
        self._initialized = True
        self._previous = list(self._current)
        self.pose = self.start