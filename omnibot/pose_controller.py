"""PID position controller that turns a goal pose into local body velocities."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .geometry import Pose2D, Quaternion, wrap_angle, yaw_from_quaternion
from .pose_estimation import START_POSE

__all__ = ["PidGains", "PoseController"]


@dataclass(frozen=True)
class PidGains:
    """Proportional, integral and derivative gains of one axis."""

    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0

    def output(self, error: float, integral: float, derivative: float) -> float:
        return self.kp * error + self.ki * integral + self.kd * derivative


class PoseController:
    """Drives the robot towards a goal pose with one PID loop per axis.

    Errors are computed in the world frame and the resulting velocity is
    rotated into the robot frame. Nothing is produced until a proceed
    signal has been received.
    """

    def __init__(
        self,
        gains_x: PidGains | None = None,
        gains_y: PidGains | None = None,
        gains_theta: PidGains | None = None,
        goal: Pose2D = START_POSE,
        start_time: float = 0.0,
        stop_threshold_position: float = 0.008,
        stop_threshold_theta: float = 0.005,
    ) -> None:
        self.gains_x = gains_x or PidGains()
        self.gains_y = gains_y or PidGains()
        self.gains_theta = gains_theta or PidGains()
        self.goal = goal
        self.stop_threshold_position = stop_threshold_position
        self.stop_threshold_theta = stop_threshold_theta
        self.x = 0.0
        self.y = 0.0
        self.yaw = 0.0
        self.can_proceed = False
        self._last_time = start_time
        self._previous_errors = (0.0, 0.0, 0.0)
        self._integrals = (0.0, 0.0, 0.0)

    def set_goal(self, pose: Pose2D) -> None:
        """Replace the goal pose."""
        self.goal = pose

    def set_odometry(self, x: float, y: float, orientation: Quaternion) -> None:
        """Record the robot's current position and orientation."""
        self.x = x
        self.y = y
        self.yaw = yaw_from_quaternion(orientation)

    def proceed(self) -> None:
        """Allow the control loop to start producing commands."""
        self.can_proceed = True

    def update(self, now: float) -> tuple[float, float, float] | None:
        """Run one control step at time ``now`` in seconds.

        Returns the local velocity (x, y, z) to command, or None when the
        controller is still waiting to proceed or no time has passed.
        """
        if not self.can_proceed:
            return None
        dt = now - self._last_time
        self._last_time = now
        if dt <= 0:
            return None

        error_x = self.goal.x - self.x
        error_y = self.goal.y - self.y
        error_theta = wrap_angle(self.goal.theta - self.yaw)
        errors = (error_x, error_y, error_theta)

        self._integrals = tuple(i + e * dt for i, e in zip(self._integrals, errors))
        derivatives = tuple((e - p) / dt for e, p in zip(errors, self._previous_errors))

        global_vx, global_vy, omega = (
            gains.output(error, integral, derivative)
            for gains, error, integral, derivative in zip(
                (self.gains_x, self.gains_y, self.gains_theta),
                errors,
                self._integrals,
                derivatives,
            )
        )
        self._previous_errors = errors

        cos_t, sin_t = math.cos(self.yaw), math.sin(self.yaw)
        return (
            global_vx * cos_t + global_vy * sin_t,
            -global_vx * sin_t + global_vy * cos_t,
            -omega,
        )