"""Kinematics of the four-wheel omnidirectional base."""

from __future__ import annotations

import math
from collections.abc import Sequence

__all__ = [
    "WHEEL_RADIUS",
    "ROBOT_RADIUS",
    "VELOCITY_LIMIT",
    "inverse_kinematics",
    "to_dynamixel_units",
    "wheel_commands",
    "forward_kinematics",
]

WHEEL_RADIUS = 0.054 / 2
ROBOT_RADIUS = 0.25 / 2
VELOCITY_LIMIT = 230.0
_RPM_PER_UNIT = 0.229
_HALF_SQRT2 = math.sqrt(2) / 2.0


def inverse_kinematics(vx: float, vy: float, omega: float) -> tuple[float, float, float, float]:
    """Wheel speeds in rad/s for a body velocity (m/s, m/s, rad/s)."""
    spin = ROBOT_RADIUS * omega
    scale = 1.0 / WHEEL_RADIUS
    return (
        scale * (-_HALF_SQRT2 * vx + _HALF_SQRT2 * vy + spin),
        scale * (-_HALF_SQRT2 * vx - _HALF_SQRT2 * vy + spin),
        scale * (_HALF_SQRT2 * vx - _HALF_SQRT2 * vy + spin),
        scale * (_HALF_SQRT2 * vx + _HALF_SQRT2 * vy + spin),
    )


def to_dynamixel_units(rad_per_s: float) -> float:
    """Convert rad/s to servo velocity units of 0.229 rpm."""
    return (rad_per_s * 60 / (2 * math.pi)) / _RPM_PER_UNIT


def _clamp(value: float) -> float:
    return max(-VELOCITY_LIMIT, min(VELOCITY_LIMIT, value))


def wheel_commands(vx: float, vy: float, omega: float) -> tuple[float, float, float, float]:
    """Servo velocity commands for a body velocity, limited to +/-230 units."""
    w1, w2, w3, w4 = (_clamp(to_dynamixel_units(w)) for w in inverse_kinematics(vx, vy, omega))
    return (w1, w2, w3, w4)


def forward_kinematics(wheel_speeds: Sequence[float]) -> tuple[float, float, float]:
    """Body velocity (vx, vy, omega) from four wheel speeds in rad/s.

    The angular velocity follows the estimator's sign convention, which is
    the negative of the one taken by inverse_kinematics.
    """
    if len(wheel_speeds) != 4:
        raise ValueError(f"expected 4 wheel speeds, got {len(wheel_speeds)}")
    w1, w2, w3, w4 = wheel_speeds
    linear = WHEEL_RADIUS * math.sqrt(2) / 4.0
    vx = linear * (-w1 - w2 + w3 + w4)
    vy = linear * (w1 - w2 - w3 + w4)
    omega = -(WHEEL_RADIUS / (4.0 * ROBOT_RADIUS)) * (w1 + w2 + w3 + w4)
    return (vx, vy, omega)