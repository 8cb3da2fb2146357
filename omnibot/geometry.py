"""Planar poses, quaternions and angle helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass

__all__ = [
    "Pose2D",
    "Quaternion",
    "wrap_angle",
    "euler_to_quaternion",
    "quaternion_from_yaw",
    "yaw_from_quaternion",
]


@dataclass(frozen=True)
class Pose2D:
    """A position in the plane with a heading in radians."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0


@dataclass(frozen=True)
class Quaternion:
    """A rotation quaternion; the default is the identity."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


def wrap_angle(angle: float) -> float:
    """Bring an angle into the range [-pi, pi] by whole turns."""
    while angle > math.pi:
        angle -= 2 * math.pi
    while angle < -math.pi:
        angle += 2 * math.pi
    return angle


def euler_to_quaternion(roll: float, pitch: float, yaw: float) -> Quaternion:
    """Convert roll, pitch and yaw in radians to a quaternion."""
    cy, sy = math.cos(yaw * 0.5), math.sin(yaw * 0.5)
    cp, sp = math.cos(pitch * 0.5), math.sin(pitch * 0.5)
    cr, sr = math.cos(roll * 0.5), math.sin(roll * 0.5)
    return Quaternion(
        x=sr * cp * cy - cr * sp * sy,
        y=cr * sp * cy + sr * cp * sy,
        z=cr * cp * sy - sr * sp * cy,
        w=cr * cp * cy + sr * sp * sy,
    )


def quaternion_from_yaw(yaw: float) -> Quaternion:
    """Quaternion for a pure rotation about the vertical axis."""
    return euler_to_quaternion(0.0, 0.0, yaw)


def yaw_from_quaternion(q: Quaternion) -> float:
    """Extract the yaw angle from a quaternion through its rotation matrix."""
    norm_sq = q.x * q.x + q.y * q.y + q.z * q.z + q.w * q.w
    if norm_sq == 0.0:
        raise ValueError("quaternion has zero length")
    s = 2.0 / norm_sq
    m00 = 1.0 - s * (q.y * q.y + q.z * q.z)
    m10 = s * (q.x * q.y + q.w * q.z)
    m20 = s * (q.x * q.z - q.w * q.y)
    if abs(m20) >= 1.0:
        return 0.0
    cos_pitch = math.cos(-math.asin(m20))
    return math.atan2(m10 / cos_pitch, m00 / cos_pitch)