"""Controller-board helpers: wheel commands, request routing, sensors and range scans."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .actuators import Requests

__all__ = [
    "WHEEL_VELOCITY_LIMIT",
    "LIGHT_THRESHOLD",
    "SENSOR_OFFSET",
    "WHEEL_TOPICS",
    "REQUEST_TOPICS",
    "clamp_wheel_velocity",
    "wheel_motor_id",
    "route_request",
    "detect_ore",
    "detect_mag",
    "detect_led",
    "RangeReading",
    "LaserScan",
    "build_scan",
]

WHEEL_VELOCITY_LIMIT = 1023
LIGHT_THRESHOLD = 200
SENSOR_OFFSET = 0.14
SCAN_FRAME = "lidar_frame"
SCAN_TIME = 0.1
RANGE_MIN = 0.03
RANGE_MAX = 4.0

WHEEL_TOPICS = {
    1: "/OpenCR/wheel_speeds/wheel_1_speed",
    2: "/OpenCR/wheel_speeds/wheel_2_speed",
    3: "/OpenCR/wheel_speeds/wheel_3_speed",
    4: "/OpenCR/wheel_speeds/wheel_4_speed",
}

# Wheels are numbered for the kinematics; servo IDs are shifted by one.
_WHEEL_TO_MOTOR = {1: 2, 2: 3, 3: 4, 4: 1}

REQUEST_TOPICS = {
    "/OpenCR/scoop": "scoop",
    "/OpenCR/scoop_tilt": "scoop_tilt",
    "/OpenCR/tilt_grab_up": "tilt_grab_up",
    "/OpenCR/beacon_place": "place_beacon",
    "/OpenCR/dump_geo": "dump_geo",
    "/OpenCR/dump_neo": "dump_neo",
}


def clamp_wheel_velocity(value: float) -> int:
    """Limit a wheel velocity command to +/-1023 servo units, truncating to an integer."""
    if value >= WHEEL_VELOCITY_LIMIT:
        return WHEEL_VELOCITY_LIMIT
    if value <= -WHEEL_VELOCITY_LIMIT:
        return -WHEEL_VELOCITY_LIMIT
    return int(value)


def wheel_motor_id(wheel: int) -> int:
    """Servo ID that drives wheel number ``wheel`` (1-4)."""
    try:
        return _WHEEL_TO_MOTOR[wheel]
    except KeyError:
        raise ValueError(f"wheel number {wheel} out of range 1..4") from None


def route_request(requests: Requests, topic: str, value: bool) -> None:
    """Store a request flag received on ``topic`` in ``requests``."""
    try:
        name = REQUEST_TOPICS[topic]
    except KeyError:
        raise ValueError(f"unknown request topic: {topic}") from None
    setattr(requests, name, bool(value))


def detect_ore(level: bool | int) -> bool:
    """Part-present sensor: the input reads low when a part is present."""
    return not bool(level)


def detect_mag(level: bool | int) -> bool:
    """Hall-effect sensor: the input reads high near a magnet."""
    return bool(level)


def detect_led(value: int) -> bool:
    """True when the light sensor reading is above the start-light threshold."""
    return value > LIGHT_THRESHOLD


@dataclass(frozen=True)
class RangeReading:
    """One time-of-flight reading: distance in millimetres and range status."""

    range_mm: int
    range_status: int = 0

    @property
    def valid(self) -> bool:
        return self.range_status == 0

    @property
    def meters(self) -> float:
        """Distance in metres, or NaN when the reading is not valid."""
        return self.range_mm * 0.001 if self.valid else math.nan


@dataclass(frozen=True)
class LaserScan:
    """A planar scan assembled from the ring of range sensors."""

    ranges: tuple[float, ...]
    angle_min: float = 0.0
    angle_max: float = 2.0 * math.pi
    angle_increment: float = 0.0
    time_increment: float = 0.0
    scan_time: float = SCAN_TIME
    range_min: float = RANGE_MIN
    range_max: float = RANGE_MAX
    frame_id: str = SCAN_FRAME


def build_scan(readings: Sequence[RangeReading]) -> LaserScan:
    """Build a full-circle scan, adding the mounting offset to every valid range."""
    if not readings:
        raise ValueError("a scan needs at least one reading")
    full_circle = 2.0 * math.pi
    ranges = tuple(
        r.meters if math.isnan(r.meters) else r.meters + SENSOR_OFFSET for r in readings
    )
    return LaserScan(
        ranges=ranges,
        angle_min=0.0,
        angle_max=full_circle,
        angle_increment=full_circle / len(readings),
    )