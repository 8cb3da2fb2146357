import math

import pytest

from omnibot.actuators import Requests
from omnibot.firmware import (
    LIGHT_THRESHOLD,
    SENSOR_OFFSET,
    RangeReading,
    build_scan,
    clamp_wheel_velocity,
    detect_led,
    detect_mag,
    detect_ore,
    route_request,
    wheel_motor_id,
)


@pytest.mark.parametrize(
    "value, expected",
    [(1023, 1023), (5000.0, 1023), (-1023, -1023), (-9999.5, -1023), (0.0, 0)],
)
def test_clamp_wheel_velocity_limits(value, expected):
    assert clamp_wheel_velocity(value) == expected


def test_clamp_wheel_velocity_truncates_toward_zero():
    assert clamp_wheel_velocity(12.7) == 12
    assert clamp_wheel_velocity(-12.7) == -12


def test_clamp_is_bounded_and_idempotent():
    for v in (-3000.0, -500.3, 0.4, 800.9, 1022.99, 40000.0):
        c = clamp_wheel_velocity(v)
        assert -1023 <= c <= 1023
        assert clamp_wheel_velocity(c) == c


@pytest.mark.parametrize("wheel, motor", [(1, 2), (2, 3), (3, 4), (4, 1)])
def test_wheel_motor_id_mapping(wheel, motor):
    assert wheel_motor_id(wheel) == motor


@pytest.mark.parametrize("wheel", [0, 5, -1])
def test_wheel_motor_id_rejects_unknown(wheel):
    with pytest.raises(ValueError):
        wheel_motor_id(wheel)


@pytest.mark.parametrize(
    "topic, attr",
    [
        ("/OpenCR/scoop", "scoop"),
        ("/OpenCR/scoop_tilt", "scoop_tilt"),
        ("/OpenCR/tilt_grab_up", "tilt_grab_up"),
        ("/OpenCR/beacon_place", "place_beacon"),
        ("/OpenCR/dump_geo", "dump_geo"),
        ("/OpenCR/dump_neo", "dump_neo"),
    ],
)
def test_route_request_sets_and_clears_flag(topic, attr):
    requests = Requests()
    route_request(requests, topic, True)
    assert getattr(requests, attr) is True
    others = [name for name in vars(requests) if name != attr]
    assert all(getattr(requests, name) is False for name in others)
    route_request(requests, topic, False)
    assert getattr(requests, attr) is False


def test_route_request_unknown_topic():
    with pytest.raises(ValueError):
        route_request(Requests(), "/OpenCR/unknown", True)


def test_detect_ore_is_active_low():
    assert detect_ore(0) is True
    assert detect_ore(1) is False


def test_detect_mag_is_active_high():
    assert detect_mag(1) is True
    assert detect_mag(0) is False


def test_detect_led_threshold():
    assert detect_led(LIGHT_THRESHOLD) is False
    assert detect_led(LIGHT_THRESHOLD + 1) is True
    assert detect_led(0) is False


def test_range_reading_meters():
    assert RangeReading(1000, 0).meters == pytest.approx(1.0)
    assert math.isnan(RangeReading(1000, 2).meters)


def test_build_scan_offsets_valid_ranges():
    readings = [RangeReading(1000, 0), RangeReading(500, 4), RangeReading(250, 0), RangeReading(0, 0)]
    scan = build_scan(readings)
    assert len(scan.ranges) == 4
    assert scan.ranges[0] == pytest.approx(1.0 + SENSOR_OFFSET)
    assert math.isnan(scan.ranges[1])
    assert scan.ranges[2] == pytest.approx(0.25 + SENSOR_OFFSET)
    assert scan.ranges[3] == pytest.approx(SENSOR_OFFSET)


def test_build_scan_geometry():
    scan = build_scan([RangeReading(100)] * 4)
    assert scan.frame_id == "lidar_frame"
    assert scan.angle_min == 0.0
    assert scan.angle_max == pytest.approx(2 * math.pi)
    assert scan.angle_increment * len(scan.ranges) == pytest.approx(scan.angle_max)
    assert scan.range_min == pytest.approx(0.03)
    assert scan.range_max == pytest.approx(4.0)
    assert scan.scan_time == pytest.approx(0.1)


def test_build_scan_requires_readings():
    with pytest.raises(ValueError):
        build_scan([])