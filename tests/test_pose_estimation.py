import pytest

from omnibot.geometry import yaw_from_quaternion
from omnibot.pose_estimation import (
    START_POSE,
    BandPassFilter,
    BiquadFilter,
    GyroYawEstimator,
    PoseEstimator,
)


def _ready_estimator():
    est = PoseEstimator()
    for i in range(4):
        est.set_encoder(i, 0.0)
    est.on_imu(0.0, 0.0)
    first = est.step()
    assert first is not None
    return est


def test_start_pose_from_source():
    est = PoseEstimator()
    assert est.pose.x == 0.79375
    assert est.pose.y == 0.150
    assert est.pose.theta == 0.0
    assert est.pose == START_POSE


def test_biquad_impulse_first_sample():
    f = BiquadFilter()
    assert f.apply(1.0) == pytest.approx(0.0675)


def test_bandpass_impulse_first_sample():
    f = BandPassFilter()
    assert f.apply(1.0) == pytest.approx(0.0466)


def test_bandpass_zero_input_stays_zero():
    f = BandPassFilter()
    assert [f.apply(0.0) for _ in range(10)] == [0.0] * 10


@pytest.mark.parametrize("cls", [BiquadFilter, BandPassFilter])
def test_filters_are_linear(cls):
    signal = [0.3, -1.0, 2.0, 0.5, 0.0, 1.5, -0.7]
    f1, f2 = cls(), cls()
    out1 = [f1.apply(x) for x in signal]
    out2 = [f2.apply(2 * x) for x in signal]
    assert out2 == pytest.approx([2 * y for y in out1])


def test_biquad_rejects_bad_coefficients():
    with pytest.raises(ValueError):
        BiquadFilter(b=(1.0, 2.0), a=(1.0, 0.0, 0.0))


def test_gyro_calibration_removes_bias():
    gyro = GyroYawEstimator(calibration_samples=5)
    results = [gyro.update(2.0, i * 0.01) for i in range(5)]
    assert results == [None] * 5
    assert not gyro.calibrating
    assert gyro.bias == pytest.approx(-2.0 * 0.017453)
    assert gyro.update(2.0, 0.05) == pytest.approx(0.0)


def test_gyro_yaw_stays_wrapped():
    gyro = GyroYawEstimator(calibration_samples=1)
    gyro.update(0.0, 0.0)
    yaws = [gyro.update(-5000.0, 0.1 * i) for i in range(1, 50)]
    assert all(-3.1416 <= y <= 3.1416 for y in yaws)


def test_step_waits_for_sensors():
    est = PoseEstimator()
    assert est.step() is None
    est.set_encoder(0, 0.0)
    assert est.step() is None
    est.on_imu(0.0, 0.0)
    assert est.step() is not None


def test_first_step_keeps_start_pose():
    est = PoseEstimator()
    est.set_encoder(0, 1.0)
    est.on_imu(0.0, 0.0)
    result = est.step()
    assert result.pose == START_POSE
    assert (result.vx, result.vy, result.omega) == (0.0, 0.0, 0.0)


def test_forward_motion_moves_along_x():
    est = _ready_estimator()
    for i, value in enumerate([-0.1, -0.1, 0.1, 0.1]):
        est.set_encoder(i, value)
    result = est.step()
    assert result.vx > 0
    assert result.vy == pytest.approx(0.0)
    assert result.omega == pytest.approx(0.0)
    assert result.pose.x == pytest.approx(START_POSE.x + result.vx * est.dt)
    assert result.pose.y == pytest.approx(START_POSE.y)


def test_rotation_changes_only_heading():
    est = _ready_estimator()
    for i in range(4):
        est.set_encoder(i, 0.2)
    result = est.step()
    assert result.omega < 0
    assert result.pose.x == pytest.approx(START_POSE.x)
    assert result.pose.y == pytest.approx(START_POSE.y)
    assert result.pose.theta == pytest.approx(result.omega * est.dt)
    assert yaw_from_quaternion(result.orientation) == pytest.approx(result.pose.theta)


def test_reset_restores_start_pose():
    est = _ready_estimator()
    for i in range(4):
        est.set_encoder(i, 0.5)
    est.step()
    assert est.pose != START_POSE
    for i in range(4):
        est.set_encoder(i, 0.9)
    est.reset()
    assert est.pose == START_POSE
    result = est.step()
    assert result.pose == START_POSE


def test_encoder_index_out_of_range():
    est = PoseEstimator()
    with pytest.raises(IndexError):
        est.set_encoder(4, 1.0)