import math

import pytest

from omnibot.geometry import Pose2D, Quaternion, quaternion_from_yaw
from omnibot.pose_controller import PidGains, PoseController


def _controller(**kwargs):
    controller = PoseController(goal=Pose2D(1.0, 0.0, 0.0), start_time=0.0, **kwargs)
    controller.set_odometry(0.0, 0.0, Quaternion())
    return controller


def test_no_output_before_proceed():
    controller = _controller()
    assert controller.update(1.0) is None
    assert controller.can_proceed is False


def test_default_goal_is_start_pose():
    controller = PoseController()
    assert controller.goal == Pose2D(0.79375, 0.150, 0.0)


def test_proportional_output_along_x():
    controller = _controller()
    controller.proceed()
    vx, vy, wz = controller.update(1.0)
    assert vx == pytest.approx(1.0)
    assert vy == pytest.approx(0.0)
    assert wz == pytest.approx(0.0)


def test_zero_dt_returns_none():
    controller = _controller()
    controller.proceed()
    assert controller.update(0.0) is None


def test_rotation_preserves_speed():
    controller = PoseController(goal=Pose2D(1.0, 2.0, 0.3), start_time=0.0)
    controller.set_odometry(0.0, 0.0, quaternion_from_yaw(0.3))
    controller.proceed()
    vx, vy, wz = controller.update(0.5)
    assert math.hypot(vx, vy) == pytest.approx(math.hypot(1.0, 2.0))
    assert wz == pytest.approx(0.0)


def test_heading_error_sign_is_inverted():
    controller = PoseController(goal=Pose2D(0.0, 0.0, 0.5), start_time=0.0)
    controller.set_odometry(0.0, 0.0, Quaternion())
    controller.proceed()
    _, _, wz = controller.update(1.0)
    assert wz == pytest.approx(-0.5)


def test_heading_error_is_wrapped():
    controller = PoseController(goal=Pose2D(0.0, 0.0, 3.0), start_time=0.0)
    controller.set_odometry(0.0, 0.0, quaternion_from_yaw(-3.0))
    controller.proceed()
    _, _, wz = controller.update(1.0)
    assert abs(wz) <= math.pi
    assert wz == pytest.approx(-(6.0 - 2 * math.pi))


def test_integral_accumulates():
    controller = _controller(gains_x=PidGains(kp=0.0, ki=1.0, kd=0.0))
    controller.proceed()
    first = controller.update(1.0)[0]
    second = controller.update(2.0)[0]
    assert first == pytest.approx(1.0)
    assert second == pytest.approx(2.0)


def test_derivative_uses_previous_error():
    controller = _controller(gains_x=PidGains(kp=0.0, ki=0.0, kd=1.0))
    controller.proceed()
    first = controller.update(1.0)[0]
    second = controller.update(2.0)[0]
    assert first == pytest.approx(1.0)
    assert second == pytest.approx(0.0)


def test_set_goal_changes_target():
    controller = _controller()
    controller.set_goal(Pose2D(0.0, 1.0, 0.0))
    controller.proceed()
    vx, vy, _ = controller.update(1.0)
    assert vx == pytest.approx(0.0)
    assert vy == pytest.approx(1.0)