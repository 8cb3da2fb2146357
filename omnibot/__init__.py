"""Kinematics, pose estimation, control, route and mechanism logic for an omnidirectional collection robot."""

__version__ = "0.1.0"

__all__ = [
    "actuators",
    "firmware",
    "geometry",
    "kinematics",
    "odom_logger",
    "pose_controller",
    "pose_estimation",
    "waypoints",
]