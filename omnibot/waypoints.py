"""Waypoint route and the state machine that walks the robot through it."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import IntEnum

from .geometry import Pose2D

__all__ = [
    "ActionType",
    "Waypoint",
    "default_route",
    "position_error",
    "orientation_error",
    "WaypointStateMachine",
    "WAYPOINT_TOPIC",
    "SCOOP_TOPIC",
    "SCOOP_TILT_TOPIC",
    "BEACON_TOPIC",
    "DUMP_GEO_TOPIC",
    "DUMP_NEO_TOPIC",
    "GRAB_TILT_TOPIC",
]

log = logging.getLogger(__name__)

WAYPOINT_TOPIC = "/waypoint"
SCOOP_TOPIC = "/OpenCR/scoop"
SCOOP_TILT_TOPIC = "/OpenCR/scoop_tilt"
BEACON_TOPIC = "/OpenCR/beacon_place"
DUMP_GEO_TOPIC = "/OpenCR/dump_geo"
DUMP_NEO_TOPIC = "/OpenCR/dump_neo"
GRAB_TILT_TOPIC = "/OpenCR/tilt_grab_up"

Publisher = Callable[[str, object], None]


class ActionType(IntEnum):
    """Action carried out when a waypoint is reached."""

    NONE = 0
    SCOOP = 1
    TILT_SCOOP = 2
    BEACON = 3
    BUCKET_GRAB = 4
    DUMP_GEO = 5
    DUMP_NEO = 6


@dataclass(frozen=True)
class Waypoint:
    """A goal pose, whether to wait there for a proceed signal, and its action."""

    pose: Pose2D
    wait: bool = False
    action: ActionType = ActionType.NONE


_Q = 1.57079632679
_A = ActionType

_ROUTE = (
    # wait for the start light, leave the start area and clear the beacon mast
    (0.79375, 0.150, 0.0, True, _A.NONE),
    (0.79375, 0.60, 0.0, True, _A.SCOOP),
    (0.79375, 0.5715, _Q, False, _A.NONE),
    (0.19, 0.6, _Q, True, _A.TILT_SCOOP),
    (0.32, 0.60, _Q, True, _A.SCOOP),
    # place the beacon
    (0.32, 0.60, -_Q, False, _A.NONE),
    (0.165, 0.57, -_Q, False, _A.NONE),
    (0.165, 0.58, -_Q, True, _A.BEACON),
    (0.165, 0.53, -_Q, False, _A.NONE),
    (0.165, 0.61, -_Q, False, _A.NONE),
    (0.165, 0.58, -_Q, False, _A.NONE),
    (0.25, 0.58, -_Q, False, _A.BEACON),
    # relocalise on the wall and clear beside the nebulite bucket
    (0.25, 0.58, 0.0, False, _A.NONE),
    (0.16, 0.85, 0.0, False, _A.NONE),
    (0.1, 0.85, 0.0, False, _A.NONE),
    (0.36, 0.85, 0.0, False, _A.NONE),
    (0.36, 1.05, 0.0, True, _A.TILT_SCOOP),
    (0.36, 0.88, 0.0, True, _A.SCOOP),
    # clear to the right of the nebulite bucket
    (0.77, 0.88, 0.0, False, _A.NONE),
    (0.77, 0.55, 0.0, False, _A.NONE),
    (0.89, 0.55, 0.0, False, _A.NONE),
    (0.89, 1.1, 0.0, True, _A.TILT_SCOOP),
    (0.89, 0.95, 0.0, True, _A.SCOOP),
    (0.89, 1.15, 0.0, True, _A.TILT_SCOOP),
    (0.89, 0.95, 0.0, False, _A.NONE),
    # far right corner outside the cave
    (0.89, 0.95, -_Q, False, _A.NONE),
    (0.89, 1.2, -_Q, True, _A.TILT_SCOOP),
    (1.2, 1.2, -_Q, True, _A.TILT_SCOOP),
    (1.08, 1.2, -_Q, True, _A.SCOOP),
    # relocalise in the far right corner
    (1.08, 1.05, -_Q, False, _A.NONE),
    (1.08, 1.05, -3.14, False, _A.NONE),
    (1.08, 1.3, -3.14, False, _A.NONE),
    (1.3, 1.3, -3.14, False, _A.NONE),
    # clear around the geodinium bucket
    (1.26, 1.3, -3.14, False, _A.NONE),
    (1.26, 0.59, -3.14, False, _A.NONE),
    (1.08, 0.59, -3.14, False, _A.NONE),
    (1.08, 0.25, -3.14, True, _A.TILT_SCOOP),
    (1.08, 0.39, -3.14, True, _A.SCOOP),
    # into the cave
    (1.08, 0.65, -3.14, False, _A.NONE),
    (1.08, 0.65, -_Q, False, _A.NONE),
    (2.25, 0.65, -_Q, True, _A.TILT_SCOOP),
    (2.0, 0.65, -_Q, True, _A.SCOOP),
    (2.0, 0.65, _Q, False, _A.NONE),
    (1.6, 0.65, _Q, False, _A.NONE),
    (1.3, 0.65, _Q, False, _A.NONE),
    # grab the bucket and dump
    (1.3, 0.4, _Q, False, _A.BUCKET_GRAB),
    (1.35, 0.4, _Q, False, _A.NONE),
    (1.35, 0.28, _Q, True, _A.BUCKET_GRAB),
    (1.32, 0.28, _Q, True, _A.DUMP_GEO),
    (1.37, 0.28, _Q, False, _A.NONE),
    # carry the geodinium bucket to the landing pad
    (1.25, 0.5, _Q, False, _A.NONE),
    (0.5, 0.5, _Q, False, _A.NONE),
    (0.5, 0.5, -_Q, False, _A.NONE),
    (0.3, 0.5, -_Q, False, _A.NONE),
    (0.1, 0.5, -_Q, False, _A.NONE),
    (0.1, 0.85, -_Q, False, _A.BUCKET_GRAB),
    # push the nebulite bucket to the landing pad
    (0.25, 0.75, -_Q, False, _A.NONE),
    (0.5, 0.75, -_Q, False, _A.BUCKET_GRAB),
    (0.95, 0.8, -_Q, True, _A.SCOOP),
    (0.95, 1.1, -_Q, False, _A.NONE),
    (0.3, 1.1, -_Q, False, _A.NONE),
    (0.32, 1.1, -_Q, False, _A.NONE),
    (0.32, 0.7, -_Q, False, _A.BUCKET_GRAB),
    (0.1, 0.7, -_Q, False, _A.NONE),
    (0.05, 1.0, -_Q, False, _A.NONE),
    (0.05, 1.0, -_Q, True, _A.DUMP_NEO),
    (0.05, 1.0, -_Q, True, _A.BUCKET_GRAB),
    # move the bucket to the middle
    (0.2, 1.0, -_Q, False, _A.NONE),
    (0.1, 0.55, -_Q, False, _A.NONE),
)


def default_route() -> list[Waypoint]:
    """The competition route, in driving order."""
    return [
        Waypoint(Pose2D(x, y, theta), wait, action)
        for x, y, theta, wait, action in _ROUTE
    ]


def position_error(pose1: Pose2D, pose2: Pose2D) -> float:
    """Euclidean distance between two poses."""
    return math.hypot(pose1.x - pose2.x, pose1.y - pose2.y)


def orientation_error(pose1: Pose2D, pose2: Pose2D) -> float:
    """Absolute heading difference, wrapped into [0, pi]."""
    error = pose1.theta - pose2.theta
    while error > math.pi:
        error -= 2 * math.pi
    while error < -math.pi:
        error += 2 * math.pi
    return abs(error)


class WaypointStateMachine:
    """Publishes waypoints one by one and triggers each one's action on arrival.

    ``publish`` is called with a topic name and a value: a Pose2D for the
    waypoint topic, a bool for the mechanism request topics.
    """

    def __init__(
        self,
        publish: Publisher,
        route: Sequence[Waypoint] | None = None,
        position_tolerance: float = 0.01,
        orientation_tolerance: float = 0.02,
    ) -> None:
        self.publish = publish
        self.route = list(default_route() if route is None else route)
        self.position_tolerance = position_tolerance
        self.orientation_tolerance = orientation_tolerance
        self.current_index = 0
        self.current_waypoint: Waypoint | None = None
        self.can_proceed = False
        self.action_performed = False
        self.beacon_down = False
        self.bucket_up = False
        self.finished = False

    def start(self) -> None:
        """Publish the first waypoint."""
        log.info("Starting waypoint state machine.")
        self._publish_current()

    def _publish_current(self) -> None:
        if self.current_index < len(self.route):
            self.current_waypoint = self.route[self.current_index]
            pose = self.current_waypoint.pose
            log.info(
                "Publishing waypoint: x=%.2f, y=%.2f, theta=%.2f, wait=%s",
                pose.x, pose.y, pose.theta, self.current_waypoint.wait,
            )
            self.publish(WAYPOINT_TOPIC, pose)
        else:
            log.info("All waypoints have been published and reached.")
            self.finished = True

    def _advance(self) -> None:
        self.current_index += 1
        self.action_performed = False
        self.can_proceed = False
        self._publish_current()

    def on_pose(self, pose: Pose2D) -> None:
        """Handle a new robot pose estimate."""
        if self.finished:
            return
        if self.current_waypoint is None:
            raise RuntimeError("state machine has not been started")
        target = self.current_waypoint
        if (
            position_error(pose, target.pose) > self.position_tolerance
            or orientation_error(pose, target.pose) > self.orientation_tolerance
        ):
            return

        if not self.action_performed:
            log.info("Reached waypoint %d.", self.current_index + 1)
            self.perform_action(target.action)
            self.action_performed = True

        if not target.wait:
            self._advance()
        elif self.can_proceed:
            log.info("Proceeding to next waypoint after waiting.")
            self._advance()
        else:
            log.info(
                "Waiting at waypoint %d until proceed signal is received.",
                self.current_index + 1,
            )

    def on_proceed(self, value: bool) -> None:
        """Handle a done signal from the mechanism controller."""
        self.can_proceed = bool(value)
        if self.can_proceed:
            log.info("Received proceed signal.")

    def perform_action(self, action: ActionType | int) -> None:
        """Send the mechanism request belonging to ``action``."""
        action = ActionType(action)
        if action is ActionType.NONE:
            log.info("No action for this waypoint.")
        elif action is ActionType.SCOOP:
            self.publish(SCOOP_TOPIC, True)
        elif action is ActionType.TILT_SCOOP:
            self.publish(SCOOP_TILT_TOPIC, True)
        elif action is ActionType.BEACON:
            self.beacon_down = not self.beacon_down
            self.publish(BEACON_TOPIC, self.beacon_down)
        elif action is ActionType.BUCKET_GRAB:
            self.bucket_up = not self.bucket_up
            self.publish(GRAB_TILT_TOPIC, self.bucket_up)
        elif action is ActionType.DUMP_GEO:
            self.publish(DUMP_GEO_TOPIC, True)
        elif action is ActionType.DUMP_NEO:
            self.publish(DUMP_NEO_TOPIC, True)