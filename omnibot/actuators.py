"""Servo position queues and the scoop, sort, beacon and dump state machines."""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol

__all__ = [
    "TILT",
    "SORT",
    "SCOOP_R",
    "SCOOP_L",
    "DUMP_L",
    "DUMP_R",
    "BEACON",
    "WHEEL_IDS",
    "MECHANISM_IDS",
    "QUEUE_SIZE",
    "POSITION_THRESHOLD",
    "DETECT_TIME",
    "SCOOP_DONE_TOPIC",
    "SORT_DONE_TOPIC",
    "ACTION_DONE_TOPIC",
    "State",
    "PositionCommand",
    "MotorQueue",
    "ServoBus",
    "MotorScheduler",
    "Requests",
    "Mechanism",
]

log = logging.getLogger(__name__)

# Servo IDs on the bus.
WHEEL_IDS = (1, 2, 3, 4)
TILT = 5
SORT = 6
SCOOP_R = 7
SCOOP_L = 8
DUMP_L = 9
DUMP_R = 10
BEACON = 11
MECHANISM_IDS = (TILT, SORT, SCOOP_R, SCOOP_L, DUMP_L, DUMP_R, BEACON)

# Joint positions in servo ticks.
TILT_UP_POS = 2200
TILT_DOWN_POS = 2840
TILT_GRAB_UP = 2400
SCOOP_UP_POS = 1150
SCOOP_DOWN_POS = -50
SCOOP_TILT_POS = 250
DUMP_L_DOWN_POS = 492
DUMP_L_UP_POS = -550
DUMP_R_DOWN_POS = 2018
DUMP_R_UP_POS = 1000
SORT_CENTER = 1050
SORT_NEB = -775
SORT_GEO = 2855
SORT_DETECT_POS = 1800
BEACON_DOWN_POS = 1055
BEACON_UP_POS = 0

QUEUE_SIZE = 20
POSITION_THRESHOLD = 50
DETECT_TIME = 800
SCOOP_WAIT_MS = 800
DUMP_DELAY_S = 0.5

SCOOP_DONE_TOPIC = "/OpenCR/scoop_done"
SORT_DONE_TOPIC = "/OpenCR/sort_done"
ACTION_DONE_TOPIC = "/OpenCR/action_done"


class State(IntEnum):
    """States shared by the mechanism state machines."""

    IDLE = 0
    UP_RQST = 1
    UP = 2
    DOWN = 3
    START = 5
    DETECT_PART_START_TIMER = 6
    DETECT_PART_START = 7
    DETECT_MAG = 8
    SORT_GEO_STATE = 9
    SORT_NEB_STATE = 10
    CENTER = 11
    CENTERED = 12
    DOWN_DONE = 13
    GRAB_UP = 14
    GRAB_UP_IDLE = 15
    SCOOP_TILT_UP = 16
    SCOOP_TILT_UP_IDLE = 17
    UP_SHAKE = 18
    SCOOP_TILT_DOWN = 19


@dataclass(frozen=True)
class PositionCommand:
    """A goal position and how long (ms) to hold after reaching it."""

    position: int
    wait_time: int = 0


class MotorQueue:
    """Bounded FIFO of position commands; holds one fewer than its size."""

    def __init__(self, size: int = QUEUE_SIZE) -> None:
        if size < 2:
            raise ValueError("queue size must be at least 2")
        self.capacity = size - 1
        self._items: deque[PositionCommand] = deque()

    def push(self, position: int, wait_time: int = 0) -> bool:
        """Append a command; returns False and drops it when the queue is full."""
        if len(self._items) >= self.capacity:
            return False
        self._items.append(PositionCommand(position, wait_time))
        return True

    def pop(self) -> PositionCommand | None:
        """Remove and return the oldest command, or None when empty."""
        return self._items.popleft() if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(tuple(self._items))


class ServoBus(Protocol):
    """The servo bus the scheduler drives."""

    def goal_position(self, motor_id: int, position: int) -> bool:
        """Command a goal position; True on success."""

    def present_position(self, motor_id: int) -> int | None:
        """Read the present position, or None when the read fails."""


@dataclass
class _MotorState:
    queue: MotorQueue = field(default_factory=MotorQueue)
    desired_position: int = 0
    current_position: int = 0
    moving: bool = False
    waiting: bool = False
    wait_start: int = 0
    wait_time: int = 0


class MotorScheduler:
    """Feeds queued positions to mechanism servos one at a time."""

    def __init__(
        self,
        bus: ServoBus,
        motor_ids: tuple[int, ...] = MECHANISM_IDS,
        threshold: int = POSITION_THRESHOLD,
        queue_size: int = QUEUE_SIZE,
    ) -> None:
        self.bus = bus
        self.threshold = threshold
        self.motors = {mid: _MotorState(queue=MotorQueue(queue_size)) for mid in motor_ids}

    def _motor(self, motor_id: int) -> _MotorState:
        try:
            return self.motors[motor_id]
        except KeyError:
            raise ValueError(f"invalid motor ID: {motor_id}") from None

    def add_position(self, motor_id: int, position: int, wait_time: int = 0) -> bool:
        """Queue a position for a motor; False when its queue is full."""
        return self._motor(motor_id).queue.push(position, wait_time)

    def is_idle(self, motor_id: int) -> bool:
        """True when the motor has nothing queued and is not holding."""
        motor = self._motor(motor_id)
        return motor.queue.is_empty() and not motor.waiting

    def dequeue(self, motor_id: int) -> PositionCommand | None:
        """Drop and return the next queued command of a motor."""
        return self._motor(motor_id).queue.pop()

    def _reached_goal(self, motor_id: int, motor: _MotorState) -> bool:
        position = self.bus.present_position(motor_id)
        if position is not None:
            motor.current_position = position
        return abs(motor.desired_position - motor.current_position) <= self.threshold

    def update(self, now: int) -> None:
        """Advance every motor at time ``now`` in milliseconds."""
        for motor_id, motor in self.motors.items():
            if not motor.moving and not motor.waiting:
                cmd = motor.queue.pop()
                if cmd is not None:
                    motor.desired_position = cmd.position
                    motor.wait_time = cmd.wait_time
                    self.bus.goal_position(motor_id, cmd.position)
                    motor.moving = True
                    log.debug("Motor %d moving to position: %d", motor_id, cmd.position)

            if motor.moving:
                if self._reached_goal(motor_id, motor):
                    log.debug("Motor %d reached position: %d", motor_id, motor.desired_position)
                    motor.moving = False
                    if motor.wait_time > 0:
                        motor.waiting = True
                        motor.wait_start = now
                        log.debug("Motor %d waiting for %d ms", motor_id, motor.wait_time)
                else:
                    log.debug("Motor %d current position: %d", motor_id, motor.current_position)

            if motor.waiting and now - motor.wait_start >= motor.wait_time:
                motor.waiting = False
                log.debug("Motor %d wait time elapsed", motor_id)

    def home_all(self) -> None:
        """Queue the homing sequence for all mechanism joints."""
        self.add_position(TILT, TILT_DOWN_POS)
        self.add_position(SORT, SORT_CENTER)
        self.add_position(DUMP_R, DUMP_R_DOWN_POS)
        self.add_position(DUMP_L, DUMP_L_DOWN_POS)
        self.add_position(SCOOP_R, SCOOP_DOWN_POS)
        self.add_position(SCOOP_L, -SCOOP_DOWN_POS)
        self.add_position(BEACON, BEACON_UP_POS)
        self.add_position(TILT, TILT_UP_POS)


@dataclass
class Requests:
    """Requests received from the high-level planner."""

    scoop: bool = False
    scoop_tilt: bool = False
    tilt_grab_up: bool = False
    place_beacon: bool = False
    dump_geo: bool = False
    dump_neo: bool = False


class Mechanism:
    """The scoop, sort, beacon and dump state machines stepped together.

    ``publish`` receives a topic and a bool for the done signals.
    """

    def __init__(
        self,
        scheduler: MotorScheduler,
        publish: Callable[[str, bool], None],
        detect_ore: Callable[[], bool],
        detect_mag: Callable[[], bool],
        requests: Requests | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.scheduler = scheduler
        self.publish = publish
        self.detect_ore = detect_ore
        self.detect_mag = detect_mag
        self.requests = requests if requests is not None else Requests()
        self.sleep = sleep
        self.scoop_state = State.IDLE
        self.sort_state = State.IDLE
        self.beacon_state = State.IDLE
        self.dump_state = State.IDLE
        self.sort_done = True
        self.geo_count = 0
        self.neb_count = 0
        self._start_time = 0

    def _idle(self, *motor_ids: int) -> bool:
        return all(self.scheduler.is_idle(mid) for mid in motor_ids)

    def _add(self, motor_id: int, position: int, wait_time: int = 0) -> None:
        self.scheduler.add_position(motor_id, position, wait_time)

    def step(self, now: int) -> None:
        """Run one pass of every state machine at ``now`` milliseconds."""
        self._sort_step(now)
        self._scoop_step()
        self._beacon_step()
        self._dump_step()

    def _scoop_step(self) -> None:
        req = self.requests
        state = self.scoop_state
        if state is State.IDLE:
            if req.scoop and self.sort_done:
                self.scoop_state = State.UP_RQST
                self.publish(SCOOP_DONE_TOPIC, False)
                req.scoop = False
            if req.scoop_tilt:
                self.scoop_state = State.SCOOP_TILT_UP
                self.publish(SCOOP_DONE_TOPIC, False)
                self._add(SCOOP_R, SCOOP_TILT_POS, SCOOP_WAIT_MS)
                self._add(SCOOP_L, -SCOOP_TILT_POS, SCOOP_WAIT_MS)
                req.scoop = False
                req.scoop_tilt = False
        elif state is State.UP_RQST:
            self._add(SCOOP_R, SCOOP_UP_POS, SCOOP_WAIT_MS)
            self._add(SCOOP_L, -SCOOP_UP_POS, SCOOP_WAIT_MS)
            self.scoop_state = State.UP
        elif state is State.UP:
            if self._idle(SCOOP_R, SCOOP_L):
                self._add(SCOOP_R, SCOOP_DOWN_POS)
                self._add(SCOOP_L, -SCOOP_DOWN_POS)
                self.sort_state = State.START
                self.scoop_state = State.DOWN
        elif state is State.DOWN:
            if self._idle(SCOOP_R, SCOOP_L):
                self.scoop_state = State.IDLE
                self.publish(SCOOP_DONE_TOPIC, True)
        elif state is State.SCOOP_TILT_UP:
            if self._idle(SCOOP_R, SCOOP_L):
                self.publish(SCOOP_DONE_TOPIC, True)
                self.scoop_state = State.SCOOP_TILT_DOWN
        elif state is State.SCOOP_TILT_DOWN:
            if req.scoop_tilt:
                req.scoop_tilt = False
                self.publish(SCOOP_DONE_TOPIC, True)
                self._add(SCOOP_R, SCOOP_DOWN_POS, SCOOP_WAIT_MS)
                self._add(SCOOP_L, -SCOOP_DOWN_POS, SCOOP_WAIT_MS)
                self.scoop_state = State.IDLE
            if req.scoop and self.sort_done:
                self.scoop_state = State.UP_RQST
                req.scoop = False
                self.sort_done = False
        elif state is State.SCOOP_TILT_UP_IDLE:
            if req.scoop and self.sort_done:
                req.scoop = False
                self.sort_done = False
                self.scoop_state = State.UP_RQST

    def _sort_step(self, now: int) -> None:
        state = self.sort_state
        if state is State.IDLE:
            if self.requests.tilt_grab_up:
                self.sort_state = State.GRAB_UP
        elif state is State.START:
            self.publish(SORT_DONE_TOPIC, False)
            self.sort_done = False
            if self._idle(SCOOP_R, SCOOP_L):
                self._add(TILT, TILT_UP_POS + 50)
                self.sort_state = State.UP
        elif state is State.UP:
            if self._idle(TILT):
                self.sort_state = State.DETECT_PART_START_TIMER
        elif state is State.DETECT_PART_START_TIMER:
            self._start_time = now
            self.sort_state = State.DETECT_PART_START
        elif state is State.DETECT_PART_START:
            if self.detect_ore() and self._idle(SORT):
                if not self.detect_mag():
                    self.sort_state = State.SORT_GEO_STATE
                    return
                for position in (
                    SORT_DETECT_POS - 200,
                    SORT_CENTER,
                    SORT_DETECT_POS - 200,
                    SORT_CENTER - 200,
                ):
                    self._add(SORT, position)
                for position in (
                    TILT_UP_POS + 100,
                    TILT_UP_POS + 250,
                    TILT_UP_POS + 100,
                    TILT_UP_POS,
                ):
                    self._add(TILT, position)
                self.sort_state = State.DETECT_MAG
            elif now - self._start_time > DETECT_TIME:
                self.sort_state = State.DOWN
        elif state is State.DETECT_MAG:
            if not self.detect_mag():
                for _ in range(4):
                    self.scheduler.dequeue(SORT)
                self.sort_state = State.SORT_GEO_STATE
            elif self._idle(SORT):
                self.sort_state = State.SORT_NEB_STATE
        elif state is State.SORT_GEO_STATE:
            self._add(TILT, TILT_DOWN_POS)
            self._add(SORT, SORT_GEO)
            self.geo_count += 1
            self.sort_state = State.CENTER
        elif state is State.SORT_NEB_STATE:
            self._add(TILT, TILT_DOWN_POS)
            self._add(SORT, SORT_NEB - 25)
            self.neb_count += 1
            self.sort_state = State.CENTER
        elif state is State.CENTER:
            if self._idle(SORT):
                self._add(SORT, SORT_CENTER)
                self._add(TILT, TILT_UP_POS + 50)
                self.sort_state = State.CENTERED
        elif state is State.CENTERED:
            if self._idle(SORT, DUMP_L, DUMP_R):
                self.sort_state = State.DETECT_PART_START_TIMER
        elif state is State.DOWN:
            self._add(TILT, TILT_DOWN_POS)
            self.publish(SCOOP_DONE_TOPIC, True)
            self.sort_state = State.DOWN_DONE
        elif state is State.DOWN_DONE:
            if self._idle(TILT):
                self.sort_state = State.IDLE
                self.publish(SCOOP_DONE_TOPIC, False)
                self.sort_done = True
        elif state is State.GRAB_UP:
            if self._idle(SCOOP_R, SCOOP_L):
                self._add(TILT, TILT_GRAB_UP)
                self.sort_state = State.GRAB_UP_IDLE
        elif state is State.GRAB_UP_IDLE:
            if not self.requests.tilt_grab_up:
                self.sort_state = State.DOWN

    def _beacon_step(self) -> None:
        state = self.beacon_state
        if state is State.IDLE:
            if self.requests.place_beacon:
                self.beacon_state = State.DOWN
        elif state is State.DOWN:
            self._add(BEACON, BEACON_DOWN_POS)
            self.beacon_state = State.DOWN_DONE
        elif state is State.DOWN_DONE:
            if self._idle(BEACON):
                self.publish(ACTION_DONE_TOPIC, True)
                self.beacon_state = State.UP_RQST
        elif state is State.UP_RQST:
            if not self.requests.place_beacon:
                self._add(BEACON, BEACON_UP_POS)
                self.beacon_state = State.UP
        elif state is State.UP:
            if self._idle(BEACON):
                self.beacon_state = State.IDLE

    def _dump_step(self) -> None:
        req = self.requests
        bus = self.scheduler.bus
        state = self.dump_state
        if state is State.IDLE:
            if req.dump_geo or req.dump_neo:
                self.dump_state = State.UP
        elif state is State.UP:
            if req.dump_geo:
                bus.goal_position(DUMP_R, DUMP_R_UP_POS)
                self.sleep(DUMP_DELAY_S)
                self.dump_state = State.UP_SHAKE
            if req.dump_neo:
                bus.goal_position(DUMP_L, DUMP_L_UP_POS)
                self.sleep(DUMP_DELAY_S)
                self.dump_state = State.UP_SHAKE
        elif state is State.UP_SHAKE:
            if req.dump_geo:
                bus.goal_position(DUMP_R, DUMP_R_DOWN_POS)
                self.dump_state = State.DOWN_DONE
            if req.dump_neo:
                bus.goal_position(DUMP_L, DUMP_L_DOWN_POS)
                self.dump_state = State.DOWN_DONE
        elif state is State.DOWN_DONE:
            if self._idle(DUMP_R, DUMP_L):
                self.publish(ACTION_DONE_TOPIC, True)
                req.dump_neo = False
                req.dump_geo = False
                self.dump_state = State.IDLE