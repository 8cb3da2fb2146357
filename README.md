# omnibot

The logic of a small four-wheel omnidirectional robot that drives a fixed
route, scoops up pieces, sorts them by magnetism into two bins and places a
beacon. Everything is plain Python with no runtime dependencies. Each part
takes sensor values and time stamps as arguments and returns commands or
hands them to a callback you supply, so it can be run and tested without
the robot.

## Installing

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `omnibot.geometry` | `Pose2D`, `Quaternion`, `wrap_angle`, `euler_to_quaternion`, `quaternion_from_yaw`, `yaw_from_quaternion` |
| `omnibot.kinematics` | `inverse_kinematics`, `to_dynamixel_units`, `wheel_commands`, `forward_kinematics` for the X-configured omni base |
| `omnibot.pose_estimation` | `BiquadFilter`, `BandPassFilter`, `GyroYawEstimator`, `PoseEstimator` and its `OdometryEstimate` result |
| `omnibot.pose_controller` | `PidGains` and `PoseController`, which turns a goal pose into robot-frame velocities |
| `omnibot.odom_logger` | `OdomLogger`, which writes odometry samples to a CSV file |
| `omnibot.waypoints` | `ActionType`, `Waypoint`, `default_route`, `position_error`, `orientation_error`, `WaypointStateMachine` |
| `omnibot.actuators` | `PositionCommand`, `MotorQueue`, the `ServoBus` protocol, `MotorScheduler`, `Requests` and the scoop/sort/beacon/dump `Mechanism` |
| `omnibot.firmware` | Wheel velocity clamping and servo mapping, request topic routing, sensor thresholds, `RangeReading`, `LaserScan`, `build_scan` |

## Examples

Servo wheel commands for a robot-frame velocity (x and y in m/s, omega in
rad/s), converted to units of 0.229 rpm and limited to ±230:

```python
from omnibot.kinematics import inverse_kinematics, wheel_commands

inverse_kinematics(0.2, 0.0, 0.0)   # four wheel speeds in rad/s
wheel_commands(0.2, 0.0, 0.0)       # the same as clamped servo units
```

Angles and headings:

```python
from omnibot.geometry import wrap_angle, quaternion_from_yaw, yaw_from_quaternion

wrap_angle(4.0)                                  # 4.0 - 2*pi
yaw_from_quaternion(quaternion_from_yaw(1.2))    # 1.2
```

Dead reckoning: record encoder angles and gyro readings, then call
`step()` once per period. It returns `None` until encoder 0 and the gyro
have both reported, then an `OdometryEstimate`.

```python
from omnibot.pose_estimation import PoseEstimator

estimator = PoseEstimator()          # 30 Hz, starting at (0.79375, 0.150, 0.0)
for index in range(4):
    estimator.set_encoder(index, 0.0)
estimator.on_imu(0.0, stamp=0.0)
estimate = estimator.step()
estimate.pose, estimate.vx, estimate.vy, estimate.omega
```

The gyro yaw estimator spends its first 100 readings measuring bias before
it integrates.

Pose control: the controller returns nothing until `proceed()` has been
called, then one local velocity per `update()`:

```python
from omnibot.geometry import Pose2D, Quaternion
from omnibot.pose_controller import PoseController

controller = PoseController()
controller.set_goal(Pose2D(1.0, 0.5, 0.0))
controller.set_odometry(0.8, 0.15, Quaternion())
controller.proceed()
controller.update(0.1)               # (vx, vy, vz) in the robot frame
```

Walking the route: the state machine hands each waypoint to `publish`,
fires the waypoint's action once the robot is within tolerance and, at
waiting waypoints, holds until a proceed signal arrives.

```python
from omnibot.geometry import Pose2D
from omnibot.waypoints import WaypointStateMachine

sent = []
machine = WaypointStateMachine(publish=lambda topic, value: sent.append((topic, value)))
machine.start()                                  # sends the first waypoint on "/waypoint"
machine.on_pose(Pose2D(0.79375, 0.150, 0.0))     # reached, waiting
machine.on_proceed(True)
machine.on_pose(Pose2D(0.79375, 0.150, 0.0))     # moves on to the next waypoint
```

Mechanism servos: `MotorScheduler` drives any object with
`goal_position(motor_id, position)` and `present_position(motor_id)`
methods, and `Mechanism` steps the four state machines on top of it.

```python
from omnibot.actuators import MotorScheduler, Mechanism, Requests

class FakeBus:
    def __init__(self):
        self.positions = {}
    def goal_position(self, motor_id, position):
        self.positions[motor_id] = position
        return True
    def present_position(self, motor_id):
        return self.positions.get(motor_id)

scheduler = MotorScheduler(FakeBus())
requests = Requests(scoop=True)
mechanism = Mechanism(
    scheduler,
    publish=lambda topic, value: None,
    detect_ore=lambda: False,
    detect_mag=lambda: False,
    requests=requests,
)
for now in range(0, 5000, 20):
    mechanism.step(now)
    scheduler.update(now)
```

Range scans: each valid reading is converted to metres and offset by the
sensor mounting distance; invalid ones become NaN.

```python
from omnibot.firmware import RangeReading, build_scan

scan = build_scan([RangeReading(500), RangeReading(800), RangeReading(0, 2), RangeReading(1200)])
scan.ranges            # (0.64, 0.94, nan, 1.34)
```

Logging odometry to CSV; the file is truncated and a header row written on
open:

```python
from omnibot.geometry import Quaternion
from omnibot.odom_logger import OdomLogger

with OdomLogger("odom.csv") as logger:
    logger.log(12.5, (0.8, 0.15, 0.0), Quaternion())
```

## Units and conventions

* Distances are in metres, angles in radians and times in seconds, except
  where a name says otherwise: the mechanism code takes times and wait
  times in milliseconds, and positions in servo ticks.
* Wheel speed commands from `wheel_commands` are limited to ±230 servo
  units; `clamp_wheel_velocity` limits raw requests to ±1023.

## What this package does not do

It holds no messaging layer, servo bus driver or sensor driver, and it
installs no command. Connecting the state machines, estimators and
controllers to real topics and hardware, and running them in a loop at
their rates, is left to the program that uses the package.