"""Avionics - flight software for the closed-loop ascent.

This package contains the components that run on the flight computer:
event sequencing, the guidance convergence gate and throttle control,
tied together by a fixed-rate control loop. The vehicle and mission
model they consume live in ``ascent``.

Architecture:
    The guidance solver, the kinematics source and the actuators are
    external collaborators behind the protocols in ``avionics.interfaces``.
    A simulator, a hardware bridge or a test double can stand behind them.

    Control loop:
        kin = sensors.read()                    # "Sensors"
        fire due events                         # countdown, user, staging
        cmd = guidance.cycle(stages, kin, ...)  # Trusted only once converged
        actuator.set_attitude(cmd.direction)
        actuator.set_throttle(throttle.compute(...))

Subpackages:
    sequencing: Staging sequencer, countdown and user sequence
    guidance: Convergence gate around the guidance solver
    control: Throttle control

Example:
    >>> from ascent import load_flight_plan
    >>> from avionics import FlightComputer
    >>>
    >>> plan = load_flight_plan("missions/leo.json")
    >>> fc = FlightComputer.from_plan(plan, solver, sensors, actuator)
    >>> fc.start(liftoff_time=10.0)
    >>> while not fc.complete:
    ...     fc.tick()
"""

from avionics.computer import FlightComputer
from avionics.control import ThrottleController
from avionics.guidance import GuidanceCommand, GuidanceConvergenceController
from avionics.interfaces import (
    Actuator,
    GuidanceState,
    KinematicsProvider,
    Solver,
    StagingNotification,
    SteeringSolution,
)
from avionics.sequencing import StagingSequencer, SystemSequence, UserSequence
from avionics.state import FlightState
from avionics.telemetry import FlightLog, TelemetryFrame

__all__ = [
    # Control loop
    "FlightComputer",
    "FlightLog",
    "FlightState",
    "TelemetryFrame",
    # Components
    "GuidanceCommand",
    "GuidanceConvergenceController",
    "StagingSequencer",
    "SystemSequence",
    "ThrottleController",
    "UserSequence",
    # Interfaces
    "Actuator",
    "GuidanceState",
    "KinematicsProvider",
    "Solver",
    "StagingNotification",
    "SteeringSolution",
]
