"""Shared fixtures and test doubles for the flight software tests."""

import numpy as np
import pytest

from ascent.constants import R_EARTH_EQ
from ascent.diagnostics import LoggingSink
from ascent.kinematics import Kinematics
from ascent.mission import MissionConfig, Target
from ascent.vehicle import Engine, Stage, StagingDescriptor, prepare_stages
from avionics.interfaces import SteeringSolution


def make_kinematics(time: float, mass: float = 40000.0) -> Kinematics:
    return Kinematics(
        time=float(time),
        mass=float(mass),
        position=np.array([R_EARTH_EQ + 100e3, 0.0, 0.0]),
        velocity=np.array([0.0, 2000.0, 500.0]),
    )


class LinearSolver:
    """Solver whose tgo counts down to a fixed cutoff time.

    ``tgo_error`` and ``direction`` can be changed between calls to make
    iterations unstable or make the steering jump.
    """

    def __init__(self, cutoff: float = 100.0, direction=(1.0, 0.0, 0.0)) -> None:
        self.cutoff = cutoff
        self.direction = np.array(direction, dtype=np.float64)
        self.tgo_error = 0.0
        self.initialize_calls = 0
        self.solve_calls: list[tuple[int, float]] = []

    def _solution(self, time: float) -> SteeringSolution:
        tgo = self.cutoff - time + self.tgo_error
        return SteeringSolution(
            tb=time,
            tgo=tgo,
            vgo=np.array([tgo * 10.0, 0.0, 0.0]),
            direction=self.direction.copy(),
        )

    def initialize(self, target, kinematics):
        self.initialize_calls += 1
        return {"seed": kinematics.time}, self._solution(kinematics.time)

    def solve(self, stages, target, kinematics, state):
        self.solve_calls.append((len(stages), kinematics.time))
        return state.memory, self._solution(kinematics.time)


class RecordingActuator:
    """Actuator that records every command."""

    def __init__(self) -> None:
        self.attitudes: list[tuple[np.ndarray, float]] = []
        self.staging_triggers = 0
        self.ullage: list[bool] = []
        self.throttles: list[float] = []

    def set_attitude(self, direction, roll: float) -> None:
        self.attitudes.append((np.array(direction), roll))

    def trigger_staging(self) -> None:
        self.staging_triggers += 1

    def set_ullage_thrusters(self, on: bool) -> None:
        self.ullage.append(on)

    def set_throttle(self, value: float) -> None:
        self.throttles.append(value)


class ClockProvider:
    """Kinematics source driven by the test."""

    def __init__(self, time: float = 0.0, mass: float = 40000.0) -> None:
        self.time = time
        self.mass = mass

    def read(self) -> Kinematics:
        return make_kinematics(self.time, self.mass)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sink():
    return LoggingSink()


@pytest.fixture
def actuator():
    return RecordingActuator()


@pytest.fixture
def solver():
    return LinearSolver()


@pytest.fixture
def target():
    return Target.from_mission(MissionConfig(periapsis=200e3, apoapsis=200e3))


@pytest.fixture
def two_stage_vehicle():
    """Core (100 s burn) and upper stage (~166.7 s burn), no acceleration limits."""
    return prepare_stages([
        Stage(
            name="Core",
            engines=[Engine(isp=333.4, thrust=981000.0, flow=300.0)],
            mass_total=50000.0,
            mass_fuel=30000.0,
        ),
        Stage(
            name="Upper",
            engines=[Engine(isp=340.0, thrust=200000.0, flow=60.0)],
            mass_total=15000.0,
            mass_fuel=10000.0,
            staging=StagingDescriptor(),
        ),
    ])
