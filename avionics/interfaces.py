"""Protocols for the collaborators the flight software talks to.

The guidance solver, the kinematics source and the actuators live outside
this package. Flight software only depends on these protocols, so a
simulator, a hardware bridge or a test double can stand behind them.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from ascent.kinematics import Kinematics
from ascent.mission import Target
from ascent.vehicle import Stage


class SteeringSolution(NamedTuple):
    """Outputs of one solver iteration.

    Attributes:
        tb: Time burned in the current stage [s]
        tgo: Time to go until cutoff [s]
        vgo: Velocity to be gained [m/s]
        direction: Commanded thrust direction (unit vector), None if unknown
    """
    tb: float
    tgo: float
    vgo: NDArray[np.float64]
    direction: NDArray[np.float64] | None


@dataclass
class GuidanceState:
    """Guidance internal state carried from one cycle to the next.

    Attributes:
        memory: Solver-specific iteration memory
        tb: Time burned in the current stage [s]
        tgo: Time to go from the last iteration [s]
        vgo: Velocity to be gained [m/s]
        direction: Last direction produced by the solver
    """
    memory: Any
    tb: float = 0.0
    tgo: float = 0.0
    vgo: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    direction: NDArray[np.float64] | None = None

    @classmethod
    def from_solution(cls, memory: Any, solution: SteeringSolution) -> "GuidanceState":
        return cls(
            memory=memory,
            tb=solution.tb,
            tgo=solution.tgo,
            vgo=solution.vgo,
            direction=solution.direction,
        )


class StagingNotification(NamedTuple):
    """Message from the staging sequencer: guidance must re-converge.

    Attributes:
        stage_index: Index of the stage that just became active
        time: Mission clock when the early staging trigger fired [s]
    """
    stage_index: int
    time: float


# =============================================================================
# Solver
# =============================================================================


@runtime_checkable
class Solver(Protocol):
    """Closed-loop ascent guidance solver (e.g. UPFG).

    Both methods return ``(memory, solution)``: the solver's opaque
    iteration memory and the steering solution. The solver is treated as a
    pure function and is called at most once per tick.
    """

    def initialize(self, target: Target, kinematics: Kinematics) -> tuple[Any, SteeringSolution]:
        """Seed iteration memory from the current state."""
        ...

    def solve(
        self,
        stages: Sequence[Stage],
        target: Target,
        kinematics: Kinematics,
        state: GuidanceState,
    ) -> tuple[Any, SteeringSolution]:
        """Run one iteration over ``stages`` (active stage first) from ``state``."""
        ...


# =============================================================================
# Sensors and Actuators
# =============================================================================


@runtime_checkable
class KinematicsProvider(Protocol):
    """Source of per-tick kinematics in the guidance frame."""

    def read(self) -> Kinematics:
        ...


@runtime_checkable
class Actuator(Protocol):
    """Fire-and-forget vehicle commands."""

    def set_attitude(self, direction: NDArray[np.float64], roll: float) -> None:
        """Point the thrust axis along ``direction`` with the given roll [deg]."""
        ...

    def trigger_staging(self) -> None:
        """Fire the next staging action."""
        ...

    def set_ullage_thrusters(self, on: bool) -> None:
        """Switch ullage RCS thrusters."""
        ...

    def set_throttle(self, value: float) -> None:
        """Command main-engine throttle [0, 1]."""
        ...
