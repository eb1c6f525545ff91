"""Convergence gate around the closed-loop guidance solver.

The solver is iterated once per cycle. Its steering output is only trusted
after it has settled: an iteration is *stable* when the time-to-go it
returns matches the previous one minus the time elapsed,

    |(tgo_prev - dt) - tgo| < drift_threshold

A stable iteration whose direction stays within ``stability_threshold`` of
the last accepted direction counts as a pass. Two consecutive passes latch
the controller as converged; from then on the latch is sticky until a
reset. Steering reaches the attitude actuator only while converged and
outside of a staging hand-off.

A stable iteration whose direction jumps away from the last accepted
solution means the solver diverged. Outside of staging this triggers a
full reset (reseed from current kinematics), which is a recovery, not a
failure.

While staging is in progress the solver is pre-converging on the next
stage: no simulated time or burn time accrues (dt = tb = 0) and attitude
is held.

This is flight software - designed to run on the vehicle.

Example:
    >>> controller = GuidanceConvergenceController(solver, target, sink)
    >>> controller.activate(kinematics)
    >>>
    >>> cmd = controller.cycle(stages[active:], kinematics, staging_in_progress)
    >>> if cmd.direction is not None:
    ...     actuator.set_attitude(cmd.direction, roll)
"""

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
from numba import njit
from numpy.typing import NDArray

from ascent.diagnostics import DiagnosticsSink, Priority
from ascent.kinematics import Kinematics
from ascent.mission import Target
from ascent.vehicle import Stage
from avionics.interfaces import GuidanceState, Solver, StagingNotification

logger = logging.getLogger(__name__)

# Consecutive passes needed to latch convergence
REQUIRED_PASSES = 2


@njit(cache=True)
def _angle_between(
    ax: float, ay: float, az: float,
    bx: float, by: float, bz: float,
) -> float:
    """Angle between two vectors [deg]."""
    dot = ax*bx + ay*by + az*bz
    na = np.sqrt(ax*ax + ay*ay + az*az)
    nb = np.sqrt(bx*bx + by*by + bz*bz)
    if na == 0.0 or nb == 0.0:
        return 180.0
    c = dot / (na * nb)
    c = max(-1.0, min(1.0, c))
    return np.degrees(np.arccos(c))


def vector_angle(a: NDArray[np.float64], b: NDArray[np.float64]) -> float:
    """Angle between two direction vectors [deg]."""
    return float(_angle_between(a[0], a[1], a[2], b[0], b[1], b[2]))


# =============================================================================
# Tracker and Command
# =============================================================================


@dataclass
class ConvergenceTracker:
    """Iteration-to-iteration convergence bookkeeping.

    Attributes:
        last_iteration_time: Mission clock of the last solver call [s]
        last_good_direction: Last direction sent to the actuator, None = unset
        passes: Times of the most recent passing iterations
        converged: Sticky convergence latch
    """
    last_iteration_time: float = 0.0
    last_good_direction: NDArray[np.float64] | None = None
    passes: deque[float] = field(default_factory=lambda: deque(maxlen=REQUIRED_PASSES))
    converged: bool = False

    def clear(self, time: float) -> None:
        self.last_iteration_time = time
        self.last_good_direction = None
        self.passes.clear()
        self.converged = False


class GuidanceCommand(NamedTuple):
    """Output of one guidance cycle.

    Attributes:
        direction: Direction to steer to, None to hold the current attitude
        converged: Convergence latch after this cycle
        stable: Whether this iteration's tgo matched the prediction
        tgo: Time to go [s]
        vgo: Velocity to be gained, magnitude [m/s]
        terminal: Steering frozen for cutoff
    """
    direction: NDArray[np.float64] | None
    converged: bool
    stable: bool
    tgo: float
    vgo: float
    terminal: bool = False


# =============================================================================
# Controller
# =============================================================================


class GuidanceConvergenceController:
    """Solver wrapper deciding when steering output may be used.

    Args:
        solver: Closed-loop guidance solver
        target: Insertion target
        sink: Diagnostics sink
        drift_threshold: Max tgo prediction error for a stable iteration [s]
        stability_threshold: Max direction change between passes [deg]
        finalization_time: Freeze steering once tgo drops below this [s], 0 = never
    """

    def __init__(
        self,
        solver: Solver,
        target: Target,
        sink: DiagnosticsSink,
        drift_threshold: float = 0.1,
        stability_threshold: float = 15.0,
        finalization_time: float = 0.0,
    ) -> None:
        self.solver = solver
        self.target = target
        self.sink = sink
        self.drift_threshold = drift_threshold
        self.stability_threshold = stability_threshold
        self.finalization_time = finalization_time

        self.tracker = ConvergenceTracker()
        self._state: GuidanceState | None = None
        self._terminal = False
        self._cutoff_time: float | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._state is not None

    def activate(self, kinematics: Kinematics) -> None:
        """Seed the internal state when closed-loop guidance starts."""
        memory, solution = self.solver.initialize(self.target, kinematics)
        self._state = GuidanceState.from_solution(memory, solution)
        self.tracker.clear(kinematics.time)
        self._terminal = False
        self._cutoff_time = None
        logger.info("Guidance active at t=%.2f", kinematics.time)

    def reset(self, kinematics: Kinematics, staging_in_progress: bool, reason: str) -> None:
        """Full reset: reseed the solver and clear the convergence latch.

        Burn time in the current stage is kept unless staging is in
        progress, in which case the new stage has burned nothing yet.
        """
        tb = 0.0 if staging_in_progress or self._state is None else self._state.tb
        memory, solution = self.solver.initialize(self.target, kinematics)
        self._state = GuidanceState.from_solution(memory, solution)
        self._state.tb = tb
        self.tracker.clear(kinematics.time)
        self._terminal = False
        self._cutoff_time = None
        self.sink.push_message(f"Guidance reset: {reason}", Priority.CRITICAL)

    def notify_staging(self, notification: StagingNotification, kinematics: Kinematics) -> None:
        """Handle the early staging trigger: re-converge for the next stage."""
        self.reset(
            kinematics,
            staging_in_progress=True,
            reason=f"staging to stage {notification.stage_index + 1}",
        )

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    def cycle(
        self,
        stages: Sequence[Stage],
        kinematics: Kinematics,
        staging_in_progress: bool,
    ) -> GuidanceCommand:
        """Run one guidance iteration.

        Args:
            stages: Stages from the active one onward
            kinematics: Current kinematics
            staging_in_progress: Whether a staging hand-off is under way

        Returns:
            GuidanceCommand; ``direction`` is set only when steering may be applied
        """
        if self._state is None:
            raise RuntimeError("Guidance cycle requested before activation")
        if self._terminal:
            return self._command(None, stable=True)

        previous = self._state
        elapsed = kinematics.time - self.tracker.last_iteration_time

        memory, solution = self.solver.solve(stages, self.target, kinematics, previous)
        state = GuidanceState.from_solution(memory, solution)
        if staging_in_progress:
            elapsed = 0.0
            state.tb = 0.0
        self.tracker.last_iteration_time = kinematics.time
        self._state = state

        expected_tgo = previous.tgo - elapsed
        stable = abs(expected_tgo - state.tgo) < self.drift_threshold
        logger.debug(
            "t=%.2f tgo=%.3f expected=%.3f stable=%s", kinematics.time, state.tgo, expected_tgo, stable
        )

        if stable and state.direction is not None:
            last = self.tracker.last_good_direction
            if last is None:
                self.tracker.passes.append(kinematics.time)
            else:
                angle = vector_angle(state.direction, last)
                if angle < self.stability_threshold:
                    self.tracker.passes.append(kinematics.time)
                elif not staging_in_progress:
                    self.reset(
                        kinematics,
                        staging_in_progress=False,
                        reason=f"steering jumped {angle:.1f} deg",
                    )
                    return self._command(None, stable=True)
        elif not stable and not self.tracker.converged:
            self.tracker.passes.clear()

        if len(self.tracker.passes) >= REQUIRED_PASSES and not self.tracker.converged:
            self.tracker.converged = True
            self.sink.push_message("Guidance converged", Priority.LOW)

        direction = None
        if self.tracker.converged and not staging_in_progress and state.direction is not None:
            direction = state.direction
            self.tracker.last_good_direction = np.array(direction, dtype=np.float64)
            self._check_terminal(kinematics, state)

        return self._command(direction, stable=stable)

    def _check_terminal(self, kinematics: Kinematics, state: GuidanceState) -> None:
        if self.finalization_time > 0 and state.tgo < self.finalization_time:
            self._terminal = True
            self._cutoff_time = kinematics.time + state.tgo
            self.sink.push_message(
                f"Terminal count: cutoff in {state.tgo:.1f} s", Priority.HIGH
            )

    def _command(self, direction: NDArray[np.float64] | None, stable: bool) -> GuidanceCommand:
        state = self._state
        return GuidanceCommand(
            direction=direction,
            converged=self.tracker.converged,
            stable=stable,
            tgo=state.tgo,
            vgo=float(np.linalg.norm(state.vgo)),
            terminal=self._terminal,
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> GuidanceState | None:
        """Internal state after the last cycle."""
        return self._state

    @property
    def converged(self) -> bool:
        return self.tracker.converged

    @property
    def terminal(self) -> bool:
        """Whether steering is frozen awaiting cutoff."""
        return self._terminal

    @property
    def cutoff_time(self) -> float | None:
        """Mission clock at which the engines should be cut off, once terminal."""
        return self._cutoff_time
