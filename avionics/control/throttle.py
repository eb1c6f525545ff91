"""Per-cycle throttle control honoring stage acceleration limits.

Fixed-throttle stages fly at their configured fraction. Constant-
acceleration stages throttle down as propellant burns so that thrust
tracks mass:

    throttle = fraction * (m * gLim * g0) / F_eff,    F_eff = fraction * F_rated

which makes ``throttle * F_rated == m * gLim * g0``.

While staging is in progress the previous stage is still the one burning,
so its parameters are used until ignition hands over.

This is flight software - designed to run on the vehicle.

Example:
    >>> from avionics.control import ThrottleController
    >>>
    >>> controller = ThrottleController(sink)
    >>> cmd = controller.compute(stages, flight_state, mass=kinematics.mass)
    >>> actuator.set_throttle(cmd)
"""

from dataclasses import dataclass

from beartype import beartype

from ascent.constants import G0
from ascent.diagnostics import DiagnosticsSink, Priority
from ascent.errors import ConfigurationError
from ascent.vehicle import Stage, StageMode
from avionics.state import FlightState


@beartype
@dataclass
class ThrottleController:
    """Throttle command from the burning stage's mode.

    Attributes:
        sink: Diagnostics sink for configuration faults
        min_throttle: Lower clip of the command
        max_throttle: Upper clip of the command
    """
    sink: DiagnosticsSink
    min_throttle: float = 0.0
    max_throttle: float = 1.0

    @staticmethod
    def burning_stage(state: FlightState) -> int:
        """Index of the stage whose parameters are authoritative this cycle."""
        if state.staging_in_progress:
            return max(state.active_stage - 1, 0)
        return state.active_stage

    def compute(self, stages: list[Stage], state: FlightState, mass: float) -> float:
        """Throttle command for the current cycle.

        Args:
            stages: Stage list
            state: Shared flight state
            mass: Current vehicle mass [kg]

        Returns:
            Throttle in [min_throttle, max_throttle]

        Raises:
            ConfigurationError: On an unknown stage mode
        """
        stage = stages[self.burning_stage(state)]

        if stage.mode == StageMode.FIXED_THROTTLE:
            throttle = stage.throttle
        elif stage.mode == StageMode.CONST_ACCELERATION:
            throttle = stage.throttle * (mass * stage.acceleration_limit * G0) / stage.thrust
        else:
            self.sink.push_message(
                f"Stage '{stage.name}' has unknown mode {stage.mode!r}", Priority.CRITICAL
            )
            raise ConfigurationError(f"Unknown stage mode {stage.mode!r}")

        return max(self.min_throttle, min(self.max_throttle, throttle))
