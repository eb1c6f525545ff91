"""System countdown and user-authored event sequences.

The system table is informational: a T-minus countdown and the liftoff
call. The user table carries mission-specific actions authored in the
flight plan:

    print      report ``message``
    stage      fire a staging action (fairings, escape tower, ...)
    jettison   drop ``mass_lost`` kg from the remaining stages' budgets
    throttle   set the open-loop throttle used before guidance activation
    roll       change the roll reference of attitude commands
"""

from ascent.diagnostics import DiagnosticsSink, Priority
from ascent.events import Event, EventAction
from ascent.vehicle import Stage
from avionics.interfaces import Actuator
from avionics.state import FlightState


def build_system_events(countdown: int) -> list[Event]:
    """Countdown messages from T-``countdown`` s and the liftoff call."""
    events = [
        Event(float(-t), EventAction.PRINT, f"T-{t}")
        for t in range(countdown, 0, -1)
    ]
    events.append(Event(0.0, EventAction.PRINT, "Liftoff"))
    return events


class SystemSequence:
    """Handler of the system table."""

    TABLE = "system"

    def __init__(self, sink: DiagnosticsSink) -> None:
        self.sink = sink

    def handle(self, event: Event) -> None:
        if event.action != EventAction.PRINT:
            raise ValueError(f"Unexpected system action: {event.action}")
        self.sink.push_message(event.message, Priority.LOW)


class UserSequence:
    """Handler of the user table.

    Args:
        stages: Stage list; jettison edits the active and later stages
        state: Shared flight state
        actuator: Vehicle actuation
        sink: Diagnostics sink
    """

    TABLE = "user"

    def __init__(
        self,
        stages: list[Stage],
        state: FlightState,
        actuator: Actuator,
        sink: DiagnosticsSink,
    ) -> None:
        self.stages = stages
        self.state = state
        self.actuator = actuator
        self.sink = sink

    def handle(self, event: Event) -> None:
        """Execute one user event."""
        if event.action == EventAction.PRINT:
            pass
        elif event.action == EventAction.STAGE:
            self.actuator.trigger_staging()
        elif event.action == EventAction.JETTISON:
            mass_lost = event.payload["mass_lost"]
            for stage in self.stages[self.state.active_stage:]:
                stage.jettison_mass(mass_lost)
        elif event.action == EventAction.THROTTLE:
            self.state.open_loop_throttle = event.payload["value"]
        elif event.action == EventAction.ROLL:
            self.state.roll = event.payload["angle"]
        else:
            raise ValueError(f"Unexpected user action: {event.action}")

        if event.message:
            self.sink.push_message(event.message, Priority.LOW)
