"""Automatic staging sequencer.

Builds the staging event table from the stage list and executes it. Each
stage after the first goes through

    IDLE -> AWAITING_JETTISON -> AWAITING_ULLAGE -> AWAITING_IGNITION -> STEADY_BURN

skipping the phases its staging descriptor does not enable. Deadlines are
additive from the stage's activation time::

    activation
      + wait_before_jettison          (jettison.enabled)       -> SEPARATE
      + wait_before_ignition          (ignition.enabled)       -> ULLAGE_START
      + ullage_burn_duration          (ullage rcs / srb)       -> IGNITION
      + post_ullage_burn              (ullage rcs)             -> ULLAGE_STOP

Stage i+1 activates ``max_t`` seconds after stage i ignites; the first
stage ignites at liftoff.

``lead_time`` seconds before each activation an early trigger (PRESTAGE)
advances the active stage index, raises staging-in-progress and queues a
staging notification for guidance, so the solver can pre-converge on the
next stage while attitude is held. Ignition clears staging-in-progress; a
stage without an ignition step (such as a derived constant-acceleration
sub-stage) clears it on activation.

This is flight software - designed to run on the vehicle.
"""

import logging
from enum import Enum

from ascent.diagnostics import DiagnosticsSink, Priority
from ascent.events import DeadlineQueue, Event, EventAction, EventTable
from ascent.vehicle import Stage, UllageMethod
from avionics.interfaces import Actuator, StagingNotification
from avionics.state import FlightState

logger = logging.getLogger(__name__)


class StagePhase(Enum):
    """Staging state of a single stage."""
    IDLE = "idle"
    AWAITING_JETTISON = "awaiting_jettison"
    AWAITING_ULLAGE = "awaiting_ullage"
    AWAITING_IGNITION = "awaiting_ignition"
    STEADY_BURN = "steady_burn"


def build_staging_events(stages: list[Stage], lead_time: float) -> list[Event]:
    """Staging event table for ``stages``, as offsets from liftoff.

    Args:
        stages: Prepared (and split) stage list
        lead_time: Early staging trigger before each activation [s]

    Returns:
        Events ordered by time; each payload carries the stage index
    """
    events: list[Event] = []
    ignition_time = 0.0

    for i in range(1, len(stages)):
        name = stages[i].name
        staging = stages[i].staging
        activation = ignition_time + stages[i - 1].max_t
        prestage = max(activation - lead_time, ignition_time)

        events.append(Event(prestage, EventAction.PRESTAGE, f"Preparing {name}", {"stage": i}))
        events.append(Event(activation, EventAction.ACTIVATE, f"Activating {name}", {"stage": i}))

        t = activation
        if staging.jettison.enabled:
            t += staging.jettison.wait_before_jettison
            events.append(Event(t, EventAction.SEPARATE, "Separation", {"stage": i}))

        ignition = staging.ignition
        if ignition.enabled:
            t += ignition.wait_before_ignition
            if ignition.ullage is not UllageMethod.NONE:
                events.append(Event(
                    t, EventAction.ULLAGE_START, f"Ullage ({ignition.ullage.value})",
                    {"stage": i, "method": ignition.ullage.value},
                ))
                t += ignition.ullage_burn_duration
            events.append(Event(t, EventAction.IGNITION, f"{name} ignition", {"stage": i}))
            if ignition.ullage is UllageMethod.RCS:
                events.append(Event(
                    t + ignition.post_ullage_burn, EventAction.ULLAGE_STOP, "Ullage off", {"stage": i},
                ))

        ignition_time = activation + staging.sequence_duration

    # Stable sort keeps PRESTAGE before ACTIVATE when lead_time is zero
    return sorted(events, key=lambda e: e.time)


class StagingSequencer:
    """Executes the staging event table against the shared flight state.

    Args:
        stages: Prepared (and split) stage list
        state: Shared flight state
        actuator: Vehicle actuation
        sink: Diagnostics sink
        queue: Host deadline queue
        lead_time: Early staging trigger before each activation [s]
    """

    TABLE = "staging"

    def __init__(
        self,
        stages: list[Stage],
        state: FlightState,
        actuator: Actuator,
        sink: DiagnosticsSink,
        queue: DeadlineQueue,
        lead_time: float = 5.0,
    ) -> None:
        self.stages = stages
        self.state = state
        self.actuator = actuator
        self.sink = sink
        self.lead_time = lead_time
        self.phases = [StagePhase.STEADY_BURN] + [StagePhase.IDLE] * (len(stages) - 1)
        self.table = EventTable(self.TABLE, build_staging_events(stages, lead_time), self.handle, queue)

    def handle(self, event: Event) -> None:
        """Execute one staging event."""
        i = event.payload["stage"]
        stage = self.stages[i]
        staging = stage.staging

        if event.action == EventAction.PRESTAGE:
            stage.lock_m0()
            self.state.active_stage = i
            self.state.staging_in_progress = True
            self.state.notifications.append(
                StagingNotification(i, self.state.mission_time(event.time))
            )
            self.phases[i] = StagePhase.IDLE
            logger.info("Pre-staging to %s (index %d)", stage.name, i)

        elif event.action == EventAction.ACTIVATE:
            if staging.jettison.enabled:
                self.phases[i] = StagePhase.AWAITING_JETTISON
                if not staging.ignition.enabled:
                    self._release_staging(i)
            else:
                self._await_ignition(i)

        elif event.action == EventAction.SEPARATE:
            self.actuator.trigger_staging()
            self._await_ignition(i)

        elif event.action == EventAction.ULLAGE_START:
            if staging.ignition.ullage is UllageMethod.RCS:
                self.actuator.set_ullage_thrusters(True)
            else:
                self.actuator.trigger_staging()
            self.phases[i] = StagePhase.AWAITING_IGNITION

        elif event.action == EventAction.IGNITION:
            self.actuator.trigger_staging()
            self._steady_burn(i)

        elif event.action == EventAction.ULLAGE_STOP:
            self.actuator.set_ullage_thrusters(False)

        else:
            raise ValueError(f"Unexpected staging action: {event.action}")

        self.sink.push_message(event.message, Priority.LOW)

    def _await_ignition(self, i: int) -> None:
        ignition = self.stages[i].staging.ignition
        if not ignition.enabled:
            self._steady_burn(i)
        elif ignition.ullage is UllageMethod.NONE:
            self.phases[i] = StagePhase.AWAITING_IGNITION
        else:
            self.phases[i] = StagePhase.AWAITING_ULLAGE

    def _steady_burn(self, i: int) -> None:
        self.phases[i] = StagePhase.STEADY_BURN
        self._release_staging(i)

    def _release_staging(self, i: int) -> None:
        if self.state.active_stage == i:
            self.state.staging_in_progress = False
