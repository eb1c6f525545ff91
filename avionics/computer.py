"""Flight computer: the fixed-rate control loop of the ascent.

Owns the stage list, the shared flight state, the deadline queue and the
three event tables (system countdown, user sequence, automatic staging),
and wires them to guidance and throttle control. Every tick runs in a
fixed order:

    1. Read kinematics
    2. Fire due deadlines, each on its own table
    3. Guidance (once time >= liftoff + guidance_activation):
         activate once, deliver staging notifications, cycle the solver,
         forward any direction to the attitude actuator
    4. Throttle: closed-loop after guidance activation, open-loop before
    5. Terminal count: cut off when the frozen cutoff time is reached
    6. Record telemetry

Everything runs on one logical thread; no component is re-entered while a
tick is in progress.

This is flight software - designed to run on the vehicle.

Example:
    >>> from ascent import load_flight_plan
    >>> from avionics import FlightComputer
    >>>
    >>> plan = load_flight_plan("missions/leo.json")
    >>> fc = FlightComputer.from_plan(plan, solver, sensors, actuator)
    >>> fc.start(liftoff_time=10.0)
    >>> while not fc.complete:
    ...     fc.tick()
    >>> df = fc.log.to_dataframe()
"""

import copy
import logging

from ascent.config import FlightPlan, FlightSettings
from ascent.diagnostics import DiagnosticsSink, LoggingSink, Priority
from ascent.events import DeadlineQueue, Event, EventTable
from ascent.kinematics import Kinematics
from ascent.mission import Target
from ascent.vehicle import Stage, split_stages
from avionics.control import ThrottleController
from avionics.guidance import GuidanceCommand, GuidanceConvergenceController
from avionics.interfaces import Actuator, KinematicsProvider, Solver
from avionics.sequencing import (
    StagingSequencer,
    SystemSequence,
    UserSequence,
    build_system_events,
)
from avionics.state import FlightState
from avionics.telemetry import FlightLog, TelemetryFrame

logger = logging.getLogger(__name__)


class FlightComputer:
    """Fixed-rate ascent control loop.

    Args:
        stages: Prepared stages; split at their acceleration limits here
        target: Insertion target
        solver: Closed-loop guidance solver
        provider: Kinematics source
        actuator: Vehicle actuation
        sink: Diagnostics sink, a LoggingSink if None
        settings: Flight software tunables
        sequence: User event table entries, time ordered
    """

    def __init__(
        self,
        stages: list[Stage],
        target: Target,
        solver: Solver,
        provider: KinematicsProvider,
        actuator: Actuator,
        sink: DiagnosticsSink | None = None,
        settings: FlightSettings | None = None,
        sequence: list[Event] | None = None,
    ) -> None:
        if not stages:
            raise ValueError("Flight computer needs at least one stage")
        self.settings = settings if settings is not None else FlightSettings()
        self.sink = sink if sink is not None else LoggingSink()
        self.provider = provider
        self.actuator = actuator

        # Own copies: splitting, m0 locks and jettison edit stages in place
        self.stages = split_stages(copy.deepcopy(stages))
        self.state = FlightState()
        self.queue = DeadlineQueue()

        self.guidance = GuidanceConvergenceController(
            solver,
            target,
            self.sink,
            drift_threshold=self.settings.drift_threshold,
            stability_threshold=self.settings.stability_threshold,
            finalization_time=self.settings.finalization_time,
        )
        self.throttle = ThrottleController(self.sink)

        self.sequencer = StagingSequencer(
            self.stages,
            self.state,
            actuator,
            self.sink,
            self.queue,
            lead_time=self.settings.staging_lead_time,
        )
        system = SystemSequence(self.sink)
        user = UserSequence(self.stages, self.state, actuator, self.sink)
        self.tables: dict[str, EventTable] = {
            SystemSequence.TABLE: EventTable(
                SystemSequence.TABLE, build_system_events(self.settings.countdown), system.handle, self.queue,
            ),
            UserSequence.TABLE: EventTable(
                UserSequence.TABLE, list(sequence or []), user.handle, self.queue,
            ),
            StagingSequencer.TABLE: self.sequencer.table,
        }

        self.log = FlightLog()
        self.complete = False
        self._last_command: GuidanceCommand | None = None

        logger.info(
            "Flight computer ready: %d stages (%d after splitting)", len(stages), len(self.stages)
        )

    @classmethod
    def from_plan(
        cls,
        plan: FlightPlan,
        solver: Solver,
        provider: KinematicsProvider,
        actuator: Actuator,
        sink: DiagnosticsSink | None = None,
    ) -> "FlightComputer":
        """Build a flight computer from a validated flight plan."""
        return cls(
            plan.stages,
            plan.target,
            solver,
            provider,
            actuator,
            sink=sink,
            settings=plan.settings,
            sequence=plan.sequence,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def liftoff_time(self) -> float | None:
        return self.state.liftoff_time

    @property
    def guidance_start(self) -> float:
        """Mission clock at which closed-loop guidance takes over [s]."""
        return self.state.mission_time(self.settings.guidance_activation)

    def start(self, liftoff_time: float) -> None:
        """Fix the liftoff time and bootstrap every event table.

        The countdown is scheduled at negative offsets, so ``start`` should
        be called at least ``settings.countdown`` seconds before liftoff.
        """
        if self.state.liftoff_time is not None:
            raise RuntimeError("Flight computer already started")
        self.state.liftoff_time = liftoff_time
        self.state.roll = self.settings.initial_roll
        self.state.open_loop_throttle = self.settings.initial_throttle
        self.stages[0].lock_m0()

        for table in self.tables.values():
            table.invoke(liftoff_time)
        logger.info("Liftoff scheduled at t=%.2f", liftoff_time)

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self) -> TelemetryFrame:
        """Run one control cycle and return its telemetry frame."""
        if self.state.liftoff_time is None:
            raise RuntimeError("Flight computer ticked before start")
        kinematics = self.provider.read()
        time = kinematics.time
        liftoff = self.state.liftoff_time

        for tag in self.queue.pop_due(time):
            self.tables[tag].invoke(liftoff)

        command = None
        if self.complete:
            throttle = 0.0
        elif time >= self.guidance_start:
            if not self.guidance.active:
                self.state.notifications.clear()
                self.guidance.activate(kinematics)
            while self.state.notifications:
                self.guidance.notify_staging(self.state.notifications.popleft(), kinematics)

            command = self.guidance.cycle(
                self.stages[self.state.active_stage:], kinematics, self.state.staging_in_progress,
            )
            if command.direction is not None:
                self.actuator.set_attitude(command.direction, self.state.roll)
            throttle = self.throttle.compute(self.stages, self.state, float(kinematics.mass))
        else:
            # Nothing listens before guidance is active
            self.state.notifications.clear()
            throttle = self.state.open_loop_throttle

        cutoff = self.guidance.cutoff_time
        if not self.complete and cutoff is not None and time >= cutoff:
            throttle = 0.0
            self.complete = True
            self.sink.push_message(f"MECO at t={time:.2f}", Priority.HIGH)

        self.actuator.set_throttle(throttle)

        if command is not None:
            self._last_command = command
        frame = self._frame(kinematics, throttle, command)
        self.log.append(frame)
        return frame

    def _frame(
        self,
        kinematics: Kinematics,
        throttle: float,
        command: GuidanceCommand | None,
    ) -> TelemetryFrame:
        last = command if command is not None else self._last_command
        nan = float("nan")
        return TelemetryFrame(
            time=float(kinematics.time),
            met=float(kinematics.time - self.state.liftoff_time),
            mass=float(kinematics.mass),
            radius=kinematics.radius,
            speed=kinematics.speed,
            active_stage=self.state.active_stage,
            staging=self.state.staging_in_progress,
            guidance_active=self.guidance.active,
            converged=self.guidance.converged,
            stable=last.stable if last is not None else False,
            tgo=float(last.tgo) if last is not None else nan,
            vgo=float(last.vgo) if last is not None else nan,
            throttle=float(throttle),
        )
