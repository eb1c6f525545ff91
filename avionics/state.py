"""Shared flight state, owned by the flight computer.

Every flag more than one component reads lives here, in a single object
passed explicitly to the components that need it. Cross-component
signals (the staging notification) are queued messages delivered by the
flight computer at a fixed point of the tick.
"""

from collections import deque
from dataclasses import dataclass, field

from avionics.interfaces import StagingNotification


@dataclass
class FlightState:
    """Mutable state shared by sequencer, guidance and throttle control.

    Attributes:
        active_stage: Index of the stage guidance plans from
        staging_in_progress: True from the early staging trigger until ignition
        liftoff_time: Mission clock at liftoff [s], None before start
        roll: Roll reference for attitude commands [deg]
        open_loop_throttle: Throttle used before closed-loop guidance
        notifications: Staging notifications awaiting delivery to guidance
    """
    active_stage: int = 0
    staging_in_progress: bool = False
    liftoff_time: float | None = None
    roll: float = 0.0
    open_loop_throttle: float = 1.0
    notifications: deque[StagingNotification] = field(default_factory=deque)

    def mission_time(self, offset: float) -> float:
        """Absolute mission clock of an offset from liftoff."""
        if self.liftoff_time is None:
            raise RuntimeError("Liftoff time not set")
        return self.liftoff_time + offset
