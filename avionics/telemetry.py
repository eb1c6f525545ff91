"""Per-tick telemetry recorded by the flight computer."""

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
import polars as pl
from numpy.typing import NDArray


class TelemetryFrame(NamedTuple):
    """Snapshot of one control tick.

    Attributes:
        time: Mission clock [s]
        met: Time since liftoff [s]
        mass: Vehicle mass [kg]
        radius: Distance from Earth's center [m]
        speed: Inertial speed [m/s]
        active_stage: Active stage index
        staging: Staging hand-off in progress
        guidance_active: Closed-loop guidance running
        converged: Guidance convergence latch
        stable: Last guidance iteration was stable
        tgo: Time to go [s], NaN before guidance activation
        vgo: Velocity to be gained [m/s], NaN before guidance activation
        throttle: Commanded throttle
    """
    time: float
    met: float
    mass: float
    radius: float
    speed: float
    active_stage: int
    staging: bool
    guidance_active: bool
    converged: bool
    stable: bool
    tgo: float
    vgo: float
    throttle: float


@dataclass
class FlightLog:
    """Ordered telemetry frames of one flight."""
    frames: list[TelemetryFrame] = field(default_factory=list)

    def append(self, frame: TelemetryFrame) -> None:
        self.frames.append(frame)

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def time(self) -> NDArray[np.float64]:
        """Mission clock history [s]."""
        return np.array([f.time for f in self.frames])

    @property
    def throttle(self) -> NDArray[np.float64]:
        """Throttle command history."""
        return np.array([f.throttle for f in self.frames])

    def to_dataframe(self) -> pl.DataFrame:
        """Convert to Polars DataFrame, one row per tick."""
        return pl.DataFrame(
            [f._asdict() for f in self.frames],
            schema={
                "time": pl.Float64,
                "met": pl.Float64,
                "mass": pl.Float64,
                "radius": pl.Float64,
                "speed": pl.Float64,
                "active_stage": pl.Int64,
                "staging": pl.Boolean,
                "guidance_active": pl.Boolean,
                "converged": pl.Boolean,
                "stable": pl.Boolean,
                "tgo": pl.Float64,
                "vgo": pl.Float64,
                "throttle": pl.Float64,
            },
        )
