"""Stage, engine and staging descriptor records.

A vehicle is an ordered list of stages. Each stage is a typed record with
an enum discriminator for its guidance mode, so downstream code matches on
``StageMode`` instead of looking up loosely keyed fields.

Mass bookkeeping follows the convention that every stage describes the
whole stack at the moment that stage is burning: ``mass_total`` includes
every upper stage and the payload.

Example:
    >>> from ascent.vehicle import Engine, Stage, StageMode
    >>>
    >>> stage = Stage(
    ...     name="Core",
    ...     engines=[Engine(isp=320.0, thrust=981000.0)],
    ...     mass_total=50000.0,
    ...     mass_dry=20000.0,
    ...     acceleration_limit=3.0,
    ... )
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from beartype import beartype

from ascent.constants import G0

# =============================================================================
# Discriminators
# =============================================================================


class StageMode(IntEnum):
    """Guidance mode of a stage."""
    FIXED_THROTTLE = 1
    CONST_ACCELERATION = 2


class UllageMethod(Enum):
    """How propellant is settled before main-engine ignition."""
    NONE = "none"
    RCS = "rcs"
    SRB = "srb"


# =============================================================================
# Engine
# =============================================================================


@beartype
@dataclass
class Engine:
    """Single engine (or cluster) of a stage.

    ``thrust`` and ``flow`` are rated, full-throttle values. The vehicle
    model fills in ``flow`` from thrust and isp when it is not given.

    Attributes:
        isp: Specific impulse [s]
        thrust: Rated thrust [N]
        flow: Rated propellant mass flow [kg/s]
    """
    isp: float
    thrust: float
    flow: float | None = None

    def rated_flow(self) -> float:
        """Mass flow at full throttle [kg/s]."""
        if self.flow is not None:
            return self.flow
        return self.thrust / (self.isp * G0)


# =============================================================================
# Staging Descriptor
# =============================================================================


@beartype
@dataclass
class Jettison:
    """Separation of the spent stage before the next one ignites.

    Attributes:
        enabled: Whether a staging action is needed to drop the spent stage
        wait_before_jettison: Delay from stage activation [s]
    """
    enabled: bool = False
    wait_before_jettison: float = 0.0


@beartype
@dataclass
class Ignition:
    """Main-engine ignition, optionally preceded by an ullage burn.

    Attributes:
        enabled: Whether a staging action is needed to ignite
        ullage: Ullage method
        wait_before_ignition: Delay after jettison [s]
        ullage_burn_duration: Ullage burn length before ignition [s]
        post_ullage_burn: RCS ullage burn continued after ignition [s]
    """
    enabled: bool = False
    ullage: UllageMethod = UllageMethod.NONE
    wait_before_ignition: float = 0.0
    ullage_burn_duration: float = 0.0
    post_ullage_burn: float = 0.0


@beartype
@dataclass
class StagingDescriptor:
    """Physical hand-off sequence into a stage."""
    jettison: Jettison = field(default_factory=Jettison)
    ignition: Ignition = field(default_factory=Ignition)

    @property
    def sequence_duration(self) -> float:
        """Time from stage activation to main-engine ignition [s]."""
        duration = 0.0
        if self.jettison.enabled:
            duration += self.jettison.wait_before_jettison
        if self.ignition.enabled:
            duration += self.ignition.wait_before_ignition
            if self.ignition.ullage is not UllageMethod.NONE:
                duration += self.ignition.ullage_burn_duration
        return duration


# =============================================================================
# Stage
# =============================================================================


@beartype
@dataclass
class Stage:
    """One entry of the vehicle sequence.

    Mass fields may be left as ``None`` in configuration; the vehicle model
    derives the missing one. After preparation ``mass_total == mass_dry +
    mass_fuel`` holds and ``engines`` carry effective (throttled) values in
    ``thrust`` and ``flow`` aggregates.

    Attributes:
        name: Stage identifier
        engines: Engines burning during this stage
        mode: Guidance mode
        throttle: Configured throttle fraction [0, 1]
        acceleration_limit: Acceleration limit [g], 0 = none
        mass_total: Stack mass at stage ignition [kg]
        mass_dry: Stack mass at stage burnout [kg]
        mass_fuel: Usable propellant [kg]
        m0: Initial mass used by guidance [kg]
        max_t: Burn duration [s]
        staging: Hand-off sequence into this stage
        derived: True for sub-stages created by the acceleration-limit split
    """
    name: str
    engines: list[Engine]
    mode: StageMode = StageMode.FIXED_THROTTLE
    throttle: float = 1.0
    acceleration_limit: float = 0.0
    mass_total: float | None = None
    mass_dry: float | None = None
    mass_fuel: float | None = None
    m0: float = 0.0
    max_t: float = 0.0
    staging: StagingDescriptor = field(default_factory=StagingDescriptor)
    derived: bool = False

    _m0_locked: bool = field(default=False, init=False, repr=False)
    _split: bool = field(default=False, init=False, repr=False)

    @property
    def rated_thrust(self) -> float:
        """Aggregate full-throttle thrust [N]."""
        return sum(e.thrust for e in self.engines)

    @property
    def thrust(self) -> float:
        """Aggregate thrust at the configured throttle [N]."""
        return self.throttle * self.rated_thrust

    @property
    def flow(self) -> float:
        """Aggregate mass flow at the configured throttle [kg/s]."""
        return self.throttle * sum(e.rated_flow() for e in self.engines)

    @property
    def isp(self) -> float:
        """Aggregate specific impulse, sum(F) / (sum(flow) * g0) [s]."""
        flow = self.flow
        if flow <= 0:
            return 0.0
        return self.thrust / (flow * G0)

    @property
    def m0_locked(self) -> bool:
        """Whether m0 has been frozen for activation."""
        return self._m0_locked

    def lock_m0(self) -> None:
        """Freeze m0; the stage is now eligible for activation."""
        self._m0_locked = True

    @property
    def is_split(self) -> bool:
        """Whether the acceleration-limit split already ran on this stage."""
        return self._split

    def jettison_mass(self, mass_lost: float) -> None:
        """Remove dropped hardware mass from this stage's budget."""
        self.mass_total -= mass_lost
        self.mass_dry -= mass_lost
        if not self._m0_locked:
            self.m0 -= mass_lost
