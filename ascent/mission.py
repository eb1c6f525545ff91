"""Mission parameters and the fixed guidance target derived from them.

The target is the cutoff state the closed-loop solver steers to: a radius,
speed and flight-path angle at insertion and the normal of the target
orbital plane. It is computed once from the mission configuration.

For an orbit with periapsis radius rp and apoapsis radius ra, the speed at
cutoff radius r follows vis-viva

    v = sqrt(mu * (2/r - 1/a)),   a = (rp + ra) / 2

and the flight-path angle follows from the specific angular momentum

    cos(gamma) = h / (r * v),   h = sqrt(mu * a * (1 - e^2))

Example:
    >>> from ascent.mission import MissionConfig, Target
    >>>
    >>> mission = MissionConfig(periapsis=200e3, apoapsis=200e3, inclination=28.5)
    >>> target = Target.from_mission(mission)
    >>> print(f"{target.velocity:.0f} m/s")
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from ascent.constants import MU_EARTH, R_EARTH_EQ
from ascent.errors import ConfigurationError

# =============================================================================
# Mission Configuration
# =============================================================================


@beartype
@dataclass
class MissionConfig:
    """Structured mission parameters, consumed once before flight.

    Attributes:
        periapsis: Periapsis altitude [m]
        apoapsis: Apoapsis altitude [m]
        altitude: Cutoff altitude [m]; defaults to periapsis
        inclination: Target inclination [deg]
        lan: Longitude of ascending node [deg]
        payload: Payload mass carried by every stage [kg]
    """
    periapsis: float
    apoapsis: float
    altitude: float | None = None
    inclination: float = 0.0
    lan: float = 0.0
    payload: float = 0.0

    def __post_init__(self) -> None:
        """Validate orbit geometry."""
        if self.apoapsis < self.periapsis:
            raise ConfigurationError(
                f"Apoapsis {self.apoapsis} below periapsis {self.periapsis}"
            )
        if self.altitude is None:
            self.altitude = self.periapsis
        if not self.periapsis <= self.altitude <= self.apoapsis:
            raise ConfigurationError(
                f"Cutoff altitude {self.altitude} outside [periapsis, apoapsis]"
            )
        if self.payload < 0:
            raise ConfigurationError("Payload mass must be non-negative")


# =============================================================================
# Target
# =============================================================================


@beartype
@dataclass(frozen=True)
class Target:
    """Insertion state the guidance solver converges to.

    Attributes:
        radius: Cutoff radius [m]
        velocity: Cutoff speed [m/s]
        angle: Cutoff flight-path angle [deg]
        normal: Unit normal of the target orbital plane
    """
    radius: float
    velocity: float
    angle: float
    normal: NDArray[np.float64]

    @classmethod
    def from_mission(cls, mission: MissionConfig) -> "Target":
        """Derive the cutoff target from mission parameters."""
        rp = R_EARTH_EQ + mission.periapsis
        ra = R_EARTH_EQ + mission.apoapsis
        r = R_EARTH_EQ + mission.altitude

        sma = (rp + ra) / 2
        ecc = (ra - rp) / (ra + rp)
        v = np.sqrt(MU_EARTH * (2 / r - 1 / sma))
        h = np.sqrt(MU_EARTH * sma * (1 - ecc * ecc))
        gamma = np.degrees(np.arccos(np.clip(h / (r * v), -1.0, 1.0)))

        return cls(
            radius=float(r),
            velocity=float(v),
            angle=float(gamma),
            normal=orbit_normal(mission.inclination, mission.lan),
        )


@beartype
def orbit_normal(inclination: float, lan: float) -> NDArray[np.float64]:
    """Unit angular-momentum direction of an orbit [inclination, LAN in deg]."""
    inc = np.radians(inclination)
    node = np.radians(lan)
    return np.array([
        np.sin(inc) * np.sin(node),
        -np.sin(inc) * np.cos(node),
        np.cos(inc),
    ])
