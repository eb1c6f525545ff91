"""Kinematic state sampled once per control tick.

Position and velocity are expressed in the fixed guidance frame (inertial,
origin at the Earth's center). Mass is the current stack mass.
"""

from typing import NamedTuple

import numpy as np
from numpy.typing import NDArray


class Kinematics(NamedTuple):
    """Vehicle kinematics at one tick.

    Attributes:
        time: Simulation / mission clock [s]
        mass: Current vehicle mass [kg]
        position: Position in guidance frame [m]
        velocity: Velocity in guidance frame [m/s]
    """
    time: float
    mass: float
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]

    @property
    def radius(self) -> float:
        """Distance from the frame origin [m]."""
        return float(np.linalg.norm(self.position))

    @property
    def speed(self) -> float:
        """Velocity magnitude [m/s]."""
        return float(np.linalg.norm(self.velocity))
