"""Guidance for the ascent vehicle.

The closed-loop solver itself is an external collaborator; this package
decides when its output can be trusted.

Available components:
    GuidanceConvergenceController: Stability / convergence gate around the solver
"""

from avionics.guidance.convergence import (
    ConvergenceTracker,
    GuidanceCommand,
    GuidanceConvergenceController,
    vector_angle,
)

__all__ = [
    "ConvergenceTracker",
    "GuidanceCommand",
    "GuidanceConvergenceController",
    "vector_angle",
]
