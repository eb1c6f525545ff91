"""Control laws for the ascent vehicle.

Available controllers:
    ThrottleController: Stage-mode throttle with acceleration limiting
"""

from avionics.control.throttle import ThrottleController

__all__ = [
    "ThrottleController",
]
