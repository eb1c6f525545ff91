"""Ascent - vehicle and mission model for closed-loop ascent guidance.

This package holds everything the flight software consumes but does not
decide: the stage model and its pre-flight preparation, the mission
target, flight plan configuration, diagnostics and the event tables the
flight computer schedules.

Example:
    >>> from ascent import load_flight_plan, split_stages
    >>>
    >>> plan = load_flight_plan("missions/leo.json")
    >>> stages = split_stages(plan.stages)
    >>> for stage in stages:
    ...     print(f"{stage.name}: m0={stage.m0:.0f} kg, burn {stage.max_t:.1f} s")
"""

__version__ = "0.1.0"

from ascent.config import FlightPlan, FlightSettings, load_flight_plan
from ascent.constants import G0, MU_EARTH, R_EARTH_EQ
from ascent.diagnostics import DiagnosticsSink, LoggingSink, Message, Priority
from ascent.errors import ConfigurationError
from ascent.events import DeadlineQueue, Event, EventAction, EventTable
from ascent.kinematics import Kinematics
from ascent.mission import MissionConfig, Target
from ascent.vehicle import (
    Engine,
    Ignition,
    Jettison,
    Stage,
    StageMode,
    StagingDescriptor,
    UllageMethod,
    prepare_stages,
    split_stages,
)

__all__ = [
    "__version__",
    # Configuration
    "ConfigurationError",
    "FlightPlan",
    "FlightSettings",
    "load_flight_plan",
    # Constants
    "G0",
    "MU_EARTH",
    "R_EARTH_EQ",
    # Diagnostics
    "DiagnosticsSink",
    "LoggingSink",
    "Message",
    "Priority",
    # Events
    "DeadlineQueue",
    "Event",
    "EventAction",
    "EventTable",
    # Mission and state
    "Kinematics",
    "MissionConfig",
    "Target",
    # Vehicle
    "Engine",
    "Ignition",
    "Jettison",
    "Stage",
    "StageMode",
    "StagingDescriptor",
    "UllageMethod",
    "prepare_stages",
    "split_stages",
]
