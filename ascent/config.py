"""Flight plan configuration: loading, validation and tunables.

A flight plan is a JSON document with four sections::

    {
      "vehicle":  [ {stage}, ... ],
      "mission":  {"periapsis": ..., "apoapsis": ..., "inclination": ..., ...},
      "sequence": [ {"time": ..., "type": "print" | "stage" | "jettison"
                              | "throttle" | "roll", ...}, ... ],
      "settings": {"staging_lead_time": ..., ...}
    }

Everything is validated eagerly when the plan is loaded; an invalid plan
raises ``ConfigurationError`` and never reaches the control loop. Stages
come back prepared (masses, flows, m0 and burn times filled in, payload
added) but not yet split at their acceleration limits.

Example:
    >>> from ascent.config import load_flight_plan
    >>>
    >>> plan = load_flight_plan("missions/leo.json")
    >>> print(plan.settings.staging_lead_time)
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from beartype import beartype

from ascent.constants import G0
from ascent.errors import ConfigurationError
from ascent.events import Event, EventAction
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
)

# User sequence actions and the payload key each one requires
USER_ACTIONS: dict[EventAction, str | None] = {
    EventAction.PRINT: None,
    EventAction.STAGE: None,
    EventAction.JETTISON: "mass_lost",
    EventAction.THROTTLE: "value",
    EventAction.ROLL: "angle",
}


# =============================================================================
# Settings
# =============================================================================


@beartype
@dataclass
class FlightSettings:
    """Flight software tunables.

    Attributes:
        drift_threshold: Max |expected tgo - tgo| for a stable iteration [s]
        stability_threshold: Max steering change between accepted solutions [deg]
        staging_lead_time: Early staging trigger before stage activation [s]
        finalization_time: tgo below which steering is frozen until cutoff [s]
        guidance_activation: Closed-loop guidance start, after liftoff [s]
        countdown: Length of the informational countdown [s]
        initial_roll: Roll reference until a roll event changes it [deg]
        initial_throttle: Open-loop throttle before guidance activation
    """
    drift_threshold: float = 0.1
    stability_threshold: float = 15.0
    staging_lead_time: float = 5.0
    finalization_time: float = 5.0
    guidance_activation: float = 0.0
    countdown: int = 10
    initial_roll: float = 0.0
    initial_throttle: float = 1.0

    def __post_init__(self) -> None:
        """Validate ranges."""
        for name in ("drift_threshold", "stability_threshold"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        for name in ("staging_lead_time", "finalization_time", "guidance_activation"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative")
        if self.countdown < 0:
            raise ConfigurationError("countdown must be non-negative")
        if not 0.0 <= self.initial_throttle <= 1.0:
            raise ConfigurationError("initial_throttle must be within [0, 1]")


# =============================================================================
# Flight Plan
# =============================================================================


@beartype
@dataclass
class FlightPlan:
    """Validated flight plan.

    Attributes:
        stages: Prepared stages (not yet split)
        mission: Mission parameters
        sequence: User event table entries, time ordered
        settings: Flight software tunables
    """
    stages: list[Stage]
    mission: MissionConfig
    sequence: list[Event] = field(default_factory=list)
    settings: FlightSettings = field(default_factory=FlightSettings)

    @property
    def target(self) -> Target:
        """Guidance target derived from the mission."""
        return Target.from_mission(self.mission)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlightPlan":
        """Build and validate a plan from its JSON-compatible form."""
        for key in ("vehicle", "mission"):
            if key not in data:
                raise ConfigurationError(f"Flight plan is missing '{key}'")
        for key in ("periapsis", "apoapsis"):
            if key not in data["mission"]:
                raise ConfigurationError(f"Mission is missing '{key}'")

        mission = MissionConfig(**_floats(data["mission"], _MISSION_KEYS))
        stages = prepare_stages(
            [_parse_stage(s, i) for i, s in enumerate(data["vehicle"])],
            payload=mission.payload,
        )
        sequence = sorted(
            (_parse_event(e) for e in data.get("sequence", [])),
            key=lambda e: e.time,
        )
        settings = _parse_settings(data.get("settings", {}))
        return cls(stages=stages, mission=mission, sequence=sequence, settings=settings)

    @classmethod
    def from_json(cls, json_str: str) -> "FlightPlan":
        """Deserialize from a JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as err:
            raise ConfigurationError(f"Flight plan is not valid JSON: {err}") from err
        return cls.from_dict(data)


@beartype
def load_flight_plan(path: str | Path) -> FlightPlan:
    """Load and validate a flight plan file.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        ConfigurationError: If the plan is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Flight plan not found at {path}")
    return FlightPlan.from_json(path.read_text())


# =============================================================================
# Parsing Helpers
# =============================================================================

_MISSION_KEYS = ("periapsis", "apoapsis", "altitude", "inclination", "lan", "payload")
_ENGINE_KEYS = ("isp", "thrust", "flow")
_STAGE_FLOAT_KEYS = ("throttle", "acceleration_limit", "mass_total", "mass_dry", "mass_fuel")


def _floats(section: dict[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    """Pick known keys and coerce numbers to float."""
    unknown = set(section) - set(keys)
    if unknown:
        raise ConfigurationError(f"Unknown keys: {sorted(unknown)}")
    out: dict[str, Any] = {}
    for key in keys:
        value = section.get(key)
        if value is None:
            continue
        out[key] = _number(value, key)
    return out


def _number(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as err:
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}") from err


def _integer(value: Any, key: str) -> int:
    number = _number(value, key)
    if isinstance(value, bool) or not number.is_integer():
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}")
    return int(number)


def _parse_mode(value: Any, name: str) -> StageMode:
    if isinstance(value, str):
        try:
            return StageMode[value.upper()]
        except KeyError:
            pass
    else:
        try:
            return StageMode(int(value))
        except (TypeError, ValueError):
            pass
    raise ConfigurationError(f"Stage '{name}': unknown mode {value!r}")


def _parse_staging(data: dict[str, Any], name: str) -> StagingDescriptor:
    jettison = data.get("jettison", {})
    ignition = data.get("ignition", {})
    try:
        ullage = UllageMethod(ignition.get("ullage", "none"))
    except ValueError as err:
        raise ConfigurationError(
            f"Stage '{name}': unknown ullage method {ignition.get('ullage')!r}"
        ) from err

    return StagingDescriptor(
        jettison=Jettison(
            enabled=bool(jettison.get("enabled", False)),
            **_floats({k: v for k, v in jettison.items() if k != "enabled"},
                      ("wait_before_jettison",)),
        ),
        ignition=Ignition(
            enabled=bool(ignition.get("enabled", False)),
            ullage=ullage,
            **_floats({k: v for k, v in ignition.items() if k not in ("enabled", "ullage")},
                      ("wait_before_ignition", "ullage_burn_duration", "post_ullage_burn")),
        ),
    )


def _parse_engine(data: dict[str, Any], name: str) -> Engine:
    """Engine from its configuration; isp may be derived from thrust and flow."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"Stage '{name}': engine entry must be an object, got {data!r}")
    values = _floats(data, _ENGINE_KEYS)
    if "thrust" not in values:
        raise ConfigurationError(f"Stage '{name}': engine needs a thrust")
    if "isp" not in values:
        if "flow" not in values:
            raise ConfigurationError(f"Stage '{name}': engine needs an isp or a flow")
        if values["flow"] <= 0:
            raise ConfigurationError(f"Stage '{name}': engine flow must be positive")
        values["isp"] = values["thrust"] / (values["flow"] * G0)
    return Engine(**values)


def _parse_stage(data: dict[str, Any], index: int) -> Stage:
    data = dict(data)
    name = str(data.pop("name", f"Stage {index + 1}"))
    engines = data.pop("engines", [])
    mode = _parse_mode(data.pop("mode", StageMode.FIXED_THROTTLE.value), name)
    staging = _parse_staging(data.pop("staging", {}), name)
    if "gLim" in data:
        data["acceleration_limit"] = data.pop("gLim")

    return Stage(
        name=name,
        engines=[_parse_engine(e, name) for e in engines],
        mode=mode,
        staging=staging,
        **_floats(data, _STAGE_FLOAT_KEYS),
    )


def _parse_event(data: dict[str, Any]) -> Event:
    try:
        action = EventAction(data.get("type"))
    except ValueError as err:
        raise ConfigurationError(f"Unknown sequence event type {data.get('type')!r}") from err
    if action not in USER_ACTIONS:
        raise ConfigurationError(f"Event type '{action.value}' is reserved for automatic staging")
    if "time" not in data:
        raise ConfigurationError(f"Sequence event '{action.value}' has no time")

    payload: dict[str, Any] = {}
    required = USER_ACTIONS[action]
    if required is not None:
        if required not in data:
            raise ConfigurationError(f"Sequence event '{action.value}' needs '{required}'")
        payload[required] = _number(data[required], required)
    if action == EventAction.THROTTLE and not 0.0 <= payload["value"] <= 1.0:
        raise ConfigurationError("Throttle event value must be within [0, 1]")

    return Event(
        time=_number(data["time"], "time"),
        action=action,
        message=str(data.get("message", "")),
        payload=payload,
    )


def _parse_settings(data: dict[str, Any]) -> FlightSettings:
    data = dict(data)
    countdown = _integer(data.pop("countdown", 10), "countdown")
    return FlightSettings(
        countdown=countdown,
        **_floats(data, tuple(k for k in FlightSettings.__dataclass_fields__ if k != "countdown")),
    )
