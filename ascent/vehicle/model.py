"""Vehicle stage model: mass budgets and acceleration-limit splitting.

Runs once before flight. ``prepare_stages`` completes each stage's mass,
flow and burn-time fields; ``split_stages`` then cuts every stage whose
acceleration would exceed its limit before burnout into a fixed-throttle
part and a constant-acceleration sub-stage.

For a constant-acceleration burn at limit a = gLim * g0 the mass decays as

    m(t) = m0 * exp(-gLim * t / isp)

so burning the remaining propellant takes

    t = (isp / gLim) * ln(m0 / (m0 - fuel))

Only one crossing of the limit per stage is handled: a stage is split at
most once and the derived sub-stage is never split again.

Example:
    >>> from ascent.vehicle import prepare_stages, split_stages
    >>>
    >>> stages = prepare_stages(config_stages, payload=1500.0)
    >>> stages = split_stages(stages)
    >>> for s in stages:
    ...     print(f"{s.name}: {s.max_t:.1f} s")
"""

import logging
from dataclasses import replace

import numpy as np
from beartype import beartype
from numba import njit

from ascent.constants import G0
from ascent.errors import ConfigurationError
from ascent.vehicle.stage import Stage, StageMode, StagingDescriptor

logger = logging.getLogger(__name__)

# Relative tolerance when all three mass fields are given
MASS_TOLERANCE = 1e-6


# =============================================================================
# Numba-Optimized Core Functions
# =============================================================================


@njit(cache=True)
def _acceleration_limit_time(m0: float, thrust: float, g_lim: float, flow: float) -> float:
    """Burn time after which F/m reaches g_lim * g0."""
    return (m0 - thrust / g_lim / G0) / flow


@njit(cache=True)
def _constant_acceleration_burn_time(m0: float, fuel: float, isp: float, g_lim: float) -> float:
    """Time to burn ``fuel`` while throttling to hold g_lim."""
    return (isp / g_lim) * np.log(m0 / (m0 - fuel))


@njit(cache=True)
def constant_acceleration_fuel(m0: float, burn_time: float, isp: float, g_lim: float) -> float:
    """Propellant consumed by a constant-acceleration burn of given length."""
    return m0 * (1.0 - np.exp(-g_lim * burn_time / isp))


# =============================================================================
# Stage Preparation
# =============================================================================


def _complete_masses(stage: Stage) -> None:
    total, dry, fuel = stage.mass_total, stage.mass_dry, stage.mass_fuel
    given = sum(m is not None for m in (total, dry, fuel))
    if given < 2:
        raise ConfigurationError(
            f"Stage '{stage.name}' needs two of mass_total, mass_dry, mass_fuel"
        )

    if total is None:
        total = dry + fuel
    elif dry is None:
        dry = total - fuel
    elif fuel is None:
        fuel = total - dry
    elif abs(total - (dry + fuel)) > MASS_TOLERANCE * total:
        raise ConfigurationError(
            f"Stage '{stage.name}': mass_total {total} != mass_dry {dry} + mass_fuel {fuel}"
        )

    if dry <= 0 or fuel < 0:
        raise ConfigurationError(
            f"Stage '{stage.name}': dry mass must be positive and fuel non-negative"
        )

    stage.mass_total = float(total)
    stage.mass_dry = float(dry)
    stage.mass_fuel = float(fuel)


def _complete_engines(stage: Stage) -> None:
    if not stage.engines:
        raise ConfigurationError(f"Stage '{stage.name}' has no engines")
    for engine in stage.engines:
        if engine.flow is None:
            if engine.isp <= 0:
                raise ConfigurationError(
                    f"Stage '{stage.name}': engine needs a flow or a positive isp"
                )
            engine.flow = engine.rated_flow()


@beartype
def prepare_stage(stage: Stage, payload: float = 0.0) -> Stage:
    """Complete the derived fields of a single stage in place.

    Args:
        stage: Stage as authored in configuration
        payload: Payload mass added to total and dry mass [kg]

    Returns:
        The same stage, with masses, engine flows, m0 and max_t filled in

    Raises:
        ConfigurationError: On missing or inconsistent fields
    """
    if not 0.0 <= stage.throttle <= 1.0:
        raise ConfigurationError(f"Stage '{stage.name}': throttle {stage.throttle} outside [0, 1]")
    if stage.acceleration_limit < 0:
        raise ConfigurationError(f"Stage '{stage.name}': negative acceleration limit")
    if stage.mode not in (StageMode.FIXED_THROTTLE, StageMode.CONST_ACCELERATION):
        raise ConfigurationError(f"Stage '{stage.name}': unknown mode {stage.mode!r}")

    _complete_masses(stage)
    stage.mass_total += payload
    stage.mass_dry += payload
    _complete_engines(stage)

    stage.m0 = stage.mass_total
    flow = stage.flow
    if flow <= 0:
        raise ConfigurationError(f"Stage '{stage.name}' has zero propellant flow")

    if stage.mode == StageMode.CONST_ACCELERATION:
        if stage.acceleration_limit <= 0:
            raise ConfigurationError(
                f"Stage '{stage.name}': constant-acceleration mode needs an acceleration limit"
            )
        stage.max_t = float(_constant_acceleration_burn_time(
            stage.m0, stage.mass_fuel, stage.isp, stage.acceleration_limit,
        ))
    else:
        stage.max_t = stage.mass_fuel / flow

    return stage


@beartype
def prepare_stages(stages: list[Stage], payload: float = 0.0) -> list[Stage]:
    """Prepare every stage of the vehicle (see ``prepare_stage``)."""
    if not stages:
        raise ConfigurationError("Vehicle has no stages")
    return [prepare_stage(s, payload) for s in stages]


# =============================================================================
# Acceleration-Limit Splitting
# =============================================================================


@beartype
def split_stage(stage: Stage) -> Stage | None:
    """Split a stage at the moment it reaches its acceleration limit.

    The parent keeps its fields except ``max_t`` (truncated to the limit
    time) and ``acceleration_limit`` (zeroed). The returned child burns the
    remaining propellant in constant-acceleration mode. Stages already in
    constant-acceleration mode are never split.

    Returns:
        The derived sub-stage, or None when the limit is never reached

    Raises:
        ConfigurationError: If the stage already exceeds its limit at ignition
    """
    g_lim = stage.acceleration_limit
    if g_lim <= 0 or stage.is_split or stage.mode != StageMode.FIXED_THROTTLE:
        return None

    flow = stage.flow
    limit_time = float(_acceleration_limit_time(stage.m0, stage.thrust, g_lim, flow))
    if limit_time >= stage.max_t:
        return None
    if limit_time <= 0:
        raise ConfigurationError(
            f"Stage '{stage.name}' exceeds {g_lim} g already at ignition"
        )

    burned = flow * limit_time
    child_m0 = stage.m0 - burned
    remaining = stage.mass_fuel - burned
    child_time = float(_constant_acceleration_burn_time(child_m0, remaining, stage.isp, g_lim))

    stage.max_t = limit_time
    stage.acceleration_limit = 0.0
    stage._split = True

    child = Stage(
        name=f"{stage.name} (const-g)",
        engines=[replace(e) for e in stage.engines],
        mode=StageMode.CONST_ACCELERATION,
        throttle=stage.throttle,
        acceleration_limit=g_lim,
        mass_total=child_m0,
        mass_dry=child_m0 - remaining,
        mass_fuel=remaining,
        m0=child_m0,
        max_t=child_time,
        staging=StagingDescriptor(),
        derived=True,
    )
    logger.info(
        "Split stage %s at %.2f s: child m0=%.1f kg, burn %.2f s at %.1f g",
        stage.name, limit_time, child_m0, child_time, g_lim,
    )
    return child


@beartype
def split_stages(stages: list[Stage]) -> list[Stage]:
    """Apply ``split_stage`` to every stage, inserting children after parents.

    Returns a new list; the original stage objects are edited in place.
    """
    result: list[Stage] = []
    for stage in stages:
        result.append(stage)
        child = split_stage(stage)
        if child is not None:
            result.append(child)
    return result


@beartype
def total_fuel(stages: list[Stage]) -> float:
    """Propellant burned over the stage sequence, from each stage's burn profile."""
    fuel = 0.0
    for stage in stages:
        if stage.mode == StageMode.CONST_ACCELERATION:
            fuel += float(constant_acceleration_fuel(
                stage.m0, stage.max_t, stage.isp, stage.acceleration_limit,
            ))
        else:
            fuel += stage.flow * stage.max_t
    return fuel
