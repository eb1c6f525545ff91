"""Vehicle stage modeling for ascent guidance.

Provides the typed stage records and the pre-flight preparation that
derives mass budgets, burn times and acceleration-limited sub-stages.

Example:
    >>> from ascent.vehicle import Engine, Stage, prepare_stages, split_stages
    >>>
    >>> core = Stage(
    ...     name="Core",
    ...     engines=[Engine(isp=333.4, thrust=981000.0, flow=300.0)],
    ...     mass_total=50000.0,
    ...     mass_fuel=30000.0,
    ...     acceleration_limit=3.0,
    ... )
    >>> stages = split_stages(prepare_stages([core]))
    >>> len(stages)
    2
"""

from ascent.vehicle.model import (
    constant_acceleration_fuel,
    prepare_stage,
    prepare_stages,
    split_stage,
    split_stages,
    total_fuel,
)
from ascent.vehicle.stage import (
    Engine,
    Ignition,
    Jettison,
    Stage,
    StageMode,
    StagingDescriptor,
    UllageMethod,
)

__all__ = [
    # Records
    "Engine",
    "Ignition",
    "Jettison",
    "Stage",
    "StageMode",
    "StagingDescriptor",
    "UllageMethod",
    # Preparation
    "constant_acceleration_fuel",
    "prepare_stage",
    "prepare_stages",
    "split_stage",
    "split_stages",
    "total_fuel",
]
