"""Event sequencing: automatic staging, countdown and user sequence.

Available handlers:
    StagingSequencer: Jettison / ullage / ignition sequencing per stage
    SystemSequence: Informational countdown
    UserSequence: Flight-plan authored actions
"""

from avionics.sequencing.sequence import (
    SystemSequence,
    UserSequence,
    build_system_events,
)
from avionics.sequencing.staging import (
    StagePhase,
    StagingSequencer,
    build_staging_events,
)

__all__ = [
    "StagePhase",
    "StagingSequencer",
    "SystemSequence",
    "UserSequence",
    "build_staging_events",
    "build_system_events",
]
