"""Deadline queue and one-shot, time-ordered event tables.

The host scheduler is a ``DeadlineQueue``: a priority queue of pending
deadlines, each tagged with the name of the table that armed it. The
flight computer polls it once per tick and hands every due tag back to its
table. Popping an entry disarms it, so firing is edge-triggered.

An ``EventTable`` walks its events with a monotonic pointer:

    pointer == -1       uninitialized; the first invoke only arms event[0]
    0 <= pointer < N    armed; invoke executes event[pointer] and re-arms
    pointer == N        exhausted

Each table owns at most one pending deadline at a time.

Example:
    >>> queue = DeadlineQueue()
    >>> table = EventTable("user", events, handler, queue)
    >>> table.invoke(liftoff_time)        # bootstrap, arms event[0]
    >>> for tag in queue.pop_due(now):
    ...     tables[tag].invoke(liftoff_time)
"""

import heapq
import itertools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from beartype import beartype

logger = logging.getLogger(__name__)

# =============================================================================
# Events
# =============================================================================


class EventAction(Enum):
    """Action discriminator carried by every event."""
    # System and user sequence
    PRINT = "print"
    STAGE = "stage"
    JETTISON = "jettison"
    THROTTLE = "throttle"
    ROLL = "roll"
    # Automatic staging
    PRESTAGE = "prestage"
    ACTIVATE = "activate"
    SEPARATE = "separate"
    ULLAGE_START = "ullage_start"
    IGNITION = "ignition"
    ULLAGE_STOP = "ullage_stop"


@beartype
@dataclass(frozen=True)
class Event:
    """One entry of an event table.

    Attributes:
        time: Offset from liftoff [s]
        action: What the table's handler should do
        message: Diagnostic text reported when the event fires
        payload: Action-specific data (stage index, mass, angle, ...)
    """
    time: float
    action: EventAction
    message: str = ""
    payload: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Deadline Queue
# =============================================================================


class DeadlineQueue:
    """Priority queue of pending deadlines, at most one per tag."""

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, str]] = []
        self._pending: dict[str, tuple[float, int]] = {}
        self._counter = itertools.count()

    def arm(self, tag: str, deadline: float) -> None:
        """Register a one-shot deadline for ``tag``.

        Raises:
            RuntimeError: If ``tag`` already has a pending deadline
        """
        if tag in self._pending:
            raise RuntimeError(f"Deadline for '{tag}' already armed at {self._pending[tag][0]:.3f}")
        seq = next(self._counter)
        self._pending[tag] = (deadline, seq)
        heapq.heappush(self._heap, (deadline, seq, tag))

    def disarm(self, tag: str) -> None:
        """Drop the pending deadline of ``tag``, if any."""
        self._pending.pop(tag, None)

    def is_armed(self, tag: str) -> bool:
        return tag in self._pending

    def deadline(self, tag: str) -> float | None:
        """Pending deadline of ``tag``, if any."""
        entry = self._pending.get(tag)
        return entry[0] if entry is not None else None

    def pop_due(self, now: float) -> Iterator[str]:
        """Yield tags whose deadline has passed, earliest first.

        Entries armed while iterating are considered as well, so a table
        whose next event is already due fires again within the same poll.
        """
        while self._heap and self._heap[0][0] <= now:
            _, seq, tag = heapq.heappop(self._heap)
            entry = self._pending.get(tag)
            if entry is None or entry[1] != seq:
                continue
            del self._pending[tag]
            yield tag

    def __len__(self) -> int:
        return len(self._pending)


# =============================================================================
# Event Table
# =============================================================================


class EventTable:
    """Append-only, time-ordered event table traversed by a monotonic pointer.

    Args:
        name: Table name, used as the deadline tag
        events: Events, sorted by time offset
        handler: Called with each event when its deadline fires
        queue: Host deadline queue
    """

    def __init__(
        self,
        name: str,
        events: list[Event],
        handler: Callable[[Event], None],
        queue: DeadlineQueue,
    ) -> None:
        times = [e.time for e in events]
        if times != sorted(times):
            raise ValueError(f"Events of table '{name}' must be ordered by time")
        self.name = name
        self._events = list(events)
        self._handler = handler
        self._queue = queue
        self._pointer = -1

    @property
    def pointer(self) -> int:
        return self._pointer

    @property
    def events(self) -> tuple[Event, ...]:
        return tuple(self._events)

    @property
    def exhausted(self) -> bool:
        return self._pointer >= len(self._events)

    def append(self, event: Event) -> None:
        """Add an event at the end of the table."""
        if self._events and event.time < self._events[-1].time:
            raise ValueError("Appended events must not precede the last event")
        self._events.append(event)

    def invoke(self, liftoff_time: float) -> None:
        """Advance the table by one step (see module docstring)."""
        if self._pointer < 0:
            self._pointer = 0
            self._arm(liftoff_time)
            return
        if self.exhausted:
            return

        event = self._events[self._pointer]
        logger.debug("%s: firing #%d %s at T%+.2f", self.name, self._pointer, event.action.value, event.time)
        self._pointer += 1
        self._handler(event)
        self._arm(liftoff_time)

    def reset(self) -> None:
        """Return to the uninitialized state; the next invoke re-arms event[0]."""
        self._queue.disarm(self.name)
        self._pointer = -1

    def _arm(self, liftoff_time: float) -> None:
        if self._pointer < len(self._events):
            self._queue.arm(self.name, liftoff_time + self._events[self._pointer].time)
