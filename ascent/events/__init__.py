"""Time-triggered event tables and the host deadline queue.

Example:
    >>> from ascent.events import DeadlineQueue, Event, EventAction, EventTable
    >>>
    >>> queue = DeadlineQueue()
    >>> events = [Event(time=-10.0, action=EventAction.PRINT, message="T-10")]
    >>> table = EventTable("system", events, handler=print, queue=queue)
"""

from ascent.events.scheduler import (
    DeadlineQueue,
    Event,
    EventAction,
    EventTable,
)

__all__ = [
    "DeadlineQueue",
    "Event",
    "EventAction",
    "EventTable",
]
