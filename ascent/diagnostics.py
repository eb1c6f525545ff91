"""Diagnostic message sink.

Flight software reports operator-facing messages through a
``DiagnosticsSink``. Messages are observational only and never feed back
into control decisions.

``LoggingSink`` forwards each message to the standard logging tree and
keeps a bounded history that tests and post-flight tooling can inspect.
"""

import logging
from collections import deque
from enum import IntEnum
from typing import NamedTuple, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class Priority(IntEnum):
    """Message priority."""
    LOW = 1
    HIGH = 2
    CRITICAL = 3


_LEVELS = {
    Priority.LOW: logging.INFO,
    Priority.HIGH: logging.WARNING,
    Priority.CRITICAL: logging.CRITICAL,
}


class Message(NamedTuple):
    """One pushed diagnostic."""
    text: str
    priority: Priority


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Protocol for diagnostic message consumers."""

    def push_message(self, text: str, priority: Priority = Priority.LOW) -> None:
        """Report a message."""
        ...


class LoggingSink:
    """Diagnostics sink backed by ``logging``.

    Args:
        history: Number of most recent messages kept in memory
    """

    def __init__(self, history: int = 256) -> None:
        self._messages: deque[Message] = deque(maxlen=history)

    def push_message(self, text: str, priority: Priority = Priority.LOW) -> None:
        self._messages.append(Message(text, priority))
        logger.log(_LEVELS[priority], "%s", text)

    @property
    def messages(self) -> list[Message]:
        """Recent messages, oldest first."""
        return list(self._messages)

    def count(self, priority: Priority) -> int:
        """Number of retained messages with the given priority."""
        return sum(1 for m in self._messages if m.priority == priority)

    def clear(self) -> None:
        self._messages.clear()
