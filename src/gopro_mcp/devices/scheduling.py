"""Deferred calls for the status poller.

The poller never sleeps; it asks a Scheduler to call it back later and
keeps the returned handle so it can cancel the call. Production uses
daemon threading.Timer objects. Tests substitute a scheduler they advance
by hand.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class ScheduledCall(Protocol):  # pragma: no cover
    """Handle to a pending call."""

    def cancel(self) -> None:
        """Prevent the call from running if it has not started yet."""
        ...


@runtime_checkable
class Scheduler(Protocol):  # pragma: no cover
    """Runs a callable once after a delay."""

    def schedule(self, delay_s: float, fn: Callable[[], None]) -> ScheduledCall:
        """Arrange for ``fn()`` to run after ``delay_s`` seconds.

        Returns:
            Handle whose ``cancel()`` drops the call.
        """
        ...


class TimerScheduler:
    """Scheduler backed by one daemon threading.Timer per call."""

    def __init__(self, name: str = "gopro-status-poll") -> None:
        self._name = name

    def schedule(self, delay_s: float, fn: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_s, fn)
        timer.name = self._name
        timer.daemon = True
        timer.start()
        return timer
