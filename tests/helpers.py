"""Test helpers for gopro-mcp.

Protocol compliance assertions, a hand-driven scheduler for the status
poller, and an event recorder that subscribes to every client channel.

Example:
    from tests.helpers import ManualScheduler, EventRecorder

    scheduler = ManualScheduler()
    client = CameraClient(transport_factory, config, scheduler=scheduler)
    events = EventRecorder(client)
    client.connect()
    scheduler.run_pending()
    assert events.names() == ["connect", "ready", "status"]
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from gopro_mcp.devices import CameraClient


def assert_implements_protocol(instance: object, protocol: type[Protocol]) -> None:
    """Assert that an instance implements a @runtime_checkable Protocol.

    Raises:
        AssertionError: Listing the public protocol members the instance lacks.
    """
    if isinstance(instance, protocol):
        return

    object_attrs = set(dir(object))
    missing = sorted(
        attr
        for attr in set(dir(protocol)) - object_attrs
        if not attr.startswith("_") and not hasattr(instance, attr)
    )
    missing_str = ", ".join(missing) if missing else "unknown"
    raise AssertionError(
        f"{type(instance).__name__} does not implement {protocol.__name__}. "
        f"Missing: {missing_str}"
    )


def assert_all_implement_protocol(instances: list[Any], protocol: type[Protocol]) -> None:
    """Assert that every instance implements ``protocol``."""
    for i, instance in enumerate(instances):
        try:
            assert_implements_protocol(instance, protocol)
        except AssertionError as e:
            raise AssertionError(f"Instance at index {i}: {e}") from e


# =============================================================================
# Scheduling
# =============================================================================


class ManualCall:
    """Pending call created by ManualScheduler."""

    def __init__(self, delay_s: float, fn: Callable[[], None]) -> None:
        self.delay_s = delay_s
        self.fn = fn
        self.cancelled = False
        self.ran = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that runs nothing until the test says so."""

    def __init__(self) -> None:
        self.calls: list[ManualCall] = []

    def schedule(self, delay_s: float, fn: Callable[[], None]) -> ManualCall:
        call = ManualCall(delay_s, fn)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> list[ManualCall]:
        return [c for c in self.calls if not c.cancelled and not c.ran]

    def run_next(self) -> bool:
        """Run the oldest pending call. Returns False if there was none."""
        pending = self.pending
        if not pending:
            return False
        call = pending[0]
        call.ran = True
        call.fn()
        return True

    def run_pending(self, limit: int = 1) -> int:
        """Run up to ``limit`` pending calls, oldest first.

        Each status round schedules the next, so the default of one runs a
        single round.
        """
        count = 0
        while count < limit and self.run_next():
            count += 1
        return count


# =============================================================================
# Events
# =============================================================================


class EventRecorder:
    """Records every event a CameraClient delivers, in order.

    Entries are ``(name, payload)`` with names "connect", "ready", "error"
    and "status".
    """

    def __init__(self, client: CameraClient) -> None:
        self.events: list[tuple[str, Any]] = []
        client.set_on_connect(lambda identity: self.events.append(("connect", identity)))
        client.set_on_ready(lambda: self.events.append(("ready", None)))
        client.set_on_error(lambda kind, error: self.events.append(("error", kind)))
        client.set_on_status_changed(lambda update: self.events.append(("status", update)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[Any]:
        return [payload for n, payload in self.events if n == name]

    def clear(self) -> None:
        self.events.clear()
