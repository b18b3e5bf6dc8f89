"""Callback registry between the client core and its collaborator.

Four channels, one handler each; registering a handler replaces the
previous one and registering None clears it. Handlers run synchronously on
the thread that produced the event. A handler that raises is logged and
otherwise ignored: a broken UI callback must not wedge the state machine
or kill the poller thread.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

from gopro_mcp.observability import get_logger

logger = get_logger(__name__)


class EventChannel(Enum):
    """Event channels exposed to collaborators."""

    CONNECT = "on_connect"  # handler(identity: str)
    READY = "on_ready"  # handler()
    ERROR = "on_error"  # handler(kind: ErrorKind, error: CameraClientError)
    STATUS_CHANGED = "on_status_changed"  # handler(update: StatusUpdate)


Handler = Callable[..., Any]


class EventBus:
    """Single-subscriber-per-channel event dispatch.

    Example:
        bus = EventBus()
        bus.subscribe(EventChannel.READY, lambda: print("ready"))
        bus.emit(EventChannel.READY)
    """

    def __init__(self) -> None:
        self._handlers: dict[EventChannel, Handler | None] = dict.fromkeys(EventChannel)
        self._lock = threading.Lock()

    def subscribe(self, channel: EventChannel, handler: Handler | None) -> None:
        """Set (or with None, clear) the handler for ``channel``."""
        with self._lock:
            self._handlers[channel] = handler

    def handler(self, channel: EventChannel) -> Handler | None:
        with self._lock:
            return self._handlers[channel]

    def emit(self, channel: EventChannel, *args: Any) -> bool:
        """Deliver an event to the channel's handler, if any.

        Returns:
            True if a handler ran to completion, False if there was no
            handler or it raised.
        """
        handler = self.handler(channel)
        if handler is None:
            return False
        try:
            handler(*args)
        except Exception:
            logger.exception("Event handler failed", channel=channel.value)
            return False
        return True

    def clear(self) -> None:
        with self._lock:
            for channel in self._handlers:
                self._handlers[channel] = None
