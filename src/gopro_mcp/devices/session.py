"""Connection lifecycle state machine.

    Disconnected -> Connecting -> Connected -> Ready
          ^             |             |          |
          +-------------+-------------+----------+

The session owns the single live Connection and is the only place state
changes. Every change goes through the transition table; anything else
raises IllegalTransitionError.

Work that outlives a lock (a handshake, a poll round, a command) holds on
to the Connection object it started with. When it comes back it asks the
session to advance or fail *that* connection; if the connection has been
replaced or torn down in the meantime the request is ignored. This is what
keeps a slow response from a previous connection from touching the
current one.

Events are emitted after the session lock is released so handlers may call
back into the client.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from gopro_mcp.devices.errors import (
    CameraClientError,
    IllegalTransitionError,
    InvalidStateError,
)
from gopro_mcp.devices.events import EventBus, EventChannel
from gopro_mcp.drivers.gopro import CameraInfo
from gopro_mcp.drivers.transport.link import SerializedLink
from gopro_mcp.observability import get_logger

logger = get_logger(__name__)


class ConnectionState(Enum):
    """Lifecycle states of a client."""

    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"  # Reachable; powered off or not yet ready
    READY = "Ready"  # Powered and accepting commands


TRANSITIONS: Mapping[ConnectionState, frozenset[ConnectionState]] = MappingProxyType(
    {
        ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
        ConnectionState.CONNECTING: frozenset(
            {ConnectionState.CONNECTED, ConnectionState.DISCONNECTED}
        ),
        ConnectionState.CONNECTED: frozenset(
            {ConnectionState.READY, ConnectionState.DISCONNECTED}
        ),
        ConnectionState.READY: frozenset({ConnectionState.DISCONNECTED}),
    }
)


def is_legal_transition(current: ConnectionState, target: ConnectionState) -> bool:
    return target in TRANSITIONS[current]


@dataclass(eq=False)
class Connection:
    """One connect attempt and, if it succeeds, the session it becomes.

    Attributes:
        address: Camera address the attempt targets.
        link: Serialized link to that address.
        state: Lifecycle state while this connection is current.
        identity: Wi-Fi name reported during the handshake.
        password: Access password obtained during the handshake.
        info: Model and firmware, filled in on the way to Ready.
        powered: Last known power state.
        last_error: Error that ended the connection, if any.
    """

    address: str
    link: SerializedLink
    state: ConnectionState = ConnectionState.CONNECTING
    identity: str | None = None
    password: str | None = None
    info: CameraInfo = field(default_factory=CameraInfo)
    powered: bool = False
    last_error: CameraClientError | None = None


TransitionListener = Callable[[ConnectionState, ConnectionState], None]


class SessionStateMachine:
    """Holds the current Connection and its state.

    Example:
        session = SessionStateMachine(EventBus())
        connection = session.begin("10.5.5.9", link)
        if session.advance(connection, ConnectionState.CONNECTED):
            ...
        session.end()
    """

    def __init__(self, events: EventBus) -> None:
        self._events = events
        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._connection: Connection | None = None
        self._last_error: CameraClientError | None = None
        self._listeners: list[TransitionListener] = []
        self._disconnect_listeners: list[Callable[[], None]] = []

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def connection(self) -> Connection | None:
        with self._lock:
            return self._connection

    @property
    def last_error(self) -> CameraClientError | None:
        """Error that ended the most recent connection (None after a clean one)."""
        with self._lock:
            return self._last_error

    def is_current(self, connection: Connection) -> bool:
        with self._lock:
            return connection is self._connection

    def require(self, *states: ConnectionState) -> Connection:
        """Return the current connection if the state is one of ``states``.

        Raises:
            InvalidStateError: State is not in ``states``.
        """
        with self._lock:
            if self._state not in states or self._connection is None:
                allowed = ", ".join(s.value for s in states)
                raise InvalidStateError(
                    f"Not allowed in state {self._state.value} (requires {allowed})"
                )
            return self._connection

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_transition_listener(self, listener: TransitionListener) -> None:
        """Call ``listener(old, new)`` after every state change."""
        self._listeners.append(listener)

    def add_disconnect_listener(self, listener: Callable[[], None]) -> None:
        """Call ``listener()`` whenever the session enters Disconnected.

        Runs before any OnError event of the same disconnect.
        """
        self._disconnect_listeners.append(listener)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _transition(self, target: ConnectionState) -> ConnectionState:
        """Change state. Caller holds the lock."""
        current = self._state
        if not is_legal_transition(current, target):
            raise IllegalTransitionError(
                f"Illegal transition {current.value} -> {target.value}"
            )
        self._state = target
        if self._connection is not None:
            self._connection.state = target
        return current

    def _notify(self, old: ConnectionState, new: ConnectionState) -> None:
        logger.info(
            "Connection state changed",
            old_state=old.value,
            new_state=new.value,
        )
        for listener in self._listeners:
            listener(old, new)
        if new is ConnectionState.DISCONNECTED:
            for disconnect_listener in self._disconnect_listeners:
                disconnect_listener()

    def begin(self, address: str, link: SerializedLink) -> Connection:
        """Start a connect attempt: Disconnected -> Connecting.

        Raises:
            InvalidStateError: Not Disconnected (an attempt is in progress
                or a connection is live).
        """
        with self._lock:
            if self._state is not ConnectionState.DISCONNECTED:
                raise InvalidStateError(
                    f"Cannot connect while {self._state.value}"
                )
            connection = Connection(address=address, link=link)
            self._connection = connection
            self._last_error = None
            old = self._transition(ConnectionState.CONNECTING)
        self._notify(old, ConnectionState.CONNECTING)
        return connection

    def advance(self, connection: Connection, target: ConnectionState) -> bool:
        """Move ``connection`` forward (to Connected or Ready).

        Returns:
            False, without changing anything, if ``connection`` is no longer
            current or its state does not allow ``target``.
        """
        with self._lock:
            if connection is not self._connection:
                return False
            if not is_legal_transition(self._state, target):
                return False
            old = self._transition(target)
        self._notify(old, target)
        return True

    def fail(self, connection: Connection, error: CameraClientError) -> bool:
        """End ``connection`` because of ``error`` and emit OnError(kind).

        Returns:
            True if this call performed the transition and emitted the
            event; False if the connection was already gone.
        """
        with self._lock:
            if connection is not self._connection:
                return False
            if self._state is ConnectionState.DISCONNECTED:
                return False
            connection.last_error = error
            self._last_error = error
            self._connection = None
            old = self._transition(ConnectionState.DISCONNECTED)

        connection.link.close()
        logger.warning(
            "Connection lost",
            address=connection.address,
            kind=error.kind.value,
            error=str(error),
        )
        self._notify(old, ConnectionState.DISCONNECTED)
        self._events.emit(EventChannel.ERROR, error.kind, error)
        return True

    def end(self) -> bool:
        """Explicit disconnect: any state -> Disconnected, no error event.

        Returns:
            False if already Disconnected.
        """
        with self._lock:
            connection = self._connection
            if self._state is ConnectionState.DISCONNECTED:
                return False
            self._connection = None
            old = self._transition(ConnectionState.DISCONNECTED)

        if connection is not None:
            connection.link.close()
            logger.info("Disconnected", address=connection.address)
        self._notify(old, ConnectionState.DISCONNECTED)
        return True
