"""Logical device layer: connection lifecycle, status, commands, events."""

from gopro_mcp.devices.client import CameraClient, HandshakeError
from gopro_mcp.devices.dispatcher import (
    Command,
    CommandDispatcher,
    CommandKind,
    CommandResult,
)
from gopro_mcp.devices.errors import (
    BusyError,
    CameraClientError,
    DisconnectedError,
    ErrorKind,
    IllegalTransitionError,
    InvalidStateError,
    NotFoundError,
    RejectedError,
)
from gopro_mcp.devices.events import EventBus, EventChannel
from gopro_mcp.devices.poller import PowerWatch, StatusPoller
from gopro_mcp.devices.registry import get_client, init_client, shutdown_client
from gopro_mcp.devices.scheduling import ScheduledCall, Scheduler, TimerScheduler
from gopro_mcp.devices.session import (
    TRANSITIONS,
    Connection,
    ConnectionState,
    SessionStateMachine,
)
from gopro_mcp.devices.status import (
    CameraStatus,
    StatusChange,
    StatusDelta,
    StatusUpdate,
    UpdateKind,
    diff_status,
)

__all__ = [
    # Client
    "CameraClient",
    "HandshakeError",
    # Errors
    "ErrorKind",
    "CameraClientError",
    "NotFoundError",
    "DisconnectedError",
    "RejectedError",
    "InvalidStateError",
    "BusyError",
    "IllegalTransitionError",
    # Session
    "ConnectionState",
    "Connection",
    "SessionStateMachine",
    "TRANSITIONS",
    # Status
    "CameraStatus",
    "StatusChange",
    "StatusDelta",
    "StatusUpdate",
    "UpdateKind",
    "diff_status",
    "StatusPoller",
    "PowerWatch",
    # Commands
    "Command",
    "CommandKind",
    "CommandResult",
    "CommandDispatcher",
    # Events
    "EventBus",
    "EventChannel",
    # Scheduling
    "Scheduler",
    "ScheduledCall",
    "TimerScheduler",
    # Registry
    "init_client",
    "get_client",
    "shutdown_client",
]
