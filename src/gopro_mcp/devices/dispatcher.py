"""Validated, state-checked command execution.

Every command follows the same path:

1. State check. A command outside its allowed state fails with
   InvalidStateError before anything is encoded or sent.
2. Encoding. Unknown option labels or values fail with RejectedError,
   again without touching the link.
3. Exchange, waiting at most ``command_wait_s`` for an in-flight status
   round. Giving up is BusyError.
4. Outcome. A non-200 answer is RejectedError and the connection stays
   up. A transport failure ends the connection (Disconnected plus
   OnError) and the command raises DisconnectedError.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from gopro_mcp.devices.errors import (
    BusyError,
    DisconnectedError,
    RejectedError,
)
from gopro_mcp.devices.session import (
    Connection,
    ConnectionState,
    SessionStateMachine,
)
from gopro_mcp.drivers.config import DEFAULT_COMMAND_WAIT_S
from gopro_mcp.drivers.gopro import OptionError, encode_options
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport import (
    CameraRequest,
    CameraResponse,
    LinkBusyError,
    TransportError,
)
from gopro_mcp.observability import LogContext, get_logger

logger = get_logger(__name__)


class CommandKind(Enum):
    """Commands a collaborator can issue."""

    POWER_ON = "PowerOn"
    SET_OPTION = "SetOption"
    START_SHUTTER = "StartShutter"
    STOP_SHUTTER = "StopShutter"
    START_LOCATE = "StartLocate"
    STOP_LOCATE = "StopLocate"


#: State each command is valid in.
REQUIRED_STATE: Mapping[CommandKind, ConnectionState] = MappingProxyType(
    {
        CommandKind.POWER_ON: ConnectionState.CONNECTED,
        CommandKind.SET_OPTION: ConnectionState.READY,
        CommandKind.START_SHUTTER: ConnectionState.READY,
        CommandKind.STOP_SHUTTER: ConnectionState.READY,
        CommandKind.START_LOCATE: ConnectionState.READY,
        CommandKind.STOP_LOCATE: ConnectionState.READY,
    }
)

_FIXED_REQUESTS: Mapping[CommandKind, CameraRequest] = MappingProxyType(
    {
        CommandKind.POWER_ON: CameraRequest(d.POWER_PATH, param=d.PARAM_ON),
        CommandKind.START_SHUTTER: CameraRequest(d.SHUTTER_PATH, param=d.PARAM_ON),
        CommandKind.STOP_SHUTTER: CameraRequest(d.SHUTTER_PATH, param=d.PARAM_OFF),
        CommandKind.START_LOCATE: CameraRequest(d.LOCATE_PATH, param=d.PARAM_ON),
        CommandKind.STOP_LOCATE: CameraRequest(d.LOCATE_PATH, param=d.PARAM_OFF),
    }
)


@dataclass(frozen=True)
class Command:
    """One command value. ``payload`` is only used by SET_OPTION.

    Example:
        >>> Command.set_option("CameraMode", "Photo").payload
        mappingproxy({'CameraMode': 'Photo'})
    """

    kind: CommandKind
    payload: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def power_on(cls) -> Command:
        return cls(CommandKind.POWER_ON)

    @classmethod
    def set_option(cls, label: str, value: Any) -> Command:
        return cls(CommandKind.SET_OPTION, MappingProxyType({label: value}))

    @classmethod
    def set_options(cls, options: Mapping[str, Any]) -> Command:
        return cls(CommandKind.SET_OPTION, MappingProxyType(dict(options)))

    @classmethod
    def start_shutter(cls) -> Command:
        return cls(CommandKind.START_SHUTTER)

    @classmethod
    def stop_shutter(cls) -> Command:
        return cls(CommandKind.STOP_SHUTTER)

    @classmethod
    def start_locate(cls) -> Command:
        return cls(CommandKind.START_LOCATE)

    @classmethod
    def stop_locate(cls) -> Command:
        return cls(CommandKind.STOP_LOCATE)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """What a successful command sent.

    Attributes:
        kind: Command that ran.
        applied: Canonical option labels applied, in order (SET_OPTION).
        exchanges: Number of requests the camera acknowledged.
    """

    kind: CommandKind
    applied: tuple[str, ...] = ()
    exchanges: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.kind.value,
            "applied": list(self.applied),
            "exchanges": self.exchanges,
        }


class CommandDispatcher:
    """Executes commands against the session's current connection."""

    def __init__(
        self,
        session: SessionStateMachine,
        command_wait_s: float = DEFAULT_COMMAND_WAIT_S,
    ) -> None:
        self._session = session
        self._command_wait_s = command_wait_s

    @property
    def command_wait_s(self) -> float:
        return self._command_wait_s

    def dispatch(self, command: Command) -> CommandResult:
        """Run ``command`` and return once the camera acknowledged it.

        Raises:
            InvalidStateError: Wrong state for the command.
            RejectedError: Unsupported option, or the camera refused.
            BusyError: Link busy for longer than ``command_wait_s``.
            DisconnectedError: Link failed; the connection is gone.
        """
        connection = self._session.require(REQUIRED_STATE[command.kind])
        requests = self._encode(command)

        with LogContext(command=command.kind.value, address=connection.address):
            logger.info("Dispatching command", exchanges=len(requests))
            for label, request in requests:
                self._send(connection, request, label)

        return CommandResult(
            kind=command.kind,
            applied=tuple(label for label, _ in requests if label),
            exchanges=len(requests),
        )

    @staticmethod
    def _encode(command: Command) -> list[tuple[str, CameraRequest]]:
        if command.kind is not CommandKind.SET_OPTION:
            return [("", _FIXED_REQUESTS[command.kind])]

        if not command.payload:
            raise RejectedError("No options given")
        try:
            return encode_options(command.payload)
        except OptionError as exc:
            logger.warning(
                "Option rejected", option=exc.label, value=repr(exc.value)
            )
            raise RejectedError(str(exc), option=exc.label) from exc

    def _send(
        self, connection: Connection, request: CameraRequest, label: str
    ) -> CameraResponse:
        try:
            response = connection.link.send(
                request,
                connection.password,
                kind="command",
                wait_s=self._command_wait_s,
            )
        except LinkBusyError as exc:
            logger.warning("Command timed out waiting for link", path=request.path)
            raise BusyError(str(exc)) from exc
        except TransportError as exc:
            error = DisconnectedError(f"Command {request.path} failed: {exc}")
            self._session.fail(connection, error)
            raise error from exc

        if not response.ok:
            logger.warning(
                "Command rejected",
                path=request.path,
                status_code=response.status_code,
            )
            raise RejectedError(
                f"Camera refused {request.path} (HTTP {response.status_code})",
                status_code=response.status_code,
                option=label or None,
            )
        return response
