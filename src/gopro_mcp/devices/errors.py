"""Error taxonomy of the camera client.

Every failure a collaborator can observe is a CameraClientError carrying
one ErrorKind. The kind tells the caller what to do next:

    NotFound      connect could not reach the camera; retry connect
    Disconnected  an established link was lost; connect again
    Rejected      the camera refused one command; connection still usable
    InvalidState  wrong state for the call; connection still usable
    Busy          the link was serving another exchange; retry shortly
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(Enum):
    """Error categories surfaced to collaborators."""

    NOT_FOUND = "NotFound"
    DISCONNECTED = "Disconnected"
    REJECTED = "Rejected"
    INVALID_STATE = "InvalidState"
    BUSY = "Busy"


class CameraClientError(Exception):
    """Base class for all client errors."""

    kind: ClassVar[ErrorKind]

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": str(self)}


class NotFoundError(CameraClientError):
    """The camera did not answer the connect handshake."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, address: str, reason: str = "") -> None:
        self.address = address
        message = f"No camera found at {address}"
        super().__init__(f"{message}: {reason}" if reason else message)


class DisconnectedError(CameraClientError):
    """The link to a connected camera failed."""

    kind = ErrorKind.DISCONNECTED


class RejectedError(CameraClientError):
    """The camera (or the option table) refused a command.

    Attributes:
        status_code: HTTP status the camera answered with; None when the
            command was refused locally before anything was sent.
        option: Option label for SetOption rejections.
    """

    kind = ErrorKind.REJECTED

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        option: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.option = option
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.option is not None:
            data["option"] = self.option
        return data


class InvalidStateError(CameraClientError):
    """The call is not allowed in the current connection state."""

    kind = ErrorKind.INVALID_STATE


class BusyError(CameraClientError):
    """The link stayed busy longer than the caller was willing to wait."""

    kind = ErrorKind.BUSY


class IllegalTransitionError(RuntimeError):
    """A state change outside the lifecycle table was attempted.

    Always a programming error in the client itself, never a device
    condition, so it is not part of the CameraClientError taxonomy.
    """
