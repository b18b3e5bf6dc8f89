"""Camera link transports.

A transport performs exactly one request/response exchange with the camera
and knows nothing about sessions, polling or state. Two implementations
exist:

- HttpTransport: real camera over Wi-Fi (requests)
- DigitalTwinTransport: in-process simulated camera for tests and demos

SerializedLink wraps either one so that at most one exchange is on the air
at any instant.

Example:
    from gopro_mcp.drivers.transport import CameraRequest
    from gopro_mcp.drivers.transport.http import HttpTransport

    transport = HttpTransport("10.5.5.9", timeout_s=5.0)
    response = transport.send(CameraRequest("/bacpac/cv", authenticated=False))
    print(response.text)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

# =============================================================================
# Exceptions
# =============================================================================


class TransportError(Exception):
    """The exchange did not complete: unreachable host, timeout, reset.

    A device that answered with an error status is NOT a TransportError;
    that is a CameraResponse with ``ok == False``.
    """


class LinkBusyError(TransportError):
    """Another exchange held the link for longer than the caller would wait."""


# =============================================================================
# Request / Response
# =============================================================================


@dataclass(frozen=True, slots=True)
class CameraRequest:
    """One GET against the camera.

    Attributes:
        path: Endpoint path, e.g. "/camera/se".
        param: Optional single-byte parameter sent as ``p=%XX``.
        authenticated: Send the access password as ``t=``. Identity and
            password endpoints are read before a password is known.
    """

    path: str
    param: int | None = None
    authenticated: bool = True

    def __post_init__(self) -> None:
        if not self.path.startswith("/"):
            raise ValueError(f"Request path must start with '/': {self.path!r}")
        if self.param is not None and not 0 <= self.param <= 0xFF:
            raise ValueError(f"Request parameter must fit in one byte: {self.param}")

    def query(self, password: str | None) -> str:
        """Build the query string (without ``?``).

        The parameter is a literal ``%XX`` escape; it must reach the camera
        exactly like this and therefore is never URL-encoded again.

        Example:
            >>> CameraRequest("/bacpac/SH", param=1).query("secret")
            't=secret&p=%01'
        """
        parts = []
        if self.authenticated:
            parts.append(f"t={password or ''}")
        if self.param is not None:
            parts.append(f"p=%{self.param:02x}")
        return "&".join(parts)


@dataclass(frozen=True, slots=True)
class CameraResponse:
    """Outcome of a completed exchange."""

    status_code: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class CameraTransport(Protocol):  # pragma: no cover
    """Request/response channel to one camera address."""

    @property
    def address(self) -> str:
        """Network address the transport talks to."""
        ...

    def send(
        self, request: CameraRequest, password: str | None = None
    ) -> CameraResponse:
        """Perform one exchange.

        Args:
            request: What to ask for.
            password: Access password for authenticated requests.

        Returns:
            The camera's response, whatever its status code.

        Raises:
            TransportError: The exchange could not be completed.
        """
        ...

    def close(self) -> None:
        """Release sockets or other resources. Safe to call repeatedly."""
        ...


__all__ = [
    "CameraRequest",
    "CameraResponse",
    "CameraTransport",
    "LinkBusyError",
    "TransportError",
]
