"""HTTP transport for a real camera on the local Wi-Fi link.

Uses a single requests.Session so the TCP connection to the camera is
reused between polls. The camera closes idle connections aggressively;
requests reconnects transparently, and a failure to do so surfaces as a
TransportError.
"""

from __future__ import annotations

import requests

from gopro_mcp.drivers.gopro.definitions import DEFAULT_CAMERA_ADDRESS
from gopro_mcp.drivers.transport import CameraRequest, CameraResponse, TransportError
from gopro_mcp.observability import get_logger

logger = get_logger(__name__)

#: Seconds to wait for the camera to connect and answer.
DEFAULT_TIMEOUT_S = 5.0


class HttpTransport:
    """CameraTransport over plain HTTP GET.

    Example:
        transport = HttpTransport("10.5.5.9")
        try:
            response = transport.send(CameraRequest("/bacpac/se"), "password")
        finally:
            transport.close()
    """

    def __init__(
        self,
        address: str = DEFAULT_CAMERA_ADDRESS,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        """Create a transport for one camera address.

        Args:
            address: Camera host or IP, optionally with ``:port``.
            timeout_s: Connect and read timeout per exchange.
            session: Session to use instead of a fresh one (tests inject a
                mock here).
        """
        self._address = address
        self._timeout_s = timeout_s
        self._session = session if session is not None else requests.Session()
        self._closed = False

    @property
    def address(self) -> str:
        return self._address

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    def url_for(self, request: CameraRequest, password: str | None = None) -> str:
        """Full URL for ``request``.

        Built by hand rather than through ``params=`` so the ``%XX``
        parameter is not percent-encoded a second time.
        """
        url = f"http://{self._address}{request.path}"
        query = request.query(password)
        if query:
            url = f"{url}?{query}"
        return url

    def send(
        self, request: CameraRequest, password: str | None = None
    ) -> CameraResponse:
        """GET the request URL and wrap the answer.

        Raises:
            TransportError: Transport closed, connection failed or timed out.
        """
        if self._closed:
            raise TransportError(f"Transport to {self._address} is closed")

        url = self.url_for(request, password)
        try:
            response = self._session.get(url, timeout=self._timeout_s)
        except requests.exceptions.RequestException as e:
            logger.debug(
                "Camera request failed",
                address=self._address,
                path=request.path,
                error=str(e),
            )
            raise TransportError(
                f"{request.path} on {self._address} failed: {e}"
            ) from e

        logger.debug(
            "Camera request completed",
            address=self._address,
            path=request.path,
            status_code=response.status_code,
            length=len(response.content),
        )
        return CameraResponse(status_code=response.status_code, body=response.content)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session.close()

    def __repr__(self) -> str:
        return f"HttpTransport(address={self._address!r}, timeout_s={self._timeout_s})"
