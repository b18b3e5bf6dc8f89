"""Serialized access to a camera transport.

The camera documents no concurrency guarantees, so the client never has
two exchanges on the air at once. SerializedLink owns that rule: every
exchange, and every multi-request sequence such as a status round, runs
while holding one re-entrant lock. Callers choose how long to wait for it;
giving up raises LinkBusyError.

Each exchange is also timed and recorded in LinkStats under a kind label.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

from gopro_mcp.drivers.transport import (
    CameraRequest,
    CameraResponse,
    CameraTransport,
    LinkBusyError,
    TransportError,
)
from gopro_mcp.observability import LinkStats, get_logger

logger = get_logger(__name__)


class SerializedLink:
    """One-exchange-at-a-time wrapper around a CameraTransport.

    Example:
        link = SerializedLink(transport)
        with link.exclusive(wait_s=1.0):
            status = link.send(CameraRequest("/camera/se"), password, kind="status")
            mode = link.send(CameraRequest("/camera/vv"), password, kind="status")
    """

    def __init__(
        self,
        transport: CameraTransport,
        stats: LinkStats | None = None,
    ) -> None:
        self._transport = transport
        self._stats = stats if stats is not None else LinkStats()
        self._lock = threading.RLock()

    @property
    def address(self) -> str:
        return self._transport.address

    @property
    def transport(self) -> CameraTransport:
        return self._transport

    @property
    def stats(self) -> LinkStats:
        return self._stats

    def _acquire(self, wait_s: float | None, kind: str) -> None:
        acquired = self._lock.acquire(timeout=-1 if wait_s is None else wait_s)
        if not acquired:
            self._stats.record_exchange(kind, 0.0, success=False, error_type="busy")
            logger.debug("Camera link busy", address=self.address, kind=kind)
            raise LinkBusyError(
                f"Camera link to {self.address} busy for more than {wait_s}s"
            )

    @contextmanager
    def exclusive(
        self, wait_s: float | None = None, kind: str = "exclusive"
    ) -> Iterator[None]:
        """Hold the link for a sequence of exchanges.

        Args:
            wait_s: Seconds to wait for the link; None waits indefinitely.
            kind: Label recorded if the wait times out.

        Raises:
            LinkBusyError: Link not obtained within ``wait_s``.
        """
        self._acquire(wait_s, kind)
        try:
            yield
        finally:
            self._lock.release()

    def send(
        self,
        request: CameraRequest,
        password: str | None = None,
        *,
        kind: str = "command",
        wait_s: float | None = None,
    ) -> CameraResponse:
        """Perform one exchange while holding the link.

        Args:
            request: Request to send.
            password: Access password for authenticated requests.
            kind: Statistics label for this exchange.
            wait_s: Seconds to wait for the link; None waits indefinitely.

        Returns:
            The camera's response. A non-200 response is returned, not
            raised; it is recorded as a "rejected" failure.

        Raises:
            LinkBusyError: Link not obtained within ``wait_s``.
            TransportError: Exchange failed.
        """
        self._acquire(wait_s, kind)
        try:
            start = time.monotonic()
            try:
                response = self._transport.send(request, password)
            except TransportError:
                self._stats.record_exchange(
                    kind,
                    (time.monotonic() - start) * 1000,
                    success=False,
                    error_type="transport",
                )
                raise
            duration_ms = (time.monotonic() - start) * 1000
            if response.ok:
                self._stats.record_exchange(kind, duration_ms, success=True)
            else:
                self._stats.record_exchange(
                    kind, duration_ms, success=False, error_type="rejected"
                )
            return response
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close the underlying transport.

        Does not wait for the link: an exchange still in flight on another
        thread fails or completes on its own, and its result is discarded
        by the session that owned it.
        """
        self._transport.close()
