"""Periodic polling of the camera.

StatusPoller runs while the camera is Ready. PowerWatch runs while it is
only Connected: it reads /bacpac/se on the same interval and hands the
connection back to the client once the camera reports powered and ready,
whether it was switched on by hand or was still booting at connect time.
A failed read ends the connection in both.

One StatusPoller round is four reads made while holding the link
(/camera/se plus the video mode, frame rate and burst rate reads), decoded
into a CameraStatus, diffed against the previous one and delivered as a
StatusUpdate. The next round is scheduled only after the current one
completes, so rounds never overlap and a slow camera simply polls less
often.

A read that fails ends the connection: the poller stops and asks the
session to fail it with Disconnected. There is no silent retry. A round
that finds the link busy (a command is on the air) is skipped instead.

Cancellation uses a generation counter. stop() bumps it; a round compares
the generation it started under before it publishes anything, and the
publish itself happens under the same lock stop() takes. Once stop()
returns no further StatusChanged is emitted.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping

from gopro_mcp.devices.errors import BusyError, DisconnectedError
from gopro_mcp.devices.events import EventBus, EventChannel
from gopro_mcp.devices.scheduling import ScheduledCall, Scheduler, TimerScheduler
from gopro_mcp.devices.session import (
    Connection,
    ConnectionState,
    SessionStateMachine,
)
from gopro_mcp.devices.status import (
    CameraStatus,
    StatusUpdate,
    UpdateKind,
    diff_status,
)
from gopro_mcp.drivers.config import DEFAULT_POLL_INTERVAL_S
from gopro_mcp.drivers.gopro import (
    BacpacStatus,
    CodecError,
    StatusValue,
    decode_bacpac_status,
    decode_camera_status,
)
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport import CameraRequest, LinkBusyError, TransportError
from gopro_mcp.observability import get_logger

logger = get_logger(__name__)

#: How long a scheduled round waits for the link before skipping.
DEFAULT_POLL_WAIT_S = 1.0

_STATUS_KIND = "status"
_POWER_KIND = "power"


class StatusUnavailableError(Exception):
    """The camera answered the status read with an error code."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Camera status request answered {status_code}")


class StatusPoller:
    """Polls camera status on a schedule and publishes StatusUpdates.

    Example:
        poller = StatusPoller(session, events, interval_s=2.0)
        poller.start()   # requires Ready
        ...
        poller.stop()    # idempotent
    """

    def __init__(
        self,
        session: SessionStateMachine,
        events: EventBus,
        scheduler: Scheduler | None = None,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        wait_s: float = DEFAULT_POLL_WAIT_S,
    ) -> None:
        self._session = session
        self._events = events
        self._scheduler: Scheduler = scheduler or TimerScheduler()
        self._interval_s = interval_s
        self._wait_s = wait_s

        # Serializes rounds (scheduled and on-demand).
        self._round_lock = threading.RLock()
        # Guards generation, handle and snapshot; held while publishing.
        self._state_lock = threading.RLock()
        self._generation = 0
        self._running = False
        self._handle: ScheduledCall | None = None
        self._snapshot: CameraStatus | None = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        with self._state_lock:
            return self._running

    @property
    def snapshot(self) -> CameraStatus | None:
        """Latest published status, or None before the first round."""
        with self._state_lock:
            return self._snapshot

    @property
    def interval_s(self) -> float:
        return self._interval_s

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Begin polling. The first round runs immediately.

        Raises:
            InvalidStateError: Session is not Ready.
        """
        self._session.require(ConnectionState.READY)
        with self._state_lock:
            if self._running:
                return
            self._running = True
            generation = self._generation
            self._schedule_locked(generation, 0.0)
        logger.info("Status polling started", interval_s=self._interval_s)

    def stop(self) -> None:
        """Cancel the scheduled round and discard any in flight.

        Clears the snapshot so the next start() begins with a populate.
        Safe to call in any state and more than once.
        """
        with self._state_lock:
            was_running = self._running
            self._generation += 1
            self._running = False
            self._snapshot = None
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
        if was_running:
            logger.info("Status polling stopped")

    def _schedule_locked(self, generation: int, delay_s: float) -> None:
        self._handle = self._scheduler.schedule(
            delay_s, lambda: self._run_round(generation)
        )

    # -------------------------------------------------------------------------
    # Rounds
    # -------------------------------------------------------------------------

    def _run_round(self, generation: int) -> None:
        with self._round_lock:
            with self._state_lock:
                if generation != self._generation:
                    return
                self._handle = None

            connection = self._session.connection
            if connection is None or connection.state is not ConnectionState.READY:
                return

            try:
                values = self._load(connection)
            except LinkBusyError:
                logger.debug("Status round skipped, link busy")
                with self._state_lock:
                    if generation == self._generation:
                        self._schedule_locked(generation, self._interval_s)
                return
            except (TransportError, CodecError, StatusUnavailableError) as exc:
                with self._state_lock:
                    if generation != self._generation:
                        return
                self._fail(connection, exc)
                return

            with self._state_lock:
                if generation != self._generation:
                    return
                update = self._publish_locked(values)
                self._schedule_locked(generation, self._interval_s)
            logger.debug("Status round complete", changes=len(update.delta))

    def poll_once(self) -> StatusUpdate:
        """Run one round now, outside the schedule.

        The update is published (snapshot replaced, StatusChanged emitted)
        exactly like a scheduled round.

        Raises:
            InvalidStateError: Session is not Ready.
            BusyError: Link stayed busy past the poll wait.
            DisconnectedError: The read failed; the connection is gone.
        """
        connection = self._session.require(ConnectionState.READY)
        with self._round_lock:
            with self._state_lock:
                generation = self._generation
            try:
                values = self._load(connection)
            except LinkBusyError as exc:
                raise BusyError(str(exc)) from exc
            except (TransportError, CodecError, StatusUnavailableError) as exc:
                raise self._fail(connection, exc) from exc

            with self._state_lock:
                if generation != self._generation or not self._session.is_current(
                    connection
                ):
                    raise DisconnectedError("Connection closed while loading status")
                return self._publish_locked(values)

    def _fail(self, connection: Connection, exc: Exception) -> DisconnectedError:
        logger.warning(
            "Status poll failed",
            address=connection.address,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        self.stop()
        error = DisconnectedError(f"Status poll failed: {exc}")
        self._session.fail(connection, error)
        return error

    def _load(self, connection: Connection) -> dict[str, StatusValue]:
        link = connection.link
        password = connection.password
        with link.exclusive(wait_s=self._wait_s, kind=_STATUS_KIND):
            status = link.send(
                CameraRequest(d.CAMERA_STATUS_PATH), password, kind=_STATUS_KIND
            )
            if not status.ok:
                raise StatusUnavailableError(status.status_code)
            auxiliary = {
                path: self._read(connection, path)
                for path in (
                    d.VIDEO_MODE_READ_PATH,
                    d.VIDEO_FPS_READ_PATH,
                    d.BURST_RATE_READ_PATH,
                )
            }
        return decode_camera_status(
            status.body,
            video_mode=auxiliary[d.VIDEO_MODE_READ_PATH],
            video_fps=auxiliary[d.VIDEO_FPS_READ_PATH],
            burst_rate=auxiliary[d.BURST_RATE_READ_PATH],
        )

    @staticmethod
    def _read(connection: Connection, path: str) -> bytes | None:
        """Single-setting read; a refused read decodes as Unknown."""
        response = connection.link.send(
            CameraRequest(path), connection.password, kind=_STATUS_KIND
        )
        return response.body if response.ok else None

    def _publish_locked(self, values: Mapping[str, StatusValue]) -> StatusUpdate:
        previous = self._snapshot
        snapshot = CameraStatus(values)
        update = StatusUpdate(
            kind=UpdateKind.POPULATE if previous is None else UpdateKind.UPDATE,
            snapshot=snapshot,
            delta=diff_status(previous, snapshot),
        )
        self._snapshot = snapshot
        self._events.emit(EventChannel.STATUS_CHANGED, update)
        return update


class PowerWatch:
    """Watches the bacpac power state while the session is Connected.

    Each round reads /bacpac/se. Powered and ready stops the watch and
    calls ``on_ready(connection)``; anything else schedules the next
    round. A busy link skips the round, a failed read fails the session
    with Disconnected.

    Example:
        watch = PowerWatch(session, on_ready=client_become_ready)
        watch.start(connection)   # after connect finds the camera off
        ...
        watch.stop()              # on disconnect or once Ready
    """

    def __init__(
        self,
        session: SessionStateMachine,
        on_ready: Callable[[Connection], object],
        scheduler: Scheduler | None = None,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        wait_s: float = DEFAULT_POLL_WAIT_S,
    ) -> None:
        self._session = session
        self._on_ready = on_ready
        self._scheduler: Scheduler = scheduler or TimerScheduler()
        self._interval_s = interval_s
        self._wait_s = wait_s

        self._lock = threading.Lock()
        self._generation = 0
        self._running = False
        self._handle: ScheduledCall | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def start(self, connection: Connection) -> None:
        """Watch ``connection``; the first read happens one interval from now."""
        with self._lock:
            if self._running:
                return
            self._running = True
            generation = self._generation
            self._schedule_locked(generation, connection)
        logger.debug("Power watch started", interval_s=self._interval_s)

    def stop(self) -> None:
        """Cancel the next read. Safe in any state and more than once."""
        with self._lock:
            self._generation += 1
            self._running = False
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    def _schedule_locked(self, generation: int, connection: Connection) -> None:
        self._handle = self._scheduler.schedule(
            self._interval_s, lambda: self._run_round(generation, connection)
        )

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _run_round(self, generation: int, connection: Connection) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._handle = None

        if (
            not self._session.is_current(connection)
            or connection.state is not ConnectionState.CONNECTED
        ):
            self.stop()
            return

        try:
            power = self._read(connection)
        except LinkBusyError:
            logger.debug("Power watch round skipped, link busy")
        except (TransportError, CodecError, StatusUnavailableError) as exc:
            if not self._is_current(generation):
                return
            logger.warning(
                "Power watch failed",
                address=connection.address,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            self.stop()
            self._session.fail(
                connection, DisconnectedError(f"Power query failed: {exc}")
            )
            return
        else:
            if power.powered and power.ready:
                if not self._is_current(generation):
                    return
                self.stop()
                logger.info("Camera came up", address=connection.address)
                self._on_ready(connection)
                return

        with self._lock:
            if generation == self._generation:
                self._schedule_locked(generation, connection)

    def _read(self, connection: Connection) -> BacpacStatus:
        response = connection.link.send(
            CameraRequest(d.BACPAC_STATUS_PATH),
            connection.password,
            kind=_POWER_KIND,
            wait_s=self._wait_s,
        )
        if not response.ok:
            raise StatusUnavailableError(response.status_code)
        power = decode_bacpac_status(response.body)
        connection.powered = power.powered
        return power
