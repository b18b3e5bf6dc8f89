"""Camera client facade.

CameraClient is the single object a collaborator talks to. It wires the
session state machine, status poller, command dispatcher and event bus
together over one serialized link per connection, and owns the connect
sequence:

    begin (Connecting)
      -> /bacpac/cv, /bacpac/sd       identity and password   (NotFound)
    Connected, OnConnect(identity)
      -> /bacpac/se                   power state             (Disconnected)
    if powered and ready:
      -> /camera/cv                   model and firmware
    Ready, OnReady, polling starts

A camera that is off or still booting leaves the client Connected with a
power watch reading /bacpac/se every poll interval. power_on(), or the
watch seeing the camera come up, continues from /camera/cv.

Example:
    client = CameraClient()
    client.set_on_ready(lambda: print("ready"))
    client.set_on_status_changed(lambda update: print(update.delta))
    client.connect("10.5.5.9")
    if not client.is_power_on():
        client.power_on()
    client.set_options({"CameraMode": "Photo"})
    client.start_shutter()
    client.disconnect()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from gopro_mcp.devices.dispatcher import Command, CommandDispatcher, CommandResult
from gopro_mcp.devices.errors import (
    BusyError,
    CameraClientError,
    DisconnectedError,
    InvalidStateError,
    NotFoundError,
    RejectedError,
)
from gopro_mcp.devices.events import EventBus, EventChannel, Handler
from gopro_mcp.devices.poller import PowerWatch, StatusPoller
from gopro_mcp.devices.scheduling import Scheduler, TimerScheduler
from gopro_mcp.devices.session import (
    Connection,
    ConnectionState,
    SessionStateMachine,
)
from gopro_mcp.devices.status import CameraStatus, StatusUpdate
from gopro_mcp.drivers.config import DriverConfig, get_factory
from gopro_mcp.drivers.gopro import (
    BacpacStatus,
    CameraInfo,
    CodecError,
    decode_bacpac_status,
    parse_camera_info,
    parse_password,
)
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport import (
    CameraRequest,
    CameraResponse,
    CameraTransport,
    LinkBusyError,
    TransportError,
)
from gopro_mcp.drivers.transport.link import SerializedLink
from gopro_mcp.observability import LinkStats, LogContext, get_logger

logger = get_logger(__name__)

TransportFactory = Callable[[str], CameraTransport]

_HANDSHAKE_KIND = "handshake"


class HandshakeError(Exception):
    """The camera answered a handshake read with an error code."""

    def __init__(self, path: str, status_code: int) -> None:
        self.path = path
        self.status_code = status_code
        super().__init__(f"{path} answered {status_code}")


class CameraClient:
    """Connects to one camera, keeps its status current, sends commands.

    Blocking calls (connect, power_on, commands, load_status) run on the
    caller's thread. Status rounds run on timer threads. Events are
    delivered on whichever thread produced them.

    Args:
        transport_factory: ``address -> CameraTransport``. Defaults to the
            global driver factory (digital twin unless configured for
            hardware).
        config: Timing and default address. Defaults to the global driver
            factory's config.
        stats: Exchange statistics, shared across reconnects.
        scheduler: Timer source for status rounds and the power watch.
    """

    def __init__(
        self,
        transport_factory: TransportFactory | None = None,
        config: DriverConfig | None = None,
        stats: LinkStats | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        if transport_factory is None or config is None:
            factory = get_factory()
            transport_factory = transport_factory or factory.create_transport
            config = config or factory.config

        self._config = config
        self._transport_factory = transport_factory
        self._stats = stats if stats is not None else LinkStats()

        scheduler = scheduler or TimerScheduler()
        self._events = EventBus()
        self._session = SessionStateMachine(self._events)
        self._power_watch = PowerWatch(
            self._session,
            on_ready=self._ready_after_power_up,
            scheduler=scheduler,
            interval_s=config.poll_interval_s,
        )
        self._poller = StatusPoller(
            self._session,
            self._events,
            scheduler=scheduler,
            interval_s=config.poll_interval_s,
        )
        self._dispatcher = CommandDispatcher(
            self._session, command_wait_s=config.command_wait_s
        )
        self._session.add_disconnect_listener(self._power_watch.stop)
        self._session.add_disconnect_listener(self._poller.stop)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._session.state

    @property
    def address(self) -> str | None:
        """Address of the current connection, None while Disconnected."""
        connection = self._session.connection
        return connection.address if connection else None

    @property
    def identity(self) -> str | None:
        connection = self._session.connection
        return connection.identity if connection else None

    @property
    def last_error(self) -> CameraClientError | None:
        return self._session.last_error

    @property
    def snapshot(self) -> CameraStatus | None:
        """Latest status, None before the first round or after disconnect."""
        return self._poller.snapshot

    @property
    def stats(self) -> LinkStats:
        return self._stats

    @property
    def config(self) -> DriverConfig:
        return self._config

    @property
    def polling(self) -> bool:
        return self._poller.running

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def set_on_connect(self, handler: Callable[[str], Any] | None) -> None:
        """``handler(identity)`` after the handshake succeeds."""
        self._events.subscribe(EventChannel.CONNECT, handler)

    def set_on_ready(self, handler: Callable[[], Any] | None) -> None:
        """``handler()`` once per connection when it becomes Ready."""
        self._events.subscribe(EventChannel.READY, handler)

    def set_on_error(self, handler: Handler | None) -> None:
        """``handler(kind, error)`` when connect fails or a connection is lost."""
        self._events.subscribe(EventChannel.ERROR, handler)

    def set_on_status_changed(
        self, handler: Callable[[StatusUpdate], Any] | None
    ) -> None:
        """``handler(update)`` after every status round."""
        self._events.subscribe(EventChannel.STATUS_CHANGED, handler)

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    def connect(self, address: str | None = None) -> ConnectionState:
        """Connect to the camera at ``address`` (default: configured address).

        An existing connection is disconnected first. Failures do not
        raise: they end in Disconnected with an OnError event, and the
        returned state tells the caller where things stand.

        Returns:
            State after the attempt: Disconnected, Connected (camera off or
            booting) or Ready.

        Raises:
            InvalidStateError: Another connect attempt is in progress.
        """
        address = address or self._config.camera_address

        current = self._session.state
        if current is ConnectionState.CONNECTING:
            raise InvalidStateError("Connection attempt already in progress")
        if current is not ConnectionState.DISCONNECTED:
            logger.info("Replacing existing connection", new_address=address)
            self._session.end()

        link = SerializedLink(self._transport_factory(address), self._stats)
        connection = self._session.begin(address, link)

        with LogContext(address=address):
            logger.info("Connecting to camera")
            try:
                self._handshake(connection)
            except (TransportError, HandshakeError) as exc:
                logger.warning("Camera not found", error=str(exc))
                self._session.fail(connection, NotFoundError(address, str(exc)))
                return self._session.state

            if not self._session.advance(connection, ConnectionState.CONNECTED):
                return self._session.state
            logger.info("Connected to camera", identity=connection.identity)
            self._events.emit(EventChannel.CONNECT, connection.identity)

            try:
                power = self._query_power(connection)
            except (TransportError, CodecError, HandshakeError) as exc:
                self._session.fail(
                    connection, DisconnectedError(f"Power query failed: {exc}")
                )
                return self._session.state

            if power.powered and power.ready:
                try:
                    self._become_ready(connection)
                except TransportError as exc:
                    self._session.fail(
                        connection, DisconnectedError(f"Camera info failed: {exc}")
                    )
            else:
                logger.info(
                    "Camera not ready yet",
                    powered=power.powered,
                    ready=power.ready,
                )
                self._power_watch.start(connection)

        return self._session.state

    def disconnect(self) -> bool:
        """Drop the connection without an error event.

        Returns:
            False if there was nothing to disconnect.
        """
        return self._session.end()

    def close(self) -> None:
        """Disconnect and drop every handler."""
        self.disconnect()
        self._events.clear()

    def _handshake(self, connection: Connection) -> None:
        link = connection.link
        identity = self._read_handshake(
            link, CameraRequest(d.WIFI_NAME_PATH, authenticated=False)
        )
        password = self._read_handshake(
            link, CameraRequest(d.PASSWORD_PATH, authenticated=False)
        )
        connection.identity = identity.text
        connection.password = parse_password(password.text)

    @staticmethod
    def _read_handshake(link: SerializedLink, request: CameraRequest) -> CameraResponse:
        response = link.send(request, kind=_HANDSHAKE_KIND)
        if not response.ok:
            raise HandshakeError(request.path, response.status_code)
        return response

    def _query_power(
        self, connection: Connection, wait_s: float | None = None
    ) -> BacpacStatus:
        request = CameraRequest(d.BACPAC_STATUS_PATH)
        response = connection.link.send(
            request, connection.password, kind=_HANDSHAKE_KIND, wait_s=wait_s
        )
        if not response.ok:
            raise HandshakeError(request.path, response.status_code)
        power = decode_bacpac_status(response.body)
        connection.powered = power.powered
        return power

    def _fetch_info(self, connection: Connection) -> CameraInfo:
        response = connection.link.send(
            CameraRequest(d.CAMERA_INFO_PATH),
            connection.password,
            kind=_HANDSHAKE_KIND,
        )
        if not response.ok:
            logger.warning("Camera info unavailable", status_code=response.status_code)
            return CameraInfo()
        return parse_camera_info(response.text)

    def _become_ready(self, connection: Connection) -> bool:
        """Fetch identification, go Ready, emit OnReady, start polling.

        Raises:
            TransportError: Identification read failed.
        """
        connection.info = self._fetch_info(connection)
        connection.powered = True
        if not self._session.advance(connection, ConnectionState.READY):
            return False
        self._power_watch.stop()
        logger.info(
            "Camera ready",
            model=connection.info.model_name,
            firmware=connection.info.firmware,
        )
        self._events.emit(EventChannel.READY)

        if self._config.auto_poll:
            try:
                self._poller.start()
            except InvalidStateError:
                # An OnReady handler disconnected.
                logger.debug("Not starting status polling, no longer Ready")
        return True

    def _ready_after_power_up(self, connection: Connection) -> None:
        """Power watch callback: the camera reported powered and ready."""
        try:
            self._become_ready(connection)
        except TransportError as exc:
            self._session.fail(
                connection, DisconnectedError(f"Camera info failed: {exc}")
            )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_ready(self) -> bool:
        return self._session.state is ConnectionState.READY

    def is_power_on(self) -> bool:
        """Whether the camera body is powered.

        Asks the camera while Connected; Ready implies powered. A camera
        found powered and ready moves the client to Ready (OnReady) before
        this returns.

        Raises:
            InvalidStateError: Not Connected or Ready.
            RejectedError: Camera refused the power query.
            BusyError: Link busy past the command wait.
            DisconnectedError: Query failed; the connection is gone.
        """
        connection = self._session.require(
            ConnectionState.CONNECTED, ConnectionState.READY
        )
        if connection.state is ConnectionState.READY:
            return True
        try:
            power = self._query_power(connection, wait_s=self._config.command_wait_s)
        except LinkBusyError as exc:
            raise BusyError(str(exc)) from exc
        except HandshakeError as exc:
            raise RejectedError(str(exc), status_code=exc.status_code) from exc
        except (TransportError, CodecError) as exc:
            error = DisconnectedError(f"Power query failed: {exc}")
            self._session.fail(connection, error)
            raise error from exc
        if power.powered and power.ready:
            try:
                self._become_ready(connection)
            except TransportError as exc:
                error = DisconnectedError(f"Camera info failed: {exc}")
                self._session.fail(connection, error)
                raise error from exc
        return power.powered

    def get_model(self) -> str:
        connection = self._session.connection
        return connection.info.model_name if connection else d.UNKNOWN

    def get_firmware(self) -> str:
        connection = self._session.connection
        return connection.info.firmware if connection else d.UNKNOWN

    def load_status(
        self, callback: Callable[[CameraStatus], Any] | None = None
    ) -> StatusUpdate:
        """Fetch status now instead of waiting for the next round.

        The result is published like a scheduled round (StatusChanged is
        emitted) and additionally handed to ``callback``.

        Raises:
            InvalidStateError: Not Ready.
            BusyError: Link busy.
            DisconnectedError: Read failed; the connection is gone.
        """
        update = self._poller.poll_once()
        if callback is not None:
            callback(update.snapshot)
        return update

    def describe(self) -> dict[str, Any]:
        """Connection summary for tools and logs."""
        connection = self._session.connection
        error = self._session.last_error
        return {
            "state": self.state.value,
            "address": connection.address if connection else None,
            "identity": connection.identity if connection else None,
            "powered": connection.powered if connection else False,
            "model": self.get_model(),
            "firmware": self.get_firmware(),
            "polling": self._poller.running,
            "last_error": error.to_dict() if error else None,
        }

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def power_on(self) -> CommandResult:
        """Power the camera on; once acknowledged, go Ready.

        Raises:
            InvalidStateError: Not Connected.
            RejectedError: Camera refused.
            BusyError: Link busy.
            DisconnectedError: Link failed.
        """
        result = self._dispatcher.dispatch(Command.power_on())
        connection = self._session.connection
        if connection is None:
            raise DisconnectedError("Connection closed while powering on")
        try:
            self._become_ready(connection)
        except TransportError as exc:
            error = DisconnectedError(f"Camera info failed: {exc}")
            self._session.fail(connection, error)
            raise error from exc
        return result

    def set_options(self, options: Mapping[str, Any]) -> CommandResult:
        """Apply option changes, e.g. ``{"CameraMode": "Photo"}``.

        Every entry is validated before anything is sent. Entries are then
        applied in a fixed order (mode before mode-specific settings).
        """
        return self._dispatcher.dispatch(Command.set_options(options))

    def start_shutter(self) -> CommandResult:
        return self._dispatcher.dispatch(Command.start_shutter())

    def stop_shutter(self) -> CommandResult:
        return self._dispatcher.dispatch(Command.stop_shutter())

    def start_locate(self) -> CommandResult:
        """Make the camera beep so it can be found."""
        return self._dispatcher.dispatch(Command.start_locate())

    def stop_locate(self) -> CommandResult:
        return self._dispatcher.dispatch(Command.stop_locate())

    def __repr__(self) -> str:
        return f"CameraClient(state={self.state.value}, address={self.address!r})"
