"""Tests for CommandDispatcher."""

import pytest

from gopro_mcp.devices.dispatcher import (
    REQUIRED_STATE,
    Command,
    CommandDispatcher,
    CommandKind,
)
from gopro_mcp.devices.errors import (
    BusyError,
    DisconnectedError,
    ErrorKind,
    InvalidStateError,
    RejectedError,
)
from gopro_mcp.devices.events import EventBus, EventChannel
from gopro_mcp.devices.session import ConnectionState, SessionStateMachine
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport import LinkBusyError
from gopro_mcp.drivers.transport.link import SerializedLink
from gopro_mcp.drivers.transport.twin import (
    DigitalTwinCamera,
    DigitalTwinConfig,
    DigitalTwinTransport,
)


@pytest.fixture
def camera():
    return DigitalTwinCamera()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def session(bus):
    return SessionStateMachine(bus)


@pytest.fixture
def dispatcher(session):
    return CommandDispatcher(session, command_wait_s=0.05)


def connect(session, camera, state):
    link = SerializedLink(DigitalTwinTransport("10.5.5.9", camera))
    connection = session.begin("10.5.5.9", link)
    connection.password = camera.config.password
    session.advance(connection, ConnectionState.CONNECTED)
    if state is ConnectionState.READY:
        session.advance(connection, ConnectionState.READY)
    return connection


class TestCommand:
    """Command value objects."""

    def test_payload_is_read_only(self):
        command = Command.set_option("CameraMode", "Photo")
        with pytest.raises(TypeError):
            command.payload["CameraMode"] = "Video"  # type: ignore[index]

    def test_required_states(self):
        assert REQUIRED_STATE[CommandKind.POWER_ON] is ConnectionState.CONNECTED
        others = set(CommandKind) - {CommandKind.POWER_ON}
        assert {REQUIRED_STATE[k] for k in others} == {ConnectionState.READY}


class TestStateChecks:
    """Wrong state fails immediately, without a transport call."""

    def test_shutter_in_connected_is_invalid_state(self, session, dispatcher, camera):
        connect(session, camera, ConnectionState.CONNECTED)
        with pytest.raises(InvalidStateError):
            dispatcher.dispatch(Command.start_shutter())
        assert camera.requests == []

    def test_power_on_in_ready_is_invalid_state(self, session, dispatcher, camera):
        connect(session, camera, ConnectionState.READY)
        with pytest.raises(InvalidStateError):
            dispatcher.dispatch(Command.power_on())
        assert camera.requests == []

    def test_any_command_when_disconnected(self, dispatcher):
        with pytest.raises(InvalidStateError) as exc_info:
            dispatcher.dispatch(Command.stop_shutter())
        assert exc_info.value.kind is ErrorKind.INVALID_STATE


class TestExecution:
    """Successful commands and device rejections."""

    def test_power_on(self, session, dispatcher):
        camera = DigitalTwinCamera(DigitalTwinConfig(powered=False))
        connect(session, camera, ConnectionState.CONNECTED)
        result = dispatcher.dispatch(Command.power_on())
        assert result.kind is CommandKind.POWER_ON
        assert camera.powered

    def test_shutter_start_and_stop(self, session, dispatcher, camera):
        connect(session, camera, ConnectionState.READY)
        dispatcher.dispatch(Command.start_shutter())
        assert camera.recording
        dispatcher.dispatch(Command.stop_shutter())
        assert not camera.recording

    def test_locate(self, session, dispatcher, camera):
        connect(session, camera, ConnectionState.READY)
        dispatcher.dispatch(Command.start_locate())
        assert camera.settings[d.LOCATE] == d.PARAM_ON
        dispatcher.dispatch(Command.stop_locate())
        assert camera.settings[d.LOCATE] == d.PARAM_OFF

    def test_set_options_in_order(self, session, dispatcher, camera):
        connect(session, camera, ConnectionState.READY)
        result = dispatcher.dispatch(
            Command.set_options({"VideoMode": "720", "CameraMode": "Video"})
        )
        assert result.applied == (d.CAMERA_MODE, d.VIDEO_MODE)
        assert camera.paths_requested() == ["/camera/CM", "/camera/VV"]
        assert camera.settings[d.VIDEO_MODE] == d.VIDEO_MODES["720"]

    def test_unsupported_value_rejected_without_transport(
        self, session, dispatcher, camera
    ):
        connect(session, camera, ConnectionState.READY)
        with pytest.raises(RejectedError) as exc_info:
            dispatcher.dispatch(Command.set_option("VideoFOV", "Fisheye"))
        assert exc_info.value.option == "VideoFOV"
        assert exc_info.value.status_code is None
        assert camera.requests == []

    def test_empty_options_rejected(self, session, dispatcher, camera):
        connect(session, camera, ConnectionState.READY)
        with pytest.raises(RejectedError):
            dispatcher.dispatch(Command.set_options({}))

    def test_device_rejection_keeps_connection(self, session, dispatcher, camera):
        connect(session, camera, ConnectionState.READY)
        camera.reject_paths.add("/camera/CM")

        with pytest.raises(RejectedError) as exc_info:
            dispatcher.dispatch(Command.set_option("CameraMode", "Photo"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.option == d.CAMERA_MODE
        assert session.state is ConnectionState.READY


class TestLinkFailures:
    """Transport failures are fatal; a busy link is not."""

    def test_transport_failure_disconnects(self, session, bus, dispatcher, camera):
        errors = []
        bus.subscribe(EventChannel.ERROR, lambda kind, error: errors.append(kind))
        connect(session, camera, ConnectionState.READY)
        camera.reachable = False

        with pytest.raises(DisconnectedError):
            dispatcher.dispatch(Command.start_shutter())

        assert session.state is ConnectionState.DISCONNECTED
        assert errors == [ErrorKind.DISCONNECTED]

    def test_busy_link(self, session, dispatcher, camera, monkeypatch):
        connection = connect(session, camera, ConnectionState.READY)

        def busy(*args, **kwargs):
            raise LinkBusyError("busy")

        monkeypatch.setattr(connection.link, "send", busy)
        with pytest.raises(BusyError):
            dispatcher.dispatch(Command.start_shutter())
        assert session.state is ConnectionState.READY
