"""End-to-end tests for CameraClient against the digital twin.

Fixtures (conftest.py): ``twin`` is a powered camera at 10.5.5.9,
``client`` talks to it through a ManualScheduler, ``recorder`` captures
every event in order.
"""

import pytest

from gopro_mcp.devices import (
    CameraClient,
    ConnectionState,
    ErrorKind,
    InvalidStateError,
    RejectedError,
    UpdateKind,
)
from gopro_mcp.drivers.config import DriverConfig
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport.twin import DigitalTwinTransport
from tests.conftest import TWIN_ADDRESS
from tests.helpers import EventRecorder

S = ConnectionState


# =============================================================================
# Connect
# =============================================================================


class TestConnect:
    """Connect sequence and its events."""

    def test_connect_to_powered_camera_reaches_ready(self, client, recorder, scheduler):
        """Verifies OnConnect, OnReady, then a populate once polling runs.

        Arrangement:
        1. Twin camera powered on at the configured address.
        2. Recorder subscribed to all four channels.

        Action:
        connect(), then run one scheduled round.

        Assertion Strategy:
        - connect() returns Ready.
        - Events arrive as connect, ready, status in that order.
        - The first status update has populate semantics.
        """
        assert client.connect() is S.READY
        assert recorder.names() == ["connect", "ready"]
        assert recorder.payloads("connect") == ["GoPro-Twin"]

        scheduler.run_pending()
        assert recorder.names() == ["connect", "ready", "status"]
        (update,) = recorder.payloads("status")
        assert update.kind is UpdateKind.POPULATE

    def test_connect_uses_explicit_address(self, client, twin):
        twin.address = "192.168.1.50"
        assert client.connect("192.168.1.50") is S.READY
        assert client.address == "192.168.1.50"

    def test_unreachable_address_reports_not_found_once(self, client, recorder):
        assert client.connect("10.5.5.99") is S.DISCONNECTED
        assert recorder.names() == ["error"]
        assert recorder.payloads("error") == [ErrorKind.NOT_FOUND]
        assert client.last_error.kind is ErrorKind.NOT_FOUND

    def test_refused_handshake_is_not_found(self, client, recorder, twin):
        twin.reject_paths.add(d.PASSWORD_PATH)
        assert client.connect() is S.DISCONNECTED
        assert recorder.payloads("error") == [ErrorKind.NOT_FOUND]

    def test_power_query_failure_after_connect(self, client, recorder, twin):
        twin.reject_paths.add(d.BACPAC_STATUS_PATH)
        assert client.connect() is S.DISCONNECTED
        assert recorder.names() == ["connect", "error"]
        assert recorder.payloads("error") == [ErrorKind.DISCONNECTED]

    def test_identification(self, client):
        client.connect()
        assert client.get_model() == "HERO3 Black Edition"
        assert client.get_firmware() == "03.00"
        assert client.identity == "GoPro-Twin"

    def test_refused_identification_still_ready(self, client, twin):
        twin.reject_paths.add(d.CAMERA_INFO_PATH)
        assert client.connect() is S.READY
        assert client.get_model() == d.UNKNOWN
        assert client.get_firmware() == d.UNKNOWN

    def test_identification_unknown_when_disconnected(self, client):
        assert client.get_model() == d.UNKNOWN
        assert client.address is None

    def test_connect_while_connecting_is_invalid_state(self, twin, client_config, scheduler):
        """A second connect during the handshake fails immediately."""
        outcomes = []

        class ReentrantTransport(DigitalTwinTransport):
            def send(self, request, password=None):
                if not outcomes:
                    try:
                        client.connect()
                    except InvalidStateError as e:
                        outcomes.append(e)
                return super().send(request, password)

        client = CameraClient(
            transport_factory=lambda address: ReentrantTransport(address, twin),
            config=client_config,
            scheduler=scheduler,
        )
        assert client.connect() is S.READY
        assert len(outcomes) == 1
        client.close()

    def test_reconnect_disconnects_first_without_error(self, client, recorder, scheduler):
        client.connect()
        scheduler.run_pending()
        recorder.clear()

        assert client.connect() is S.READY
        assert "error" not in recorder.names()
        assert recorder.names() == ["connect", "ready"]
        assert len(scheduler.pending) == 1

    def test_handshake_statistics(self, client, stats):
        client.connect()
        summary = stats.get_summary("handshake")
        assert summary.successful_exchanges == 4  # cv, sd, se, camera/cv


# =============================================================================
# Power
# =============================================================================


class TestPower:
    """Powered-off camera: Connected until power_on()."""

    @pytest.fixture
    def twin(self, twin):
        twin.powered = False
        return twin

    def test_power_off_power_on_ready_populate(self, client, recorder, scheduler):
        """Powered-off camera: Connected, power on, Ready, then populate."""
        assert client.connect() is S.CONNECTED
        assert client.is_power_on() is False
        assert not client.is_ready()
        assert recorder.names() == ["connect"]

        client.power_on()
        assert client.state is S.READY
        assert client.is_power_on() is True
        scheduler.run_pending()

        assert recorder.names() == ["connect", "ready", "status"]
        assert recorder.payloads("status")[0].kind is UpdateKind.POPULATE

    def test_is_power_on_after_manual_power_on_goes_ready(self, client, recorder, twin):
        client.connect()
        twin.powered = True
        assert client.is_power_on() is True
        assert client.state is S.READY
        assert recorder.names() == ["connect", "ready"]

    def test_power_watch_sees_manual_power_on(self, client, recorder, scheduler, twin):
        """Camera switched on by hand while Connected: the watch goes Ready.

        Arrangement:
        1. Powered-off twin; connect() leaves the client Connected.
        2. One power watch round pending.

        Action:
        Power the twin on, then run the pending rounds.

        Assertion Strategy:
        - Ready with OnReady once, identification fetched.
        - The next round is a status round (populate), not another power read.
        """
        assert client.connect() is S.CONNECTED
        assert len(scheduler.pending) == 1

        scheduler.run_pending()
        assert client.state is S.CONNECTED

        twin.powered = True
        scheduler.run_pending()
        assert client.state is S.READY
        assert client.get_model() == "HERO3 Black Edition"

        scheduler.run_pending()
        assert recorder.names() == ["connect", "ready", "status"]
        assert recorder.payloads("status")[0].kind is UpdateKind.POPULATE

    def test_power_watch_link_loss_disconnects_once(self, client, recorder, scheduler, twin):
        client.connect()
        twin.reachable = False
        scheduler.run_pending(limit=3)

        assert client.state is S.DISCONNECTED
        assert recorder.payloads("error") == [ErrorKind.DISCONNECTED]
        assert scheduler.pending == []

    def test_disconnect_cancels_power_watch(self, client, scheduler):
        client.connect()
        assert len(scheduler.pending) == 1
        client.disconnect()
        assert scheduler.pending == []

    def test_power_on_stops_power_watch(self, client, scheduler, twin):
        client.connect()
        client.power_on()
        assert len(scheduler.pending) == 1
        sent = len(twin.requests)
        scheduler.run_pending()
        assert d.BACPAC_STATUS_PATH not in twin.paths_requested()[sent:]


class TestBooting:
    """Powered camera whose bacpac does not report ready yet."""

    @pytest.fixture
    def twin(self, twin):
        twin.booting = True
        return twin

    def test_connect_while_booting_stays_connected(self, client, recorder):
        assert client.connect() is S.CONNECTED
        assert recorder.names() == ["connect"]

    def test_ready_once_boot_finishes(self, client, recorder, scheduler, twin):
        client.connect()
        scheduler.run_pending()
        assert client.state is S.CONNECTED

        twin.booting = False
        scheduler.run_pending()
        assert client.state is S.READY
        assert recorder.names() == ["connect", "ready"]

    def test_is_power_on_while_booting(self, client, twin):
        """Powered but not ready: True, and still Connected."""
        client.connect()
        assert client.is_power_on() is True
        assert client.state is S.CONNECTED

        twin.booting = False
        assert client.is_power_on() is True
        assert client.state is S.READY

    def test_start_shutter_in_connected_sends_nothing(self, client, twin):
        client.connect()
        sent = len(twin.requests)
        with pytest.raises(InvalidStateError):
            client.start_shutter()
        assert len(twin.requests) == sent

    def test_is_power_on_when_disconnected(self, client):
        with pytest.raises(InvalidStateError):
            client.is_power_on()

    def test_power_on_when_ready_is_invalid_state(self, client, twin):
        twin.powered = True
        client.connect()
        with pytest.raises(InvalidStateError):
            client.power_on()


# =============================================================================
# Ready
# =============================================================================


class TestReady:
    """Commands, status and teardown while Ready."""

    def test_on_ready_emitted_once(self, client, recorder, scheduler):
        client.connect()
        scheduler.run_pending(limit=3)
        client.set_options({"CameraMode": "Photo"})
        scheduler.run_pending()
        assert recorder.names().count("ready") == 1
        assert recorder.names().index("ready") < recorder.names().index("status")

    def test_set_options_reflected_in_next_update(self, client, recorder, scheduler):
        client.connect()
        scheduler.run_pending()
        client.set_options({"CameraMode": "Photo"})
        scheduler.run_pending()

        update = recorder.payloads("status")[-1]
        assert update.kind is UpdateKind.UPDATE
        assert [(c.key, c.old, c.new) for c in update.delta] == [
            (d.CAMERA_MODE, "Video", "Photo")
        ]

    def test_rejected_option_keeps_ready(self, client, twin):
        client.connect()
        twin.reject_paths.add("/camera/CM")
        with pytest.raises(RejectedError):
            client.set_options({"CameraMode": "Photo"})
        assert client.state is S.READY

    def test_shutter_and_locate(self, client, twin):
        client.connect()
        client.start_shutter()
        assert twin.recording
        client.stop_shutter()
        client.start_locate()
        assert twin.settings[d.LOCATE] == d.PARAM_ON
        client.stop_locate()
        assert twin.settings[d.LOCATE] == d.PARAM_OFF

    def test_disconnect_cancels_pending_poll(self, client, recorder, scheduler):
        client.connect()
        scheduler.run_pending()
        assert len(scheduler.pending) == 1

        assert client.disconnect() is True
        assert scheduler.pending == []
        assert client.state is S.DISCONNECTED
        assert client.snapshot is None
        assert "error" not in recorder.names()

    def test_link_loss_during_poll(self, client, recorder, scheduler, twin):
        client.connect()
        scheduler.run_pending()
        twin.reachable = False
        scheduler.run_pending()

        assert client.state is S.DISCONNECTED
        assert recorder.payloads("error") == [ErrorKind.DISCONNECTED]
        assert scheduler.pending == []

    def test_load_status_with_callback(self, client, recorder):
        client.set_on_status_changed(None)
        client.connect()
        received = []
        update = client.load_status(received.append)

        assert received == [update.snapshot]
        assert received[0][d.BATTERY_LEVEL] == 80
        assert client.snapshot is update.snapshot

    def test_load_status_requires_ready(self, client):
        with pytest.raises(InvalidStateError):
            client.load_status()

    def test_describe(self, client):
        client.connect()
        info = client.describe()
        assert info["state"] == "Ready"
        assert info["address"] == TWIN_ADDRESS
        assert info["model"] == "HERO3 Black Edition"
        assert info["polling"] is True
        assert info["last_error"] is None


# =============================================================================
# Subscribers
# =============================================================================


class TestSubscribers:
    """Subscriber misbehaviour does not break the client."""

    def test_raising_handler_does_not_break_connect(self, client, scheduler):
        def broken(*args):
            raise RuntimeError("boom")

        client.set_on_connect(broken)
        client.set_on_ready(broken)
        client.set_on_status_changed(broken)

        assert client.connect() is S.READY
        scheduler.run_pending()
        assert len(scheduler.pending) == 1

    def test_disconnect_from_on_ready(self, client, scheduler):
        client.set_on_ready(client.disconnect)
        assert client.connect() is S.DISCONNECTED
        assert scheduler.pending == []
        assert not client.polling

    def test_auto_poll_disabled(self, transport_factory, scheduler):
        config = DriverConfig(camera_address=TWIN_ADDRESS, auto_poll=False)
        client = CameraClient(transport_factory, config, scheduler=scheduler)
        recorder = EventRecorder(client)

        assert client.connect() is S.READY
        assert scheduler.calls == []
        client.load_status()
        assert recorder.names() == ["connect", "ready", "status"]
        client.close()
