"""Tests for the digital twin camera and transport."""

import pytest

from gopro_mcp.drivers.gopro import (
    decode_bacpac_status,
    decode_camera_status,
    parse_camera_info,
    parse_password,
)
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport import CameraRequest, TransportError
from gopro_mcp.drivers.transport.twin import (
    DigitalTwinCamera,
    DigitalTwinConfig,
    DigitalTwinTransport,
)


@pytest.fixture
def camera():
    return DigitalTwinCamera()


@pytest.fixture
def transport(camera):
    return DigitalTwinTransport("10.5.5.9", camera)


def authed(transport, path, param=None):
    return transport.send(CameraRequest(path, param=param), "goprohero")


class TestHandshakeEndpoints:
    """Identity and password are readable without a password."""

    def test_wifi_name(self, transport):
        response = transport.send(CameraRequest(d.WIFI_NAME_PATH, authenticated=False))
        assert response.text == "GoPro-Twin"

    def test_password_has_length_header(self, transport):
        response = transport.send(CameraRequest(d.PASSWORD_PATH, authenticated=False))
        assert parse_password(response.text) == "goprohero"

    def test_wrong_password_forbidden(self, transport):
        response = transport.send(CameraRequest(d.CAMERA_STATUS_PATH), "nope")
        assert response.status_code == 403

    def test_camera_info(self, transport):
        info = parse_camera_info(authed(transport, d.CAMERA_INFO_PATH).text)
        assert info.model_name == "HERO3 Black Edition"
        assert info.firmware == "03.00"


class TestPower:
    """Power state and what a powered-off camera answers."""

    def test_powered_off_bacpac(self):
        camera = DigitalTwinCamera(DigitalTwinConfig(powered=False))
        transport = DigitalTwinTransport("10.5.5.9", camera)
        status = decode_bacpac_status(authed(transport, d.BACPAC_STATUS_PATH).body)
        assert not status.powered

    def test_camera_endpoints_gone_while_off(self):
        camera = DigitalTwinCamera(DigitalTwinConfig(powered=False))
        transport = DigitalTwinTransport("10.5.5.9", camera)
        assert authed(transport, d.CAMERA_STATUS_PATH).status_code == 410

    def test_power_on(self):
        camera = DigitalTwinCamera(DigitalTwinConfig(powered=False))
        transport = DigitalTwinTransport("10.5.5.9", camera)
        assert authed(transport, d.POWER_PATH, d.PARAM_ON).ok
        assert camera.powered
        assert authed(transport, d.CAMERA_STATUS_PATH).ok


class TestSettingsAndStatus:
    """Setters change what the status reports."""

    def test_default_status(self, transport):
        decoded = decode_camera_status(
            authed(transport, d.CAMERA_STATUS_PATH).body,
            authed(transport, d.VIDEO_MODE_READ_PATH).body,
            authed(transport, d.VIDEO_FPS_READ_PATH).body,
            authed(transport, d.BURST_RATE_READ_PATH).body,
        )
        assert decoded[d.CAMERA_MODE] == "Video"
        assert decoded[d.BATTERY_LEVEL] == 80
        assert decoded[d.VIDEO_MODE] == "1080"
        assert decoded[d.VIDEO_FPS] == 30
        assert decoded[d.BURST_RATE] == "10/1s"
        assert decoded[d.PHOTOS_AVAILABLE] == 1250
        assert decoded[d.SD_CARD] == "Yes"

    def test_setter_changes_status(self, transport):
        assert authed(transport, "/camera/CM", 0x01).ok
        decoded = decode_camera_status(authed(transport, d.CAMERA_STATUS_PATH).body)
        assert decoded[d.CAMERA_MODE] == "Photo"

    def test_invalid_code_rejected(self, transport):
        assert authed(transport, "/camera/CM", 0x42).status_code == 400

    def test_unknown_path_not_found(self, transport):
        assert authed(transport, "/camera/ZZ", 0x00).status_code == 404

    def test_shutter_counts_videos(self, camera, transport):
        authed(transport, d.SHUTTER_PATH, d.PARAM_ON)
        assert camera.recording
        assert camera.video_count == 1
        authed(transport, d.SHUTTER_PATH, d.PARAM_OFF)
        assert not camera.recording

    def test_locate_flag(self, transport):
        authed(transport, d.LOCATE_PATH, d.PARAM_ON)
        decoded = decode_camera_status(authed(transport, d.CAMERA_STATUS_PATH).body)
        assert decoded[d.LOCATE] == "On"


class TestFailureInjection:
    """Unreachable twins and rejected paths."""

    def test_unreachable_raises(self, camera, transport):
        camera.reachable = False
        with pytest.raises(TransportError):
            authed(transport, d.CAMERA_STATUS_PATH)

    def test_wrong_address_raises(self, camera):
        transport = DigitalTwinTransport("10.5.5.99", camera)
        with pytest.raises(TransportError):
            transport.send(CameraRequest(d.WIFI_NAME_PATH, authenticated=False))

    def test_reject_paths(self, camera, transport):
        camera.reject_paths.add("/camera/CM")
        assert authed(transport, "/camera/CM", 0x01).status_code == 400

    def test_closed_transport_raises(self, transport):
        transport.close()
        with pytest.raises(TransportError):
            authed(transport, d.CAMERA_STATUS_PATH)

    def test_requests_recorded(self, camera, transport):
        authed(transport, d.CAMERA_STATUS_PATH)
        assert camera.paths_requested() == [d.CAMERA_STATUS_PATH]
