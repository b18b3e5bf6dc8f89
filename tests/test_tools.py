"""Tests for the camera MCP tools."""

import json
import threading

import pytest
from mcp.server import Server

from gopro_mcp.devices import get_client, init_client, shutdown_client
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.tools import camera


def parse(result):
    assert len(result) == 1
    assert result[0].type == "text"
    return json.loads(result[0].text)


class TestCameraTools:
    """Camera tools against the digital twin."""

    @pytest.fixture(autouse=True)
    def setup_client(self, transport_factory, client_config, scheduler):
        """Process-wide client wired to the twin, torn down after each test."""
        init_client(
            transport_factory=transport_factory,
            config=client_config,
            scheduler=scheduler,
        )
        yield
        shutdown_client()

    @pytest.mark.asyncio
    async def test_connect(self):
        data = parse(await camera._connect(None))
        assert data["state"] == "Ready"
        assert data["identity"] == "GoPro-Twin"
        assert data["model"] == "HERO3 Black Edition"

    @pytest.mark.asyncio
    async def test_connect_unreachable_reports_not_found(self):
        data = parse(await camera._connect("10.5.5.99"))
        assert data["state"] == "Disconnected"
        assert data["last_error"]["kind"] == "NotFound"

    @pytest.mark.asyncio
    async def test_disconnect(self):
        await camera._connect(None)
        data = parse(await camera._disconnect())
        assert data == {"disconnected": True, "state": "Disconnected"}

    @pytest.mark.asyncio
    async def test_disconnect_runs_off_event_loop(self, monkeypatch):
        """disconnect() runs in a worker thread, not on the event loop."""
        await camera._connect(None)
        client = get_client()
        original = client.disconnect
        threads = []

        def recording_disconnect():
            threads.append(threading.get_ident())
            return original()

        monkeypatch.setattr(client, "disconnect", recording_disconnect)
        data = parse(await camera._disconnect())

        assert data["disconnected"] is True
        assert threads and threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_state_when_disconnected(self):
        data = parse(await camera._state())
        assert data["state"] == "Disconnected"
        assert data["model"] == d.UNKNOWN

    @pytest.mark.asyncio
    async def test_power_on(self, twin):
        twin.powered = False
        assert parse(await camera._connect(None))["state"] == "Connected"

        data = parse(await camera._power_on())
        assert data["command"] == "PowerOn"
        assert data["state"] == "Ready"

    @pytest.mark.asyncio
    async def test_set_options(self, twin):
        await camera._connect(None)
        data = parse(await camera._set_options({"CameraMode": "Photo", "PhotoMode": "5mpWide"}))
        assert data["applied"] == [d.CAMERA_MODE, d.PHOTO_MODE]
        assert twin.settings[d.CAMERA_MODE] == d.CAMERA_MODES["Photo"]

    @pytest.mark.asyncio
    async def test_set_options_rejected(self):
        await camera._connect(None)
        data = parse(await camera._set_options({"CameraMode": "Slowmo"}))
        assert data["error"]["kind"] == "Rejected"
        assert data["error"]["option"] == d.CAMERA_MODE

    @pytest.mark.asyncio
    async def test_shutter_requires_ready(self):
        data = parse(await camera._shutter("start"))
        assert data["error"]["kind"] == "InvalidState"

    @pytest.mark.asyncio
    async def test_shutter_start_stop(self, twin):
        await camera._connect(None)
        assert parse(await camera._shutter("start"))["command"] == "StartShutter"
        assert twin.recording
        assert parse(await camera._shutter("stop"))["command"] == "StopShutter"
        assert not twin.recording

    @pytest.mark.asyncio
    async def test_shutter_unknown_action(self):
        data = parse(await camera._shutter("pause"))
        assert data["error"]["kind"] == "InvalidArgument"

    @pytest.mark.asyncio
    async def test_locate(self, twin):
        await camera._connect(None)
        parse(await camera._locate(True))
        assert twin.settings[d.LOCATE] == d.PARAM_ON
        parse(await camera._locate(False))
        assert twin.settings[d.LOCATE] == d.PARAM_OFF

    @pytest.mark.asyncio
    async def test_get_status_reads_when_no_snapshot(self):
        await camera._connect(None)
        data = parse(await camera._get_status(False))
        assert data["status"][d.CAMERA_MODE] == "Video"
        assert data["status"][d.BATTERY_LEVEL] == 80

    @pytest.mark.asyncio
    async def test_get_status_refresh(self, twin):
        await camera._connect(None)
        await camera._get_status(False)
        twin.battery_level = 42
        data = parse(await camera._get_status(True))
        assert data["status"][d.BATTERY_LEVEL] == 42

    @pytest.mark.asyncio
    async def test_stats(self):
        await camera._connect(None)
        data = parse(await camera._stats())
        assert data["handshake"]["successful_exchanges"] == 4


class TestRegistration:
    """Tool registration."""

    def test_tool_names(self):
        assert [tool.name for tool in camera.TOOLS] == [
            "camera_connect",
            "camera_disconnect",
            "camera_state",
            "camera_power_on",
            "camera_set_options",
            "camera_shutter",
            "camera_locate",
            "camera_get_status",
            "camera_stats",
        ]

    def test_register_attaches_handlers(self):
        server = Server("test")
        camera.register(server)
        assert server.request_handlers

    @pytest.mark.asyncio
    async def test_tool_without_client_returns_error(self):
        shutdown_client()
        data = parse(await camera._state())
        assert data["error"]["kind"] == "Internal"
