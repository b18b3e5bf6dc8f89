"""Pytest configuration and fixtures for gopro-mcp tests.

Every client test runs against the digital twin camera with a
ManualScheduler, so status rounds happen only when a test runs them and no
timer thread outlives a test.
"""

import pytest

from gopro_mcp.devices import CameraClient, registry
from gopro_mcp.drivers import config as driver_config
from gopro_mcp.drivers.config import DriverConfig
from gopro_mcp.drivers.transport.twin import DigitalTwinCamera, DigitalTwinTransport
from gopro_mcp.observability import LinkStats, reset_logging
from tests.helpers import EventRecorder, ManualScheduler

TWIN_ADDRESS = "10.5.5.9"


@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset process-wide state (driver factory, client, logging) around a test."""
    yield
    registry.shutdown_client()
    driver_config._factory = None
    reset_logging()


@pytest.fixture
def twin() -> DigitalTwinCamera:
    """Powered-on simulated camera at TWIN_ADDRESS."""
    return DigitalTwinCamera()


@pytest.fixture
def transport_factory(twin):
    """``address -> DigitalTwinTransport`` reaching ``twin``."""

    def create(address: str) -> DigitalTwinTransport:
        return DigitalTwinTransport(address, twin)

    return create


@pytest.fixture
def client_config() -> DriverConfig:
    return DriverConfig(camera_address=TWIN_ADDRESS, command_wait_s=0.5)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def stats() -> LinkStats:
    return LinkStats()


@pytest.fixture
def client(transport_factory, client_config, stats, scheduler):
    """Disconnected client wired to the twin."""
    camera_client = CameraClient(
        transport_factory=transport_factory,
        config=client_config,
        stats=stats,
        scheduler=scheduler,
    )
    yield camera_client
    camera_client.close()


@pytest.fixture
def recorder(client) -> EventRecorder:
    return EventRecorder(client)
