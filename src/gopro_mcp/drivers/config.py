"""Driver configuration and factory.

Switches the camera link between a real camera (HTTP over Wi-Fi) and the
digital twin, and carries the timing knobs the client needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from gopro_mcp.drivers.gopro.definitions import DEFAULT_CAMERA_ADDRESS
from gopro_mcp.drivers.transport import CameraTransport
from gopro_mcp.drivers.transport.http import DEFAULT_TIMEOUT_S, HttpTransport
from gopro_mcp.drivers.transport.twin import (
    DigitalTwinCamera,
    DigitalTwinConfig,
    DigitalTwinTransport,
)

# =============================================================================
# Constants
# =============================================================================

#: Delay between the end of one status round and the start of the next.
DEFAULT_POLL_INTERVAL_S = 2.0

#: How long a command waits for an in-flight status round before giving up
#: with Busy. A status round is four exchanges, so this covers a slow one.
DEFAULT_COMMAND_WAIT_S = 10.0


class DriverMode(Enum):
    """Driver mode selection."""

    HARDWARE = "hardware"  # Real camera over Wi-Fi
    DIGITAL_TWIN = "digital_twin"  # Simulated camera for testing


@dataclass
class DriverConfig:
    """Configuration for the camera link.

    Attributes:
        mode: HARDWARE for a real camera, DIGITAL_TWIN for simulation.
        camera_address: Host or IP of the camera's Wi-Fi module.
        request_timeout_s: Per-exchange connect/read timeout.
        poll_interval_s: Pause between status rounds while Ready.
        command_wait_s: Longest a command waits for the link.
        auto_poll: Start status polling as soon as the camera is Ready.
        twin: Initial state of the simulated camera (DIGITAL_TWIN only).
    """

    mode: DriverMode = DriverMode.DIGITAL_TWIN

    # Link settings
    camera_address: str = DEFAULT_CAMERA_ADDRESS
    request_timeout_s: float = DEFAULT_TIMEOUT_S

    # Client timing
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    command_wait_s: float = DEFAULT_COMMAND_WAIT_S
    auto_poll: bool = True

    # Digital twin settings
    twin: DigitalTwinConfig = field(default_factory=DigitalTwinConfig)

    def __post_init__(self) -> None:
        if self.request_timeout_s <= 0:
            raise ValueError(
                f"request_timeout_s must be positive, got {self.request_timeout_s}"
            )
        if self.poll_interval_s < 0:
            raise ValueError(
                f"poll_interval_s must not be negative, got {self.poll_interval_s}"
            )
        if self.command_wait_s < 0:
            raise ValueError(
                f"command_wait_s must not be negative, got {self.command_wait_s}"
            )


class DriverFactory:
    """Creates camera transports according to the configured mode.

    In DIGITAL_TWIN mode the factory owns one simulated camera and every
    transport it creates talks to that same camera, so its state (power,
    settings, recordings) survives reconnects the way a real camera's does.

    Thread Safety:
        Not thread-safe. Configure once at startup.
    """

    def __init__(self, config: DriverConfig | None = None):
        self.config = config or DriverConfig()
        self._twin_camera: DigitalTwinCamera | None = None

    @property
    def twin_camera(self) -> DigitalTwinCamera:
        """The simulated camera, created on first use."""
        if self._twin_camera is None:
            self._twin_camera = DigitalTwinCamera(self.config.twin)
        return self._twin_camera

    def create_transport(self, address: str | None = None) -> CameraTransport:
        """Create a transport to ``address`` (default: configured address).

        Returns:
            HttpTransport in HARDWARE mode, DigitalTwinTransport otherwise.
        """
        address = address or self.config.camera_address
        if self.config.mode == DriverMode.HARDWARE:
            return HttpTransport(address, timeout_s=self.config.request_timeout_s)
        return DigitalTwinTransport(address, self.twin_camera)


# =============================================================================
# Global Singleton
# =============================================================================

# Not thread-safe: configure once at startup before starting worker threads.
_factory: DriverFactory | None = None


def get_factory() -> DriverFactory:
    """Return the global factory, creating a DIGITAL_TWIN one on first use."""
    global _factory
    if _factory is None:
        _factory = DriverFactory()
    return _factory


def configure(config: DriverConfig) -> None:
    """Replace the global factory with one built from ``config``.

    Example:
        >>> configure(DriverConfig(mode=DriverMode.HARDWARE,
        ...                        camera_address="10.5.5.9"))
    """
    global _factory
    _factory = DriverFactory(config)


def use_digital_twin() -> None:
    """Switch the global factory to DIGITAL_TWIN, keeping other settings."""
    config = get_factory().config
    config.mode = DriverMode.DIGITAL_TWIN
    configure(config)


def use_hardware() -> None:
    """Switch the global factory to HARDWARE, keeping other settings."""
    config = get_factory().config
    config.mode = DriverMode.HARDWARE
    configure(config)


def set_camera_address(address: str) -> None:
    """Change the default camera address of the global factory."""
    get_factory().config.camera_address = address
