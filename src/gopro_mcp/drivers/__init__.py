"""Camera link drivers.

Supports two modes:
- HARDWARE: Real camera over its Wi-Fi HTTP API
- DIGITAL_TWIN: Simulated camera for testing without hardware

Use drivers.config to switch modes:
    from gopro_mcp.drivers import config
    config.use_digital_twin()  # or config.use_hardware()
"""

from gopro_mcp.drivers import config, gopro, transport
from gopro_mcp.drivers.config import (
    DriverConfig,
    DriverFactory,
    DriverMode,
    configure,
    get_factory,
    set_camera_address,
    use_digital_twin,
    use_hardware,
)
from gopro_mcp.drivers.transport import (
    CameraRequest,
    CameraResponse,
    CameraTransport,
    LinkBusyError,
    TransportError,
)

__all__ = [
    # Submodules
    "config",
    "gopro",
    "transport",
    # Configuration
    "DriverMode",
    "DriverConfig",
    "DriverFactory",
    "get_factory",
    "configure",
    "set_camera_address",
    "use_digital_twin",
    "use_hardware",
    # Transport
    "CameraRequest",
    "CameraResponse",
    "CameraTransport",
    "LinkBusyError",
    "TransportError",
]
