"""MCP server exposing the camera client over stdio."""

from typing import Literal

from mcp.server import Server
from mcp.server.stdio import stdio_server

from gopro_mcp.devices import init_client, shutdown_client
from gopro_mcp.drivers.config import get_factory, use_digital_twin, use_hardware
from gopro_mcp.observability import get_logger
from gopro_mcp.tools import camera

logger = get_logger(__name__)


def create_server(mode: Literal["hardware", "digital_twin"] = "digital_twin") -> Server:
    """Create the MCP server with the camera client and tools in place.

    Args:
        mode: "hardware" talks to a real camera over Wi-Fi; "digital_twin"
            (the default) uses the simulated camera.

    Returns:
        Server with the camera tools registered. The process-wide client
        is initialized but not connected.

    Example:
        >>> server = create_server(mode="hardware")
        >>> # Tools: camera_connect, camera_set_options, camera_shutter, ...
    """
    server = Server("gopro-mcp")

    if mode.lower() == "hardware":
        use_hardware()
        logger.info("Using HARDWARE mode (real camera)")
    else:
        use_digital_twin()
        logger.info("Using DIGITAL_TWIN mode (simulated camera)")

    config = get_factory().config
    init_client()
    logger.info(
        "Initialized camera client",
        mode=config.mode.value,
        address=config.camera_address,
    )

    camera.register(server)
    return server


async def run_server(mode: Literal["hardware", "digital_twin"] = "digital_twin") -> None:
    """Serve MCP over stdin/stdout until the client closes the stream.

    The camera client is shut down (disconnected, poll timer cancelled) on
    exit, however the server stops.
    """
    server = create_server(mode)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        shutdown_client()
        logger.info("Camera client shut down")
