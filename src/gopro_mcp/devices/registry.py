"""Process-wide camera client.

The MCP tools are stateless functions; they reach the one CameraClient of
the process through this module.

Example:
    from gopro_mcp.devices.registry import init_client, get_client

    init_client()
    get_client().connect()
"""

from __future__ import annotations

from gopro_mcp.devices.client import CameraClient, TransportFactory
from gopro_mcp.devices.scheduling import Scheduler
from gopro_mcp.drivers.config import DriverConfig
from gopro_mcp.observability import LinkStats, get_logger

logger = get_logger(__name__)

_default_client: CameraClient | None = None


def init_client(
    transport_factory: TransportFactory | None = None,
    config: DriverConfig | None = None,
    stats: LinkStats | None = None,
    scheduler: Scheduler | None = None,
) -> CameraClient:
    """Create the process-wide client, replacing (and closing) any previous one.

    Business context: a server exposes one camera to many tool calls. Each
    call must see the same connection, handlers and statistics, so the
    client lives here rather than being passed through every tool.

    Implementation details: module-level global. Not thread-safe during
    initialization; call once at startup before serving requests.
    Replacing a client disconnects the old one first so its link and poll
    timer do not outlive it.

    Args:
        transport_factory: ``address -> CameraTransport``; defaults to the
            global driver factory.
        config: Client timing and default address; defaults to the global
            driver factory's config.
        stats: Shared exchange statistics.
        scheduler: Timer source for status rounds.

    Returns:
        The new client. get_client() returns the same object until the next
        init_client() or shutdown_client().
    """
    global _default_client
    if _default_client is not None:
        _default_client.close()
    _default_client = CameraClient(
        transport_factory=transport_factory,
        config=config,
        stats=stats,
        scheduler=scheduler,
    )
    logger.info("Camera client initialized", address=_default_client.config.camera_address)
    return _default_client


def get_client() -> CameraClient:
    """Return the process-wide client.

    Raises:
        RuntimeError: init_client() has not been called.
    """
    if _default_client is None:
        raise RuntimeError("Camera client not initialized. Call init_client() first.")
    return _default_client


def shutdown_client() -> None:
    """Disconnect and forget the process-wide client. Safe to call repeatedly."""
    global _default_client
    if _default_client is not None:
        _default_client.close()
        _default_client = None
        logger.info("Camera client shut down")
