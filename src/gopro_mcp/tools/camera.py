"""MCP tools for camera control.

Thin wrappers over the process-wide CameraClient. Every tool answers with a
single JSON TextContent. Client errors come back as
``{"error": {"kind": ..., "message": ...}}`` so an agent can tell a
refused option (Rejected) from a lost camera (Disconnected).

Blocking client calls run in a worker thread so a slow camera does not
stall the MCP event loop.
"""

import asyncio
import json
from typing import Any

from mcp.server import Server
from mcp.types import TextContent, Tool

from gopro_mcp.devices import CameraClientError, get_client
from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.observability import get_logger

logger = get_logger(__name__)

_OPTION_LABELS = [spec.label for spec in d.OPTIONS]


# Tool definitions
TOOLS = [
    Tool(
        name="camera_connect",
        description="Connect to the camera over Wi-Fi and report the resulting state",
        inputSchema={
            "type": "object",
            "properties": {
                "address": {
                    "type": "string",
                    "description": "Camera address (default: configured, usually 10.5.5.9)",
                },
            },
            "required": [],
        },
    ),
    Tool(
        name="camera_disconnect",
        description="Disconnect from the camera",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="camera_state",
        description="Connection state, identity, model and firmware",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="camera_power_on",
        description="Power on a connected camera that is switched off",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="camera_set_options",
        description="Change camera settings, e.g. {\"CameraMode\": \"Photo\"}",
        inputSchema={
            "type": "object",
            "properties": {
                "options": {
                    "type": "object",
                    "description": f"Option label to value. Labels: {', '.join(_OPTION_LABELS)}",
                },
            },
            "required": ["options"],
        },
    ),
    Tool(
        name="camera_shutter",
        description="Start or stop recording / taking photos in the current mode",
        inputSchema={
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["start", "stop"],
                    "description": "start or stop",
                },
            },
            "required": ["action"],
        },
    ),
    Tool(
        name="camera_locate",
        description="Turn the locate beeper on or off",
        inputSchema={
            "type": "object",
            "properties": {
                "enabled": {
                    "type": "boolean",
                    "description": "True to start beeping, false to stop",
                },
            },
            "required": ["enabled"],
        },
    ),
    Tool(
        name="camera_get_status",
        description="Camera status (mode, battery, counters, settings)",
        inputSchema={
            "type": "object",
            "properties": {
                "refresh": {
                    "type": "boolean",
                    "description": "Read from the camera now instead of the last poll",
                    "default": False,
                },
            },
            "required": [],
        },
    ),
    Tool(
        name="camera_stats",
        description="Link statistics: exchange counts, failures and latency per kind",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
]


def register(server: Server) -> None:
    """Register camera tools with the MCP server.

    Args:
        server: MCP Server instance, not yet running.
    """

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Route a tool call to its implementation."""
        if name == "camera_connect":
            return await _connect(arguments.get("address"))
        elif name == "camera_disconnect":
            return await _disconnect()
        elif name == "camera_state":
            return await _state()
        elif name == "camera_power_on":
            return await _power_on()
        elif name == "camera_set_options":
            return await _set_options(arguments["options"])
        elif name == "camera_shutter":
            return await _shutter(arguments["action"])
        elif name == "camera_locate":
            return await _locate(arguments["enabled"])
        elif name == "camera_get_status":
            return await _get_status(arguments.get("refresh", False))
        elif name == "camera_stats":
            return await _stats()
        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]


def _json(result: dict[str, Any]) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(result, indent=2))]


def _error(tool: str, error: Exception) -> list[TextContent]:
    if isinstance(error, CameraClientError):
        logger.warning("Camera tool failed", tool=tool, kind=error.kind.value, error=str(error))
        return _json({"error": error.to_dict()})
    logger.exception("Camera tool crashed", tool=tool)
    return _json({"error": {"kind": "Internal", "message": str(error)}})


# Tool implementations using device layer


async def _connect(address: str | None) -> list[TextContent]:
    """Connect and report where the attempt ended.

    A failed attempt is not an error here: the state is Disconnected and
    ``last_error`` says why (NotFound, Disconnected).
    """
    try:
        client = get_client()
        await asyncio.to_thread(client.connect, address)
        return _json(client.describe())
    except Exception as e:
        return _error("camera_connect", e)


async def _disconnect() -> list[TextContent]:
    try:
        client = get_client()
        was_connected = await asyncio.to_thread(client.disconnect)
        return _json({"disconnected": was_connected, "state": client.state.value})
    except Exception as e:
        return _error("camera_disconnect", e)


async def _state() -> list[TextContent]:
    try:
        return _json(get_client().describe())
    except Exception as e:
        return _error("camera_state", e)


async def _power_on() -> list[TextContent]:
    try:
        client = get_client()
        result = await asyncio.to_thread(client.power_on)
        return _json({**result.to_dict(), "state": client.state.value})
    except Exception as e:
        return _error("camera_power_on", e)


async def _set_options(options: dict[str, Any]) -> list[TextContent]:
    try:
        client = get_client()
        result = await asyncio.to_thread(client.set_options, options)
        return _json(result.to_dict())
    except Exception as e:
        return _error("camera_set_options", e)


async def _shutter(action: str) -> list[TextContent]:
    try:
        client = get_client()
        if action == "start":
            result = await asyncio.to_thread(client.start_shutter)
        elif action == "stop":
            result = await asyncio.to_thread(client.stop_shutter)
        else:
            return _json(
                {"error": {"kind": "InvalidArgument", "message": f"Unknown action: {action}"}}
            )
        return _json(result.to_dict())
    except Exception as e:
        return _error("camera_shutter", e)


async def _locate(enabled: bool) -> list[TextContent]:
    try:
        client = get_client()
        command = client.start_locate if enabled else client.stop_locate
        result = await asyncio.to_thread(command)
        return _json(result.to_dict())
    except Exception as e:
        return _error("camera_locate", e)


async def _get_status(refresh: bool) -> list[TextContent]:
    """Return the latest snapshot, or read one now.

    Without ``refresh`` and before the first poll round there is no
    snapshot yet, so a read is made anyway.
    """
    try:
        client = get_client()
        snapshot = client.snapshot
        if refresh or snapshot is None:
            snapshot = (await asyncio.to_thread(client.load_status)).snapshot
        return _json(
            {
                "captured_at": snapshot.captured_at.isoformat(),
                "status": snapshot.to_dict(),
            }
        )
    except Exception as e:
        return _error("camera_get_status", e)


async def _stats() -> list[TextContent]:
    try:
        return _json(get_client().stats.to_dict())
    except Exception as e:
        return _error("camera_stats", e)
